"""Compiler capability interface.

This module defines the contract every toolchain backend fulfils (MSVC, GCC,
Clang). A backend only has to say how commands and output paths look; the
shared compile() and link() drive discovery, command construction and
process execution, and report every failure as a result instead of raising.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..config.configuration import Configuration, ProjectKind
from ..errors import ConfigurationError, ProcessInvocationError, ToolchainDiscoveryError
from .compilation_executor import CompilationExecutor, FailureKind, ProcessOutcome


class CompilerError(ConfigurationError):
    """Raised when a compile request cannot be turned into a command."""
    pass


class ToolchainNotFoundError(ToolchainDiscoveryError):
    """Raised by command construction when the toolchain is not installed."""
    pass


class Language(Enum):
    """Source language, chosen from the file extension."""

    C = "c"
    CXX = "c++"


C_EXTENSIONS = (".c",)
CXX_EXTENSIONS = (".cpp", ".cxx", ".cc")


def source_language(file: Path) -> Language:
    """Map a source file extension to its language.

    Raises:
        CompilerError: If the extension is not a C or C++ source extension
    """
    suffix = file.suffix
    if suffix in C_EXTENSIONS:
        return Language.C
    if suffix in CXX_EXTENSIONS:
        return Language.CXX
    raise CompilerError(f"Unknown source file type: {suffix or file.name}")


@dataclass
class CompileResult:
    """Result of a compilation operation."""

    success: bool
    object_file: Optional[Path]
    stdout: str
    stderr: str
    returncode: int
    failure: Optional[FailureKind] = None

    @property
    def diagnostics(self) -> str:
        return "\n".join(text for text in (self.stdout.strip(), self.stderr.strip()) if text)

    def raise_on_failure(self) -> None:
        """Raise ProcessInvocationError when the step failed."""
        if not self.success:
            raise ProcessInvocationError(_failure_message(self.failure, self.diagnostics))

    @classmethod
    def failed(cls, failure: FailureKind, message: str) -> "CompileResult":
        return cls(
            success=False,
            object_file=None,
            stdout="",
            stderr=message,
            returncode=-1,
            failure=failure,
        )


@dataclass
class LinkResult:
    """Result of a link operation."""

    success: bool
    output_file: Optional[Path]
    stdout: str
    stderr: str
    returncode: int
    failure: Optional[FailureKind] = None

    @property
    def diagnostics(self) -> str:
        return "\n".join(text for text in (self.stdout.strip(), self.stderr.strip()) if text)

    def raise_on_failure(self) -> None:
        """Raise ProcessInvocationError when the step failed."""
        if not self.success:
            raise ProcessInvocationError(_failure_message(self.failure, self.diagnostics))

    @classmethod
    def failed(cls, failure: FailureKind, message: str) -> "LinkResult":
        return cls(
            success=False,
            output_file=None,
            stdout="",
            stderr=message,
            returncode=-1,
            failure=failure,
        )


class ICompiler(ABC):
    """Interface for native toolchains.

    Implementations:
    - CompilerMSVC (cl.exe / link.exe)
    - CompilerGCC (gcc / g++ / ar)
    - CompilerClang (clang / clang++ / llvm-ar)

    Instances hold no build data. They may cache toolchain discovery results,
    which must be safe to read from several compile threads at once.
    """

    # Short backend name used by the factory and the CLI
    name = ""

    # Suffix of object files produced by compile()
    OBJECT_SUFFIX = ".o"

    def __init__(self, build_dir: Path, executor: Optional[CompilationExecutor] = None):
        """
        Initialize compiler.

        Args:
            build_dir: Root directory for object files and link outputs
            executor: Process executor (defaults to a subprocess-backed one)
        """
        self.build_dir = Path(build_dir)
        self.executor = executor or CompilationExecutor()

    @abstractmethod
    def target_directory_name(self, configuration: Configuration) -> str:
        """Name of the per-target output subdirectory."""
        pass

    @abstractmethod
    def make_compiler_command(self, configuration: Configuration, file: Path) -> List[str]:
        """Build the command that compiles one source file.

        Raises:
            CompilerError: If the file type is not supported
            ToolchainNotFoundError: If the toolchain is not installed
        """
        pass

    @abstractmethod
    def make_linker_command(
        self,
        configuration: Configuration,
        object_files: List[Path],
        output_name: str,
        kind: ProjectKind
    ) -> List[str]:
        """Build the command that links object files into a binary.

        Raises:
            ToolchainNotFoundError: If the toolchain is not installed
        """
        pass

    @abstractmethod
    def linker_output_path(
        self,
        configuration: Configuration,
        output_name: str,
        kind: ProjectKind
    ) -> Path:
        """Path of the binary produced by link()."""
        pass

    @abstractmethod
    def format_command(self, cmd: List[str]) -> str:
        """Render a command as a single command-line string."""
        pass

    def compiler_output_path(self, configuration: Configuration, file: Path) -> Path:
        """Path of the object file produced by compiling file.

        The name includes a digest of the full source path so two sources
        with the same file name in different directories never collide.
        """
        digest = hashlib.sha1(str(file).encode("utf-8")).hexdigest()[:8]
        object_name = f"{file.stem}-{digest}{self.OBJECT_SUFFIX}"
        return self.build_dir / self.target_directory_name(configuration) / "obj" / object_name

    def make_compiler_command_line_string(self, configuration: Configuration, file: Path) -> str:
        return self.format_command(self.make_compiler_command(configuration, file))

    def make_linker_command_line_string(
        self,
        configuration: Configuration,
        object_files: List[Path],
        output_name: str,
        kind: ProjectKind
    ) -> str:
        return self.format_command(
            self.make_linker_command(configuration, object_files, output_name, kind)
        )

    def compile(self, file: Path, configuration: Configuration) -> CompileResult:
        """Compile a single source file.

        Args:
            file: Source file (.c, .cpp, .cxx or .cc)
            configuration: Build configuration

        Returns:
            CompileResult; never raises for toolchain or process problems
        """
        file = Path(file)

        try:
            cmd = self.make_compiler_command(configuration, file)
        except ToolchainNotFoundError as e:
            logging.error(f"Cannot compile {file.name}: {e}")
            return CompileResult.failed(FailureKind.TOOLCHAIN_NOT_FOUND, str(e))
        except CompilerError as e:
            logging.error(f"Cannot compile {file.name}: {e}")
            return CompileResult.failed(FailureKind.UNSUPPORTED_SOURCE, str(e))

        output = self.compiler_output_path(configuration, file)
        logging.info(f"Compiling {file.name}")

        outcome = self.executor.execute(cmd, output)
        if not outcome.success:
            _log_failure(f"Compilation of {file.name}", outcome)

        return CompileResult(
            success=outcome.success,
            object_file=output if outcome.success else None,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            returncode=outcome.returncode,
            failure=outcome.failure,
        )

    def link(
        self,
        object_files: List[Path],
        output_name: str,
        kind: ProjectKind,
        configuration: Configuration
    ) -> LinkResult:
        """Link object files into an application or library.

        Args:
            object_files: Object files to link, in order
            output_name: Base name of the binary (usually the project name)
            kind: Executable, static library or dynamic library
            configuration: Build configuration

        Returns:
            LinkResult; never raises for toolchain or process problems
        """
        try:
            cmd = self.make_linker_command(configuration, object_files, output_name, kind)
        except ToolchainNotFoundError as e:
            logging.error(f"Cannot link {output_name}: {e}")
            return LinkResult.failed(FailureKind.TOOLCHAIN_NOT_FOUND, str(e))

        output = self.linker_output_path(configuration, output_name, kind)
        logging.info(f"Linking {output.name}")

        outcome = self.executor.execute(cmd, output)
        if not outcome.success:
            _log_failure(f"Linking of {output.name}", outcome)

        return LinkResult(
            success=outcome.success,
            output_file=output if outcome.success else None,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            returncode=outcome.returncode,
            failure=outcome.failure,
        )


def _failure_message(failure: Optional[FailureKind], diagnostics: str) -> str:
    message = f"Toolchain step failed ({failure.value if failure else 'error'})"
    return f"{message}:\n{diagnostics}" if diagnostics else message


def _log_failure(what: str, outcome: ProcessOutcome) -> None:
    details = "\n".join(text for text in (outcome.stdout.strip(), outcome.stderr.strip()) if text)
    logging.error(f"{what} failed ({outcome.failure.value if outcome.failure else 'error'})")
    if details:
        logging.error(details)
