"""
GCC and Clang compiler backends.

Both use the GNU driver command-line conventions. They differ only in the
default tool names and in how an explicit target architecture is requested:
GCC takes -m32/-m64, Clang takes --target=<triple>.
"""

import shlex
from pathlib import Path
from typing import List, Optional

from ..config.configuration import Architecture, Configuration, ProjectKind
from .compilation_executor import CompilationExecutor
from .compiler import ICompiler, Language, source_language
from .locators import GNULocator
from .platform_utils import detect_system, target_triple


class CompilerGCC(ICompiler):
    """
    GNU Compiler Collection toolchain.

    Example usage:
        compiler = CompilerGCC(build_dir=Path("build"))
        result = compiler.compile(Path("src/main.c"), Configuration(defines=["DEBUG"]))
    """

    name = "gcc"
    OBJECT_SUFFIX = ".o"

    # Suffix appended to libraries given without an extension
    STATIC_LIBRARY_SUFFIX = ".a"

    C_STANDARD = "-std=c11"
    CXX_STANDARD = "-std=c++23"

    def __init__(
        self,
        build_dir: Path,
        locator: Optional[GNULocator] = None,
        executor: Optional[CompilationExecutor] = None,
        system: Optional[str] = None
    ):
        """
        Initialize GCC compiler.

        Args:
            build_dir: Root directory for object files and link outputs
            locator: Toolchain discovery (defaults to PATH lookup)
            executor: Process executor
            system: Target operating system name (defaults to the host)
        """
        super().__init__(build_dir, executor)
        self.locator = locator or self.default_locator()
        self.system = system or detect_system()

    @classmethod
    def default_locator(cls) -> GNULocator:
        return GNULocator(c_driver="gcc", cxx_driver="g++", archiver="ar")

    def target_directory_name(self, configuration: Configuration) -> str:
        return configuration.target_architecture().value

    def architecture_flags(self, configuration: Configuration) -> List[str]:
        """Flags selecting the target architecture, only when it is explicit."""
        if configuration.architecture is None:
            return []
        if configuration.architecture == Architecture.X86:
            return ["-m32"]
        return ["-m64"]

    def make_compiler_command(self, configuration: Configuration, file: Path) -> List[str]:
        """Build the driver command for one source file.

        Layout:
            <cc|c++> -c -std=... [-fno-exceptions] [-Ddefine]... [-Idir]...
                     [architecture] -o <object> <source>
        """
        language = source_language(file)

        if language == Language.C:
            cmd = [str(self.locator.require_tool("cc")), "-c", self.C_STANDARD]
        else:
            cmd = [str(self.locator.require_tool("cxx")), "-c", self.CXX_STANDARD, "-fno-exceptions"]

        for define in configuration.defines:
            cmd.append(f"-D{define}")

        for include_dir in configuration.include_dirs:
            cmd.append(f"-I{include_dir}")

        cmd.extend(self.architecture_flags(configuration))
        cmd.extend(["-o", str(self.compiler_output_path(configuration, file)), str(file)])

        return cmd

    def make_linker_command(
        self,
        configuration: Configuration,
        object_files: List[Path],
        output_name: str,
        kind: ProjectKind
    ) -> List[str]:
        """Build the link (or archive) command.

        Static libraries are archived with 'ar rcs'; applications and shared
        libraries are linked through the C++ driver so the C++ runtime is
        pulled in when needed.
        """
        output = self.linker_output_path(configuration, output_name, kind)
        objects = [str(object_file) for object_file in object_files]

        if kind == ProjectKind.STATIC_LIBRARY:
            return [str(self.locator.require_tool("ar")), "rcs", str(output)] + objects

        cmd = [str(self.locator.require_tool("cxx"))]
        if kind == ProjectKind.DYNAMIC_LIBRARY:
            cmd.append("-shared")
        cmd.extend(["-o", str(output)])

        # Objects come before libraries so the linker resolves their symbols
        cmd.extend(objects)

        # Standard library paths for the target
        triple = target_triple(configuration.architecture, self.system)
        for library_dir in self.locator.find_library_dirs(triple):
            cmd.append(f"-L{library_dir}")

        # User-defined library paths
        for library_dir in configuration.library_dirs:
            cmd.append(f"-L{library_dir}")

        # Libraries; a bare name means a static archive on the search path
        for library in configuration.libraries:
            if Path(library).suffix:
                cmd.append(library)
            else:
                cmd.append(f"-l:{library}{self.STATIC_LIBRARY_SUFFIX}")

        cmd.extend(self.architecture_flags(configuration))

        return cmd

    def linker_output_path(
        self,
        configuration: Configuration,
        output_name: str,
        kind: ProjectKind
    ) -> Path:
        if kind == ProjectKind.STATIC_LIBRARY:
            file_name = f"lib{output_name}.a"
        elif kind == ProjectKind.DYNAMIC_LIBRARY:
            file_name = f"lib{output_name}{self.dynamic_library_suffix()}"
        else:
            file_name = f"{output_name}.exe" if self.system == "windows" else output_name
        return self.build_dir / self.target_directory_name(configuration) / file_name

    def dynamic_library_suffix(self) -> str:
        if self.system == "windows":
            return ".dll"
        if self.system == "darwin":
            return ".dylib"
        return ".so"

    def format_command(self, cmd: List[str]) -> str:
        return shlex.join(cmd)


class CompilerClang(CompilerGCC):
    """
    Clang/LLVM toolchain.

    Same command-line conventions as GCC; an explicit architecture is
    requested with --target instead of -m32/-m64.
    """

    name = "clang"

    @classmethod
    def default_locator(cls) -> GNULocator:
        return GNULocator(c_driver="clang", cxx_driver="clang++", archiver="llvm-ar")

    def architecture_flags(self, configuration: Configuration) -> List[str]:
        if configuration.architecture is None:
            return []
        return [f"--target={target_triple(configuration.architecture, self.system)}"]
