"""
Projects: named, located build targets.

A project owns an ordered list of source files and include directories and
knows which kind of binary it produces. Paths are stored absolute and
lexically normalized; on disk they are written relative to the project's
location so project directories can be moved.

Project document (<location>/<name>.gprj):
    Name: Game
    Kind: Application
    Files:
    	src/main.cpp
    	src/render.cpp
    Includes:
    	include
"""

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import psutil

from ..compilers.compilation_executor import FailureKind
from ..compilers.compiler import CompileResult, ICompiler, LinkResult
from ..config.configuration import Configuration, ProjectKind
from ..errors import ConfigurationError, PersistenceError
from ..gcl import Deserializer, Object, Serializer

PathLike = Union[str, "os.PathLike[str]"]


class ProjectError(ConfigurationError):
    """Raised for invalid project definitions."""
    pass


def normalize_path(path: PathLike, base: Optional[Path]) -> Path:
    """Make a path absolute against base and normalize it lexically.

    No symlinks are resolved and the path does not have to exist.
    """
    path = Path(path)
    if not path.is_absolute():
        if base is None:
            raise ProjectError(f"Cannot resolve relative path '{path}' without a project location")
        path = base / path
    return Path(os.path.normpath(path))


def relative_path_string(path: Path, base: Path) -> str:
    """Lexically relative, '/'-separated form of path against base.

    Paths that cannot be made relative (another drive on Windows) are
    returned absolute.
    """
    try:
        return Path(os.path.relpath(path, base)).as_posix()
    except ValueError:
        return path.as_posix()


def default_worker_count() -> int:
    return psutil.cpu_count(logical=True) or 1


@dataclass
class ProjectBuildResult:
    """Result of building one project."""

    success: bool
    output: Optional[Path]
    compile_results: List[CompileResult] = field(default_factory=list)
    link_result: Optional[LinkResult] = None
    cancelled: bool = False

    @property
    def toolchain_invocations(self) -> int:
        """Number of compile/link steps that actually reached the toolchain."""
        skipped = (FailureKind.CANCELLED, FailureKind.TOOLCHAIN_NOT_FOUND, FailureKind.UNSUPPORTED_SOURCE)
        steps = list(self.compile_results)
        if self.link_result is not None:
            steps.append(self.link_result)
        return sum(1 for step in steps if step.failure not in skipped)


class Project:
    """
    A single compilation target.

    Example usage:
        project = Project(Path("/work/game"), "Game")
        project.add_file("src/main.cpp")
        project.serialize()
        result = project.build(compiler, Configuration())
    """

    EXTENSION = ".gprj"

    def __init__(
        self,
        location: Optional[PathLike] = None,
        name: str = "MyProject",
        kind: ProjectKind = ProjectKind.APPLICATION
    ):
        """
        Initialize project.

        Args:
            location: Directory holding the project document (None if unsaved)
            name: Project name, unique within its workspace
            kind: Output kind
        """
        self.location: Optional[Path] = Path(os.path.abspath(location)) if location else None
        self.name = name
        self.kind = kind
        self.files: List[Path] = []
        self.includes: List[Path] = []

    @property
    def document_path(self) -> Optional[Path]:
        if self.location is None:
            return None
        return self.location / f"{self.name}{self.EXTENSION}"

    def add_file(self, path: PathLike) -> Path:
        """Add a source file; relative paths are taken from the location."""
        file = normalize_path(path, self.location)
        self.files.append(file)
        return file

    def add_include(self, path: PathLike) -> Path:
        """Add an include directory; relative paths are taken from the location."""
        include = normalize_path(path, self.location)
        self.includes.append(include)
        return include

    def build(
        self,
        compiler: ICompiler,
        default_configuration: Configuration,
        cancel_event: Optional[threading.Event] = None,
        max_workers: Optional[int] = None
    ) -> ProjectBuildResult:
        """
        Compile every source file, then link.

        Compiles are independent and run on a bounded thread pool, submitted
        in file order. Linking waits for all of them and is skipped when any
        compile failed or was cancelled. A project without files succeeds
        without invoking the toolchain.

        Args:
            compiler: Toolchain to build with
            default_configuration: Workspace configuration to start from
            cancel_event: Set to stop before the next file starts compiling
            max_workers: Maximum concurrent compiles (default: CPU count)

        Returns:
            ProjectBuildResult
        """
        configuration = Configuration(
            architecture=default_configuration.architecture,
            defines=list(default_configuration.defines),
            include_dirs=list(default_configuration.include_dirs) + list(self.includes),
            library_dirs=list(default_configuration.library_dirs),
            libraries=list(default_configuration.libraries),
            kind=self.kind,
        )

        if not self.files:
            logging.info(f"Project '{self.name}' has no source files")
            return ProjectBuildResult(success=True, output=None)

        def compile_one(file: Path) -> CompileResult:
            if cancel_event is not None and cancel_event.is_set():
                return CompileResult.failed(FailureKind.CANCELLED, f"Cancelled before compiling {file.name}")
            return compiler.compile(file, configuration)

        workers = max(1, min(max_workers or default_worker_count(), len(self.files)))
        logging.info(f"Building project '{self.name}' ({len(self.files)} files, {workers} workers)")

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"geno-{self.name}") as pool:
            futures: List[Future] = [pool.submit(compile_one, file) for file in self.files]
            compile_results = [future.result() for future in futures]

        cancelled = any(result.failure == FailureKind.CANCELLED for result in compile_results)
        if not all(result.success for result in compile_results):
            failed = sum(1 for result in compile_results if not result.success)
            if cancelled:
                logging.warning(f"Build of project '{self.name}' cancelled")
            else:
                logging.error(f"{failed} of {len(self.files)} files failed to compile in '{self.name}'")
            return ProjectBuildResult(
                success=False,
                output=None,
                compile_results=compile_results,
                cancelled=cancelled,
            )

        object_files = [result.object_file for result in compile_results if result.object_file is not None]
        link_result = compiler.link(object_files, self.name, self.kind, configuration)

        return ProjectBuildResult(
            success=link_result.success,
            output=link_result.output_file,
            compile_results=compile_results,
            link_result=link_result,
        )

    def serialize(self) -> bool:
        """
        Write the project document.

        Returns:
            True on success; failures are logged
        """
        if self.location is None:
            self._log_location_missing("serialize")
            return False

        try:
            with Serializer(self.document_path) as serializer:
                serializer.write_object(Object("Name", self.name))
                serializer.write_object(Object("Kind", self.kind.value))
                serializer.write_object(self._path_table("Files", self.files))
                if self.includes:
                    serializer.write_object(self._path_table("Includes", self.includes))
        except PersistenceError as e:
            logging.error(f"Failed to serialize project '{self.name}': {e}")
            return False

        return True

    def deserialize(self) -> bool:
        """
        Read the project document at location/name.gprj.

        Unknown keys are ignored so newer documents still load. On failure
        the project keeps its previous name, kind, files and includes.

        Returns:
            True on success; failures are logged
        """
        if self.location is None:
            self._log_location_missing("deserialize")
            return False

        name, kind = self.name, self.kind
        files: List[Path] = []
        includes: List[Path] = []

        try:
            for obj in Deserializer(self.document_path):
                if obj.name == "Name":
                    name = obj.string
                elif obj.name == "Kind":
                    kind = ProjectKind.from_string(obj.string)
                elif obj.name == "Files":
                    files.extend(normalize_path(path, self.location) for path in obj.strings())
                elif obj.name == "Includes":
                    includes.extend(normalize_path(path, self.location) for path in obj.strings())
                else:
                    logging.debug(f"Ignoring unknown project key '{obj.name}'")
        except PersistenceError as e:
            logging.error(f"Failed to deserialize project '{self.name}': {e}")
            return False

        self.name = name
        self.kind = kind
        self.files = files
        self.includes = includes
        logging.info(f"Project: {self.name}")
        return True

    def _path_table(self, name: str, paths: List[Path]) -> Object:
        table = Object.table(name)
        for path in paths:
            table.add_child(Object(relative_path_string(path, self.location)))
        return table

    def _log_location_missing(self, action: str) -> None:
        what = f"project '{self.name}'" if self.name else "unnamed project"
        logging.error(f"Failed to {action} {what}. Location not specified.")

    def __repr__(self) -> str:
        return f"Project(name={self.name!r}, kind={self.kind.value}, files={len(self.files)})"
