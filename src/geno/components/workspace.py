"""
Workspaces: the top-level build session.

A workspace owns its projects, one lazily created compiler shared by all of
them, a build matrix and a FIFO queue of project names waiting to be built.
Projects are built strictly one at a time from that queue.

Build state machine:
    IDLE -> BUILDING -> BUILDING (next project) | DONE | ABORTED

Failure policy: when a project fails (or the build is cancelled) the build
stops. The failed project's name is put back at the front of the queue and
the remaining names are left untouched, so a later build() retries from the
failed project. reset_build_queue() starts over with every project.

Workspace document (<location>/<name>.gwks):
    Name: MyWorkspace
    Projects:
    	engine/Engine.gprj
    	game/Game.gprj
    Matrix:
    	Configuration:
    		Debug
    		Release
"""

import logging
import os
import threading
from collections import deque
from enum import Enum
from pathlib import Path
from typing import Callable, Deque, List, Mapping, Optional

from ..compilers.compiler import ICompiler
from ..compilers.factory import create_compiler
from ..config.build_matrix import BuildMatrix
from ..config.configuration import Configuration
from ..errors import ConfigurationError, PersistenceError
from ..gcl import Deserializer, Object, Serializer
from .events import EventChannel, ProjectBuildFinished, WorkspaceBuildFinished
from .project import PathLike, Project, normalize_path, relative_path_string

CompilerFactory = Callable[[Path], ICompiler]


class WorkspaceError(ConfigurationError):
    """Raised for invalid workspace operations."""
    pass


class WorkspaceState(Enum):
    """Build state of a workspace."""

    IDLE = "idle"
    BUILDING = "building"
    DONE = "done"
    ABORTED = "aborted"


class Workspace:
    """
    A collection of projects built together.

    Example usage:
        workspace = Workspace(Path("/work"), "Demo")
        project = workspace.new_project(Path("/work/game"), "Game")
        project.add_file("main.cpp")
        workspace.build_finished.subscribe(lambda e: print(e.success, e.output))
        workspace.build()
    """

    EXTENSION = ".gwks"

    def __init__(
        self,
        location: Optional[PathLike] = None,
        name: str = "MyWorkspace",
        compiler_factory: Optional[CompilerFactory] = None,
        build_dir: Optional[Path] = None,
        max_workers: Optional[int] = None
    ):
        """
        Initialize workspace.

        Args:
            location: Directory holding the workspace document
            name: Workspace name
            compiler_factory: Creates the compiler from the build directory
                (defaults to the host toolchain)
            build_dir: Build output root (default: <location>/build)
            max_workers: Maximum concurrent compiles per project
        """
        self.location: Optional[Path] = Path(os.path.abspath(location)) if location else None
        self.name = name
        self.projects: List[Project] = []
        self.projects_left_to_build: Deque[str] = deque()
        self.build_matrix = BuildMatrix()
        self.default_configuration = Configuration()
        self.max_workers = max_workers
        self.state = WorkspaceState.IDLE

        self.build_finished: EventChannel[WorkspaceBuildFinished] = EventChannel()
        self.project_build_finished: EventChannel[ProjectBuildFinished] = EventChannel()

        self._compiler_factory = compiler_factory or create_compiler
        self._build_dir = build_dir
        self._compiler: Optional[ICompiler] = None

    @classmethod
    def load(cls, path: PathLike, **kwargs) -> Optional["Workspace"]:
        """
        Load a workspace document.

        Args:
            path: Path to a .gwks file
            **kwargs: Forwarded to the constructor

        Returns:
            Workspace, or None if it could not be loaded (logged)
        """
        path = Path(os.path.abspath(path))
        workspace = cls(path.parent, path.stem, **kwargs)
        if not workspace.deserialize():
            return None
        return workspace

    @property
    def document_path(self) -> Optional[Path]:
        if self.location is None:
            return None
        return self.location / f"{self.name}{self.EXTENSION}"

    @property
    def build_dir(self) -> Path:
        if self._build_dir is not None:
            return self._build_dir
        return (self.location or Path.cwd()) / "build"

    @property
    def compiler(self) -> ICompiler:
        """The workspace's compiler, created on first use."""
        if self._compiler is None:
            self._compiler = self._compiler_factory(self.build_dir)
        return self._compiler

    def new_project(self, location: PathLike, name: str) -> Project:
        """
        Create a project and queue it for building.

        The returned reference is only guaranteed to stay meaningful until the
        project list is next changed; look projects up by name afterwards.

        Raises:
            WorkspaceError: If a project with this name exists
        """
        if self.project_by_name(name) is not None:
            raise WorkspaceError(f"Workspace '{self.name}' already has a project named '{name}'")

        project = Project(location, name)
        self.projects.append(project)
        self.projects_left_to_build.append(name)
        return project

    def project_by_name(self, name: str) -> Optional[Project]:
        """Find a project by exact name, None if there is none."""
        for project in self.projects:
            if project.name == name:
                return project
        return None

    def remove_project(self, name: str) -> bool:
        """Remove a project and drop it from the build queue.

        Returns:
            True if a project was removed
        """
        project = self.project_by_name(name)
        if project is None:
            return False

        self.projects.remove(project)
        self.projects_left_to_build = deque(n for n in self.projects_left_to_build if n != name)
        return True

    def reset_build_queue(self) -> None:
        """Queue every project again, in project list order."""
        self.projects_left_to_build = deque(project.name for project in self.projects)
        self.state = WorkspaceState.IDLE

    def build(
        self,
        selection: Optional[Mapping[str, str]] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> bool:
        """
        Build the queued projects in order.

        Args:
            selection: Build matrix choice (column -> option); None builds the
                default configuration
            cancel_event: Set to stop between files and between projects

        Returns:
            True if every queued project built

        Raises:
            ConfigurationError: If the compiler cannot be created
        """
        if not self.projects_left_to_build:
            self.state = WorkspaceState.DONE
            self.build_finished.publish(WorkspaceBuildFinished(self, None, True))
            return True

        configuration = self.default_configuration
        if selection is not None:
            try:
                configuration = self.build_matrix.resolve(selection, base=self.default_configuration)
            except ConfigurationError as e:
                logging.error(f"Cannot build workspace '{self.name}': {e}")
                return self._abort(None)

        compiler = self.compiler
        output: Optional[Path] = None

        while self.projects_left_to_build:
            if cancel_event is not None and cancel_event.is_set():
                logging.warning(f"Build of workspace '{self.name}' cancelled")
                return self._abort(output)

            name = self.projects_left_to_build.popleft()
            self.state = WorkspaceState.BUILDING

            project = self.project_by_name(name)
            if project is None:
                logging.error(f"Queued project '{name}' is not part of workspace '{self.name}'")
                self.projects_left_to_build.appendleft(name)
                return self._abort(output)

            try:
                result = project.build(
                    compiler,
                    configuration,
                    cancel_event=cancel_event,
                    max_workers=self.max_workers,
                )
            except KeyboardInterrupt:
                self.projects_left_to_build.appendleft(name)
                self.state = WorkspaceState.ABORTED
                raise
            self.project_build_finished.publish(
                ProjectBuildFinished(self, project, result.output, result.success)
            )

            if not result.success:
                self.projects_left_to_build.appendleft(name)
                remaining = len(self.projects_left_to_build) - 1
                logging.error(
                    f"Project '{name}' failed; stopping with {remaining} project(s) left to build"
                )
                return self._abort(result.output)

            if result.output is not None:
                output = result.output

        self.state = WorkspaceState.DONE
        logging.info(f"Workspace '{self.name}' built successfully")
        self.build_finished.publish(WorkspaceBuildFinished(self, output, True))
        return True

    def _abort(self, output: Optional[Path]) -> bool:
        self.state = WorkspaceState.ABORTED
        self.build_finished.publish(WorkspaceBuildFinished(self, output, False))
        return False

    def serialize(self) -> bool:
        """
        Write the workspace document and every project document.

        The workspace document is left untouched when any project document
        cannot be written.

        Returns:
            True if everything was written; failures are logged
        """
        if self.location is None:
            logging.error(f"Failed to serialize workspace '{self.name}'. Location not specified.")
            return False

        project_paths = Object.table("Projects")
        for project in self.projects:
            if not project.serialize():
                logging.error(f"Not writing workspace '{self.name}': project '{project.name}' failed to save")
                return False
            project_paths.add_child(Object(relative_path_string(project.document_path, self.location)))

        try:
            with Serializer(self.document_path) as serializer:
                serializer.write_object(Object("Name", self.name))
                serializer.write_object(project_paths)
                serializer.write_object(self.build_matrix.serialize())
        except PersistenceError as e:
            logging.error(f"Failed to serialize workspace '{self.name}': {e}")
            return False

        return True

    def deserialize(self) -> bool:
        """
        Read the workspace document and load its projects.

        The build queue is reset to the loaded project list. On failure the
        workspace keeps its previous name, projects, matrix and queue.

        Returns:
            True on success; failures are logged
        """
        if self.location is None:
            logging.error(f"Failed to deserialize workspace '{self.name}'. Location not specified.")
            return False

        name = self.name
        projects: List[Project] = []
        build_matrix = BuildMatrix()

        try:
            for obj in Deserializer(self.document_path):
                if obj.name == "Name":
                    name = obj.string
                elif obj.name == "Projects":
                    for path_string in obj.strings():
                        projects.append(self._load_project(normalize_path(path_string, self.location), projects))
                elif obj.name == "Matrix":
                    build_matrix.deserialize(obj)
                else:
                    logging.debug(f"Ignoring unknown workspace key '{obj.name}'")
        except (PersistenceError, ConfigurationError) as e:
            logging.error(f"Failed to deserialize workspace '{self.name}': {e}")
            return False

        self.name = name
        self.projects = projects
        self.build_matrix = build_matrix
        self.reset_build_queue()
        logging.info(f"Workspace: {self.name} ({len(self.projects)} projects)")
        return True

    @staticmethod
    def _load_project(document: Path, loaded: List[Project]) -> Project:
        project = Project(document.parent, document.stem)
        if not project.deserialize():
            raise PersistenceError(f"Failed to load project document {document}")
        if any(other.name == project.name for other in loaded):
            raise PersistenceError(f"Duplicate project name '{project.name}' in workspace")
        return project

    def __repr__(self) -> str:
        return f"Workspace(name={self.name!r}, projects={len(self.projects)}, state={self.state.value})"
