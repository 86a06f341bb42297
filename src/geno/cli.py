"""
Command-line interface for Geno.

This module provides the `geno` CLI tool for creating and building
workspaces without the IDE.
"""

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from geno.cli_utils import ErrorFormatter, SelectionParser, WorkspaceLocator
from geno.compilers.factory import create_compiler
from geno.components.events import ProjectBuildFinished
from geno.components.workspace import Workspace
from geno.config.configuration import ProjectKind
from geno.config.settings import GenoSettings
from geno.errors import ConfigurationError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class NewArgs:
    """Arguments for the new command."""

    directory: Path
    name: str


@dataclass
class AddProjectArgs:
    """Arguments for the add-project command."""

    workspace: Path
    directory: Path
    name: str
    kind: str = ProjectKind.APPLICATION.value
    files: List[Path] = field(default_factory=list)
    includes: List[Path] = field(default_factory=list)


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    workspace: Path
    select: Optional[List[str]] = None
    toolchain: Optional[str] = None
    jobs: Optional[int] = None
    verbose: bool = False
    log_file: Optional[Path] = None


@dataclass
class MatrixArgs:
    """Arguments for the matrix command."""

    workspace: Path


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    """Configure the root logger for CLI use.

    Args:
        verbose: Log DEBUG messages to the console instead of INFO
        log_file: Also log to this file (rotated at 10MB, 3 backups)
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_file),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=3,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)


def _load_workspace(path: Path, **kwargs) -> Workspace:
    """Locate and load a workspace, exiting with status 2 or 1 on failure."""
    try:
        document = WorkspaceLocator.locate(path)
    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except ValueError as e:
        ErrorFormatter.print_error("Ambiguous workspace", str(e))
        sys.exit(2)

    workspace = Workspace.load(document, **kwargs)
    if workspace is None:
        ErrorFormatter.print_error("Failed to load workspace", str(document))
        sys.exit(1)
    return workspace


def new_command(args: NewArgs) -> None:
    """Create an empty workspace.

    Examples:
        geno new .  Demo               # Writes ./Demo.gwks
    """
    workspace = Workspace(args.directory, args.name)
    if not workspace.serialize():
        ErrorFormatter.print_error("Failed to create workspace", str(workspace.document_path))
        sys.exit(1)

    ErrorFormatter.print_success(f"Created {workspace.document_path}")
    sys.exit(0)


def add_project_command(args: AddProjectArgs) -> None:
    """Add a project to a workspace.

    Examples:
        geno add-project Demo.gwks game Game src/main.cpp
        geno add-project Demo.gwks engine Engine --kind StaticLibrary
    """
    workspace = _load_workspace(args.workspace)

    try:
        kind = ProjectKind.from_string(args.kind)
        project = workspace.new_project(args.directory, args.name)
    except ConfigurationError as e:
        ErrorFormatter.print_error("Cannot add project", str(e))
        sys.exit(1)

    project.kind = kind
    for file in args.files:
        project.add_file(file.absolute())
    for include in args.includes:
        project.add_include(include.absolute())

    if not workspace.serialize():
        ErrorFormatter.print_error("Failed to save workspace", str(workspace.document_path))
        sys.exit(1)

    ErrorFormatter.print_success(f"Added project '{project.name}' ({len(project.files)} files)")
    sys.exit(0)


def build_command(args: BuildArgs) -> None:
    """Build every project of a workspace.

    Examples:
        geno build                        # Workspace in current directory
        geno build Demo.gwks -s Configuration=Release
        geno build -t clang -j 4          # Pick toolchain and parallelism
    """
    print("Geno Build System v0.1.0")
    print()

    try:
        selection = SelectionParser.parse(args.select)
        document = WorkspaceLocator.locate(args.workspace)
        settings = GenoSettings.load(document.parent).override(
            toolchain=args.toolchain,
            jobs=args.jobs,
        )

        workspace = _load_workspace(
            document,
            compiler_factory=lambda build_dir: create_compiler(build_dir, settings.toolchain),
            build_dir=settings.build_dir,
            max_workers=settings.jobs,
        )

        def report(event: ProjectBuildFinished) -> None:
            status = "ok" if event.success else "FAILED"
            output = f" -> {event.output}" if event.output else ""
            print(f"  [{status}] {event.project.name}{output}")

        workspace.project_build_finished.subscribe(report)

        print(f"Building workspace: {workspace.name}")
        start_time = time.time()
        success = workspace.build(selection)
        build_time = time.time() - start_time

        if success:
            ErrorFormatter.print_success("Build successful!")
            print(f"Build time: {build_time:.2f}s")
            sys.exit(0)
        else:
            remaining = ", ".join(workspace.projects_left_to_build) or "none"
            ErrorFormatter.print_error("Build failed", f"Projects left to build: {remaining}")
            sys.exit(1)

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except (ValueError, ConfigurationError) as e:
        ErrorFormatter.print_error("Invalid build request", str(e))
        sys.exit(2)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def matrix_command(args: MatrixArgs) -> None:
    """List build matrix columns and every selectable combination."""
    workspace = _load_workspace(args.workspace)
    matrix = workspace.build_matrix

    if not matrix.columns:
        print(f"Workspace '{workspace.name}' has no build matrix")
        sys.exit(0)

    for column in matrix.columns:
        print(f"{column.name}: {', '.join(column.options)}")

    for first, second, field_name in matrix.conflicts:
        ErrorFormatter.print_warning(f"Columns '{first}' and '{second}' both set '{field_name}'")

    print()
    for selection in matrix.combinations():
        print("  " + " ".join(f"{name}={option}" for name, option in selection.items()))

    sys.exit(0)


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point of the geno command."""
    parser = argparse.ArgumentParser(
        prog="geno",
        description="Build C and C++ workspaces",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # New command
    new_parser = subparsers.add_parser("new", help="Create an empty workspace")
    new_parser.add_argument("directory", type=Path, help="Workspace directory")
    new_parser.add_argument("name", help="Workspace name")

    # Add-project command
    add_parser = subparsers.add_parser("add-project", help="Add a project to a workspace")
    add_parser.add_argument("workspace", type=Path, help="Workspace file or directory")
    add_parser.add_argument("directory", type=Path, help="Project directory")
    add_parser.add_argument("name", help="Project name")
    add_parser.add_argument("files", nargs="*", type=Path, help="Source files")
    add_parser.add_argument(
        "-k",
        "--kind",
        default=ProjectKind.APPLICATION.value,
        choices=[kind.value for kind in ProjectKind],
        help="Output kind (default: Application)",
    )
    add_parser.add_argument(
        "-I",
        "--include",
        dest="includes",
        action="append",
        type=Path,
        default=[],
        help="Include directory (repeatable)",
    )

    # Build command
    build_parser = subparsers.add_parser("build", help="Build a workspace")
    build_parser.add_argument(
        "workspace",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Workspace file or directory (default: current directory)",
    )
    build_parser.add_argument(
        "-s",
        "--select",
        action="append",
        default=None,
        help="Build matrix choice as Column=Option (repeatable)",
    )
    build_parser.add_argument(
        "-t",
        "--toolchain",
        default=None,
        help="Toolchain: msvc, gcc or clang (default: host toolchain)",
    )
    build_parser.add_argument(
        "-j",
        "--jobs",
        default=None,
        type=int,
        help="Concurrent compiles per project (default: CPU count)",
    )
    build_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )
    build_parser.add_argument(
        "--log-file",
        default=None,
        type=Path,
        help="Also write the build log to this file",
    )

    # Matrix command
    matrix_parser = subparsers.add_parser("matrix", help="Show the build matrix")
    matrix_parser.add_argument(
        "workspace",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Workspace file or directory (default: current directory)",
    )

    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    setup_logging(
        verbose=getattr(parsed_args, "verbose", False),
        log_file=getattr(parsed_args, "log_file", None),
    )

    if parsed_args.command == "new":
        new_command(NewArgs(directory=parsed_args.directory, name=parsed_args.name))
    elif parsed_args.command == "add-project":
        add_project_command(
            AddProjectArgs(
                workspace=parsed_args.workspace,
                directory=parsed_args.directory,
                name=parsed_args.name,
                kind=parsed_args.kind,
                files=parsed_args.files,
                includes=parsed_args.includes,
            )
        )
    elif parsed_args.command == "build":
        build_command(
            BuildArgs(
                workspace=parsed_args.workspace,
                select=parsed_args.select,
                toolchain=parsed_args.toolchain,
                jobs=parsed_args.jobs,
                verbose=parsed_args.verbose,
                log_file=parsed_args.log_file,
            )
        )
    elif parsed_args.command == "matrix":
        matrix_command(MatrixArgs(workspace=parsed_args.workspace))


if __name__ == "__main__":
    main()
