"""CLI utility functions for Geno.

This module provides common utilities used across CLI commands including:
- Workspace document discovery
- Build matrix selection parsing
- Error handling and formatting
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

from geno.components.workspace import Workspace


class WorkspaceLocator:
    """Finds the workspace document a command should operate on."""

    @staticmethod
    def locate(path: Path) -> Path:
        """Resolve a path to a workspace document.

        Args:
            path: A .gwks file, or a directory containing exactly one

        Returns:
            Path to the workspace document

        Raises:
            FileNotFoundError: If no workspace document is found
            ValueError: If a directory holds several workspace documents
        """
        if path.is_file():
            return path

        if not path.is_dir():
            raise FileNotFoundError(f"Workspace not found: {path}")

        candidates = sorted(path.glob(f"*{Workspace.EXTENSION}"))
        if not candidates:
            raise FileNotFoundError(f"No {Workspace.EXTENSION} file found in {path}")
        if len(candidates) > 1:
            names = ", ".join(candidate.name for candidate in candidates)
            raise ValueError(f"Several workspaces found in {path}: {names}. Pass one explicitly.")

        return candidates[0]


class SelectionParser:
    """Parses build matrix selections given on the command line."""

    @staticmethod
    def parse(values: Optional[List[str]]) -> Optional[Dict[str, str]]:
        """Parse "Column=Option" strings.

        Args:
            values: Strings from repeated --select flags

        Returns:
            Column -> option mapping, or None when nothing was selected

        Raises:
            ValueError: If a value is not of the form Column=Option
        """
        if not values:
            return None

        selection = {}
        for value in values:
            column, sep, option = value.partition("=")
            if not sep or not column.strip() or not option.strip():
                raise ValueError(f"Invalid selection '{value}'. Expected Column=Option")
            selection[column.strip()] = option.strip()

        return selection


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        if message:
            print()
            print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}! {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_file_not_found(error: FileNotFoundError) -> None:
        """Report a missing workspace or project and exit with status 2."""
        ErrorFormatter.print_error("Error: File not found", str(error))
        print("Pass a .gwks file or a directory containing one.")
        sys.exit(2)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Report an unexpected error and exit with status 1.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)
