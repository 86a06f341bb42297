"""
GCL document writer.

Objects are written in the order they are handed to write_object(); the
file layout is exactly the write order. Output goes to a temporary file next
to the target and replaces it atomically on close, so a failed write never
leaves a truncated document behind.
"""

import logging
import os
from pathlib import Path
from typing import IO, Optional

from .object import GCLError, Object


class Serializer:
    """Writes GCL objects to a document.

    Example usage:
        with Serializer(Path("MyProject.gprj")) as serializer:
            serializer.write_object(Object("Name", "MyProject"))
    """

    def __init__(self, path: Path):
        """
        Open a document for writing.

        Args:
            path: Document path

        Raises:
            GCLError: If the document cannot be opened
        """
        self.path = Path(path)
        self._temp_path = self.path.with_name(f"{self.path.name}.tmp")
        self._file: Optional[IO[str]] = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self._temp_path, "w", encoding="utf-8", newline="\n")
        except OSError as e:
            raise GCLError(f"Failed to open {self.path} for writing: {e}") from e

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def write_object(self, obj: Object) -> None:
        """Append an object (and its children) to the document.

        Raises:
            GCLError: If the serializer is closed or the write fails
        """
        if self._file is None:
            raise GCLError(f"Serializer for {self.path} is closed")

        try:
            for line in obj.walk_lines():
                self._file.write(line + "\n")
        except OSError as e:
            raise GCLError(f"Failed to write {self.path}: {e}") from e

    def close(self) -> None:
        """Flush and move the document into place."""
        if self._file is None:
            return

        self._file.close()
        self._file = None

        try:
            os.replace(self._temp_path, self.path)
        except OSError as e:
            raise GCLError(f"Failed to replace {self.path}: {e}") from e

    def discard(self) -> None:
        """Close without touching the target document."""
        if self._file is not None:
            self._file.close()
            self._file = None
        try:
            self._temp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logging.warning(f"Failed to remove temporary file {self._temp_path}: {e}")

    def __enter__(self) -> "Serializer":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()
