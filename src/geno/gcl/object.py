"""
GCL object model.

A GCL document is an ordered tree of named objects. Each object holds either
a string value or a table of child objects. Tables of plain strings (file
lists, build matrix options) are made of bare entries: objects that only have
a name, whose string is the name itself.
"""

import json
from typing import Iterator, List, Optional, Union

from ..errors import PersistenceError


class GCLError(PersistenceError):
    """Raised when a GCL document cannot be opened, parsed or written."""
    pass


Value = Union[str, List["Object"], None]


class Object:
    """A named node in a GCL document.

    Example usage:
        files = Object("Files", [])
        files.add_child(Object("src/main.cpp"))
        name = Object("Name", "MyProject")
    """

    def __init__(self, name: str, value: Value = None):
        """
        Initialize object.

        Args:
            name: Object name (for bare entries, the entry text itself)
            value: String value, list of children for a table, or None
        """
        self.name = name
        self.value = value

    @classmethod
    def table(cls, name: str, children: Optional[List["Object"]] = None) -> "Object":
        """Create a table object."""
        return cls(name, list(children or []))

    @property
    def is_string(self) -> bool:
        return isinstance(self.value, str)

    @property
    def is_table(self) -> bool:
        return isinstance(self.value, list)

    @property
    def is_bare(self) -> bool:
        return self.value is None

    @property
    def string(self) -> str:
        """String value of this object.

        Bare entries return their name.

        Raises:
            GCLError: If the object is a table
        """
        if self.is_table:
            raise GCLError(f"Object '{self.name}' is a table, not a string")
        if self.value is None:
            return self.name
        return self.value

    @property
    def children(self) -> List["Object"]:
        """Children of a table object.

        Raises:
            GCLError: If the object is not a table
        """
        if not isinstance(self.value, list):
            raise GCLError(f"Object '{self.name}' is not a table")
        return self.value

    def add_child(self, child: "Object") -> "Object":
        self.children.append(child)
        return child

    def strings(self) -> List[str]:
        """Get the string of every child of a table."""
        return [child.string for child in self.children]

    def walk_lines(self, depth: int = 0) -> Iterator[str]:
        """Render this object and its children as document lines.

        Args:
            depth: Indentation level (tabs)

        Yields:
            Lines without trailing newline
        """
        indent = "\t" * depth
        name = quote(self.name)

        if isinstance(self.value, list):
            yield f"{indent}{name}:"
            for child in self.value:
                yield from child.walk_lines(depth + 1)
        elif self.value is None:
            yield f"{indent}{name}"
        else:
            yield f"{indent}{name}: {quote(self.value)}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Object):
            return NotImplemented
        return self.name == other.name and self.value == other.value

    def __repr__(self) -> str:
        return f"Object({self.name!r}, {self.value!r})"


def needs_quoting(text: str) -> bool:
    """Check whether text would be misread if written unquoted."""
    return (
        text == ""
        or text != text.strip()
        or ": " in text
        or text.endswith(":")
        or text.startswith('"')
        or text.startswith("#")
        or "\n" in text
        or "\t" in text
    )


def quote(text: str) -> str:
    """Quote text as a JSON string when needed."""
    if needs_quoting(text):
        return json.dumps(text)
    return text


def unquote(text: str) -> str:
    """Reverse quote().

    Raises:
        GCLError: If a quoted string is malformed
    """
    if text.startswith('"'):
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            raise GCLError(f"Malformed quoted string {text}: {e}") from e
        if not isinstance(value, str):
            raise GCLError(f"Quoted value is not a string: {text}")
        return value
    return text
