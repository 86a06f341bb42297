"""
GCL document reader.

Format:
    Name: MyProject
    Kind: Application
    Files:
    	src/main.cpp
    	src/util.cpp

One object per line. Children are indented one tab deeper than their table.
"Key: value" is a string object, "Key:" opens a table, a line with neither is
a bare entry. Blank lines and lines starting with '#' are skipped.
"""

from pathlib import Path
from typing import Callable, Iterator, List, Tuple

from .object import GCLError, Object, unquote

ObjectCallback = Callable[[Object], None]


def _split_entry(text: str) -> Tuple[str, str, bool]:
    """Split one line into (name, value, opens_table).

    Returns:
        Tuple of name, raw value text ('' when absent) and whether the line
        opens a table
    """
    if text.startswith('"'):
        # Quoted name: find the closing quote before looking for the separator
        end = 1
        while end < len(text):
            if text[end] == "\\":
                end += 2
                continue
            if text[end] == '"':
                break
            end += 1
        name = text[:end + 1]
        rest = text[end + 1:]
    else:
        sep = text.find(": ")
        if sep >= 0:
            name, rest = text[:sep], text[sep:]
        elif text.endswith(":"):
            name, rest = text[:-1], ":"
        else:
            name, rest = text, ""

    if rest == "":
        return name, "", False
    if rest == ":":
        return name, "", True
    if rest.startswith(": "):
        return name, rest[2:], False

    raise GCLError(f"Unexpected text after name: {text!r}")


def parse_lines(lines: List[str], source: str = "<string>") -> List[Object]:
    """Parse document lines into top-level objects.

    Args:
        lines: Document lines
        source: Document name used in error messages

    Returns:
        Top-level objects in document order

    Raises:
        GCLError: On indentation or syntax errors
    """
    entries: List[Tuple[int, int, str]] = []
    for number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        stripped = line.lstrip("\t")
        if not stripped.strip() or stripped.startswith("#"):
            continue
        if stripped.startswith(" "):
            raise GCLError(f"{source}:{number}: indentation must use tabs")
        entries.append((number, len(line) - len(stripped), stripped))

    position = 0

    def parse_block(depth: int) -> List[Object]:
        nonlocal position
        objects: List[Object] = []

        while position < len(entries):
            number, indent, text = entries[position]
            if indent < depth:
                break
            if indent > depth:
                raise GCLError(f"{source}:{number}: unexpected indentation")

            position += 1
            name, value, opens_table = _split_entry(text)
            name = unquote(name)

            if opens_table:
                obj = Object.table(name, parse_block(depth + 1))
            elif value:
                obj = Object(name, unquote(value))
            else:
                obj = Object(name)

            objects.append(obj)

        return objects

    return parse_block(0)


def loads(text: str) -> List[Object]:
    """Parse a GCL document held in a string."""
    return parse_lines(text.splitlines())


def dumps(objects: List[Object]) -> str:
    """Render objects as a GCL document string."""
    lines: List[str] = []
    for obj in objects:
        lines.extend(obj.walk_lines())
    return "".join(line + "\n" for line in lines)


class Deserializer:
    """Reads the top-level objects of a GCL document.

    Example usage:
        deserializer = Deserializer(Path("MyProject.gprj"))
        deserializer.objects(lambda obj: print(obj.name))
    """

    def __init__(self, path: Path):
        """
        Open and parse a document.

        Args:
            path: Document path

        Raises:
            GCLError: If the document cannot be read or parsed
        """
        self.path = Path(path)

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except OSError as e:
            raise GCLError(f"Failed to open {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise GCLError(f"{self.path} is not valid UTF-8: {e}") from e

        self._objects = parse_lines(lines, source=str(self.path))

    def objects(self, callback: ObjectCallback) -> None:
        """Invoke callback once per top-level object, in file order."""
        for obj in self._objects:
            callback(obj)

    def __iter__(self) -> Iterator[Object]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)
