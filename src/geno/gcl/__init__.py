"""GCL: the ordered object-tree document format used for workspaces and projects."""

from .deserializer import Deserializer, dumps, loads
from .object import GCLError, Object
from .serializer import Serializer

__all__ = [
    "Object",
    "GCLError",
    "Serializer",
    "Deserializer",
    "loads",
    "dumps",
]
