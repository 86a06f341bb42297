"""
Build configuration value types.

A Configuration describes the options of one build variant: target
architecture, preprocessor defines, include and library search paths,
libraries to link and the kind of output to produce. It is a pure value;
compilers read it, build matrices compose it.
"""

import platform
import sys
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set

from ..errors import PersistenceError


class Architecture(Enum):
    """Target CPU architecture."""

    X86 = "x86"
    X86_64 = "x86_64"

    @classmethod
    def from_string(cls, value: str) -> "Architecture":
        """Convert a document string to an Architecture.

        Raises:
            PersistenceError: If the string names no known architecture
        """
        try:
            return cls(value)
        except ValueError:
            raise PersistenceError(f"Unknown architecture: '{value}'")


class ProjectKind(Enum):
    """Kind of binary a project produces."""

    APPLICATION = "Application"
    STATIC_LIBRARY = "StaticLibrary"
    DYNAMIC_LIBRARY = "DynamicLibrary"

    @classmethod
    def from_string(cls, value: str) -> "ProjectKind":
        """Convert a document string to a ProjectKind.

        Raises:
            PersistenceError: If the string names no known project kind
        """
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(kind.value for kind in cls)
            raise PersistenceError(
                f"Unknown project kind: '{value}'. Expected one of: {valid}"
            )


def host_architecture() -> Architecture:
    """Detect the architecture of the machine running the build.

    The interpreter's pointer size wins over platform.machine(), so a 32-bit
    Python on a 64-bit Windows host reports x86. Anything that is not
    recognizably 32-bit x86 is treated as x86_64.

    Returns:
        Host Architecture
    """
    if sys.maxsize <= 2**32:
        return Architecture.X86

    machine = platform.machine().lower()
    if machine in ("i386", "i686", "x86"):
        return Architecture.X86

    return Architecture.X86_64


@dataclass
class Configuration:
    """Options for a single build variant.

    Attributes:
        architecture: Target architecture, None means the host architecture
        defines: Preprocessor defines (e.g. "DEBUG" or "VERSION=2")
        include_dirs: Additional include directories
        library_dirs: Additional library search directories
        libraries: Library names or paths to link against
        kind: Output kind of the project being built
    """

    architecture: Optional[Architecture] = None
    defines: List[str] = field(default_factory=list)
    include_dirs: List[Path] = field(default_factory=list)
    library_dirs: List[Path] = field(default_factory=list)
    libraries: List[str] = field(default_factory=list)
    kind: ProjectKind = ProjectKind.APPLICATION

    # Fields a build matrix option may assign
    OVERLAY_FIELDS = ("architecture", "defines", "include_dirs", "library_dirs", "libraries")

    def target_architecture(self) -> Architecture:
        """Architecture to build for, falling back to the host."""
        return self.architecture or host_architecture()

    def assigned_fields(self) -> Set[str]:
        """Get the names of overlay fields this configuration actually sets.

        Returns:
            Set of field names with a non-None or non-empty value
        """
        assigned = set()
        for f in fields(self):
            if f.name not in self.OVERLAY_FIELDS:
                continue
            value = getattr(self, f.name)
            if value:
                assigned.add(f.name)
        return assigned

    def merged(self, overlay: "Configuration") -> "Configuration":
        """Apply an overlay on top of this configuration.

        The overlay's architecture replaces ours when it is set; list fields
        are concatenated, ours first. The kind is never taken from the
        overlay since projects decide their own kind.

        Args:
            overlay: Configuration whose assigned fields are applied

        Returns:
            New merged Configuration
        """
        return Configuration(
            architecture=overlay.architecture or self.architecture,
            defines=self.defines + overlay.defines,
            include_dirs=self.include_dirs + overlay.include_dirs,
            library_dirs=self.library_dirs + overlay.library_dirs,
            libraries=self.libraries + overlay.libraries,
            kind=self.kind,
        )
