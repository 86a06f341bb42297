"""Build configuration, build matrix and tool settings for Geno."""

from .build_matrix import BuildMatrix, BuildMatrixError, Column
from .configuration import Architecture, Configuration, ProjectKind, host_architecture
from .settings import GenoSettings, SettingsError

__all__ = [
    "Architecture",
    "Configuration",
    "ProjectKind",
    "host_architecture",
    "BuildMatrix",
    "BuildMatrixError",
    "Column",
    "GenoSettings",
    "SettingsError",
]
