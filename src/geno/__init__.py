"""Geno: build orchestration for C and C++ workspaces."""

from .components import Project, Workspace, WorkspaceBuildFinished
from .config import Architecture, BuildMatrix, Configuration, ProjectKind

__version__ = "0.1.0"

__all__ = [
    "Workspace",
    "Project",
    "WorkspaceBuildFinished",
    "Configuration",
    "Architecture",
    "ProjectKind",
    "BuildMatrix",
]
