"""Workspaces, projects and the events they publish."""

from .events import EventChannel, ProjectBuildFinished, WorkspaceBuildFinished
from .project import Project, ProjectBuildResult, ProjectError
from .workspace import Workspace, WorkspaceError, WorkspaceState

__all__ = [
    "Project",
    "ProjectBuildResult",
    "ProjectError",
    "Workspace",
    "WorkspaceError",
    "WorkspaceState",
    "EventChannel",
    "ProjectBuildFinished",
    "WorkspaceBuildFinished",
]
