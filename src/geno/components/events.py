"""
Build completion events.

Workspaces announce finished builds through EventChannels. Any number of
subscribers (GUI panels, loggers, the CLI) register a callback; publishing
calls each of them in subscription order. Subscribers return nothing and
cannot influence the build.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Generic, List, Optional, TypeVar

if TYPE_CHECKING:
    from .project import Project
    from .workspace import Workspace


E = TypeVar("E")


@dataclass
class WorkspaceBuildFinished:
    """Published once per Workspace.build() call.

    Attributes:
        workspace: Workspace that was built
        output: Output of the last project built, None if nothing was linked
        success: False when a project failed or the build was cancelled
    """

    workspace: "Workspace"
    output: Optional[Path]
    success: bool


@dataclass
class ProjectBuildFinished:
    """Published after each project of a workspace build."""

    workspace: "Workspace"
    project: "Project"
    output: Optional[Path]
    success: bool


class EventChannel(Generic[E]):
    """Publish/subscribe channel for one event type.

    Example usage:
        channel = EventChannel()
        unsubscribe = channel.subscribe(lambda event: print(event.success))
        channel.publish(event)
        unsubscribe()
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[E], None]] = []

    def subscribe(self, callback: Callable[[E], None]) -> Callable[[], None]:
        """Register a callback.

        Returns:
            Function that removes the callback again
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: Callable[[E], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def publish(self, event: E) -> None:
        """Deliver an event to every subscriber.

        A failing subscriber is logged and does not stop delivery to the
        others.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except KeyboardInterrupt:
                raise
            except Exception as e:
                logging.exception(f"Event subscriber {callback!r} failed: {e}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)
