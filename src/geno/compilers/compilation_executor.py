"""Compilation Executor.

This module runs toolchain commands as child processes and turns the outcome
into a ProcessOutcome.

Design:
    - Wraps subprocess.run; the runner is injectable so tests never spawn
    - Exit code 0 is success, anything else is a failure
    - Spawn failures and timeouts are reported, never raised
    - Creates the output directory before the toolchain writes to it
"""

import logging
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from ..interrupt_utils import handle_keyboard_interrupt_properly

DEFAULT_TIMEOUT = 600.0

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class FailureKind(Enum):
    """Why a compile or link step failed."""

    TOOLCHAIN_NOT_FOUND = "toolchain_not_found"
    UNSUPPORTED_SOURCE = "unsupported_source"
    PROCESS_SPAWN = "process_spawn"
    NONZERO_EXIT = "nonzero_exit"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


@dataclass
class ProcessOutcome:
    """Result of running one toolchain command."""

    returncode: int
    stdout: str
    stderr: str
    failure: Optional[FailureKind] = None

    @property
    def success(self) -> bool:
        return self.failure is None


class CompilationExecutor:
    """Executes toolchain commands.

    Example usage:
        executor = CompilationExecutor(timeout=120)
        outcome = executor.execute(["gcc", "-c", "main.c", "-o", "main.o"], Path("main.o"))
    """

    def __init__(
        self,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        runner: Optional[Runner] = None
    ):
        """Initialize compilation executor.

        Args:
            timeout: Seconds a single toolchain process may run, None for no limit
            runner: subprocess.run compatible callable
        """
        self.timeout = timeout
        self.runner = runner or subprocess.run

    def execute(self, cmd: List[str], output_path: Optional[Path] = None) -> ProcessOutcome:
        """Run a toolchain command to completion.

        Args:
            cmd: Command and arguments
            output_path: File the command produces; its directory is created

        Returns:
            ProcessOutcome describing the run
        """
        if output_path is not None:
            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                return ProcessOutcome(
                    returncode=-1,
                    stdout="",
                    stderr=f"Failed to create {output_path.parent}: {e}",
                    failure=FailureKind.PROCESS_SPAWN,
                )

        logging.debug(f"Running: {' '.join(cmd)}")

        try:
            result = self.runner(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except KeyboardInterrupt as ke:
            handle_keyboard_interrupt_properly(ke)
            raise  # Never reached, but satisfies type checker
        except subprocess.TimeoutExpired:
            return ProcessOutcome(
                returncode=-1,
                stdout="",
                stderr=f"{Path(cmd[0]).name} timed out after {self.timeout}s",
                failure=FailureKind.TIMEOUT,
            )
        except OSError as e:
            return ProcessOutcome(
                returncode=-1,
                stdout="",
                stderr=f"Failed to start {cmd[0]}: {e}",
                failure=FailureKind.PROCESS_SPAWN,
            )

        failure = None if result.returncode == 0 else FailureKind.NONZERO_EXIT
        return ProcessOutcome(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
            failure=failure,
        )
