"""
Step executor module for running shell commands.
Commands run through ``/bin/bash -c`` with the parent's environment; streams
are inherited unless capture is requested.
"""

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)

SHELL = "/bin/bash"


@dataclass
class ExecutionResult:
    """Result of a command execution."""
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class StepExecutor:
    """Runs rendered shell commands."""

    def __init__(self, cwd: Optional[Path] = None):
        """
        Args:
            cwd: Working directory for commands (default: current directory)
        """
        self.cwd = cwd

    def execute_command(
        self,
        command: str,
        capture_stdout: bool = False,
        capture_stderr: bool = False,
    ) -> ExecutionResult:
        """
        Execute a command.

        Args:
            command: Fully rendered command line
            capture_stdout: Pipe and decode stdout instead of inheriting it
            capture_stderr: Pipe and decode stderr instead of inheriting it

        Returns:
            ExecutionResult with the exit code and any captured output

        Raises:
            OSError: If the shell cannot be spawned
        """
        logger.debug(f"Executing: {command}")
        start_time = time.time()

        result = subprocess.run(
            [SHELL, "-c", command],
            cwd=str(self.cwd) if self.cwd else None,
            env=os.environ.copy(),
            stdout=subprocess.PIPE if capture_stdout else None,
            stderr=subprocess.PIPE if capture_stderr else None,
        )

        duration_ms = int((time.time() - start_time) * 1000)
        stdout = result.stdout.decode('utf-8', errors='replace') if capture_stdout else ""
        stderr = result.stderr.decode('utf-8', errors='replace') if capture_stderr else ""
        logger.debug(f"Command exited with {result.returncode} after {duration_ms}ms")

        return ExecutionResult(
            exit_code=result.returncode,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
        )
