"""Run verify/clean commands under a shell with a bounded run time."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import time
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """A command could not be run to completion."""

    def __init__(self, command: str, cwd: Path, message: str) -> None:
        super().__init__(f"{message}: {command!r} in {cwd}")
        self.command = command
        self.cwd = cwd


class CommandSpawnError(CommandError):
    """The shell process could not be started."""


class CommandTimedOut(CommandError):
    """The command exceeded its time limit and was killed."""

    def __init__(self, command: str, cwd: Path, timeout: float) -> None:
        super().__init__(command, cwd, f"Timed out after {timeout:g}s")
        self.timeout = timeout


@runtime_checkable
class CommandRunner(Protocol):
    """Capability to run an opaque command string inside a directory."""

    def run(self, command: str, cwd: Path) -> int:
        """Run ``command`` with ``cwd`` as working directory.

        Returns:
            The exit status (0 means success).

        Raises:
            CommandError: If the process could not be spawned or timed out.

        """
        ...


class ShellRunner:
    """Runs commands through ``sh -c`` with a timeout and kill grace period."""

    def __init__(
        self,
        timeout: float = 10.0,
        kill_grace: float = 5.0,
        *,
        verbose: bool = False,
        shell: str = "sh",
    ) -> None:
        """Initialize the runner.

        Args:
            timeout: Seconds before the command is sent SIGTERM.
            kill_grace: Seconds after SIGTERM before SIGKILL.
            verbose: Trace commands with ``sh -x`` and inherit standard streams.
            shell: Shell executable.

        """
        self.timeout = timeout
        self.kill_grace = kill_grace
        self.verbose = verbose
        self.shell = shell

    def _argv(self, command: str) -> list[str]:
        if self.verbose:
            return [self.shell, "-x", "-c", command]
        return [self.shell, "-c", command]

    def run(self, command: str, cwd: Path) -> int:
        """Run a command and wait for it to finish.

        Args:
            command: Command string passed verbatim to the shell.
            cwd: Working directory for the command.

        Returns:
            The exit status of the shell.

        Raises:
            CommandSpawnError: If the shell could not be started.
            CommandTimedOut: If the command ran past the timeout.

        """
        logger.debug("Running %r in %s", command, cwd)
        stream = None if self.verbose else subprocess.DEVNULL

        try:
            process = subprocess.Popen(
                self._argv(command),
                cwd=cwd,
                stdin=stream,
                stdout=stream,
                stderr=stream,
                start_new_session=True,
            )
        except OSError as e:
            raise CommandSpawnError(command, cwd, f"Cannot start {self.shell}: {e}") from e

        try:
            return process.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %gs: %r in %s", self.timeout, command, cwd)
            self._terminate(process)
            raise CommandTimedOut(command, cwd, self.timeout) from None

    def _terminate(self, process: subprocess.Popen[bytes]) -> None:
        """Stop the command's process group, escalating to SIGKILL.

        The whole group gets SIGKILL once the grace period ends, even when
        the shell itself exited on SIGTERM.
        """
        deadline = time.monotonic() + self.kill_grace
        self._signal_group(process, signal.SIGTERM)
        try:
            process.wait(timeout=self.kill_grace)
        except subprocess.TimeoutExpired:
            logger.warning("Process %d ignored SIGTERM, killing", process.pid)

        # Descendants may still be shutting down after the shell is gone
        while self._group_alive(process) and time.monotonic() < deadline:
            time.sleep(0.05)

        self._signal_group(process, signal.SIGKILL)
        process.wait()

    @staticmethod
    def _group_alive(process: subprocess.Popen[bytes]) -> bool:
        try:
            os.killpg(process.pid, 0)
        except ProcessLookupError:
            return False
        return True

    @staticmethod
    def _signal_group(process: subprocess.Popen[bytes], sig: signal.Signals) -> None:
        try:
            os.killpg(process.pid, sig)
        except ProcessLookupError:
            pass  # Process already gone
