"""Launch and stop the plugin's watch-mode build."""
from __future__ import annotations

import logging
import shlex
import signal
import subprocess
from pathlib import Path
from subprocess import TimeoutExpired
from typing import Optional, Sequence

LOGGER = logging.getLogger(__name__)

WATCH_ARGS: Sequence[str] = ("build", "--watch", "--mode", "dev")


class BuildProcess:
    """Run ``<command> build --watch --mode dev`` for the server's lifetime."""

    def __init__(
        self,
        command: str,
        *,
        args: Sequence[str] = WATCH_ARGS,
        cwd: Optional[Path] = None,
    ) -> None:
        self.command = command
        self.args = tuple(args)
        self.cwd = cwd
        self._process: Optional[subprocess.Popen] = None

    @property
    def command_line(self) -> str:
        return " ".join([self.command, *(shlex.quote(arg) for arg in self.args)])

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> bool:
        """Spawn the build; a launch failure is logged and reported as ``False``."""

        if self.running:
            return True
        LOGGER.info("Starting watch build: %s", self.command_line)
        try:
            self._process = subprocess.Popen(  # noqa: S602 - user supplied build command
                self.command_line,
                shell=True,
                cwd=str(self.cwd) if self.cwd else None,
            )
        except OSError as exc:
            LOGGER.error("Failed to start watch build %r: %s", self.command_line, exc)
            self._process = None
            return False
        return True

    def stop(self, *, terminate_timeout: float = 5.0, kill_timeout: float = 2.0) -> Optional[int]:
        process = self._process
        if process is None:
            return None
        self._process = None

        returncode = process.poll()
        if returncode is not None:
            LOGGER.info("Watch build already exited with status %s", returncode)
            return returncode

        def _wait_for_exit(timeout: float) -> Optional[int]:
            try:
                return process.wait(timeout=timeout)
            except TimeoutExpired:
                return None

        LOGGER.info("Stopping watch build (pid=%s)", process.pid)
        try:
            process.send_signal(signal.SIGTERM)
        except OSError as exc:
            LOGGER.warning("Failed to signal watch build: %s", exc)
        returncode = _wait_for_exit(terminate_timeout)
        if returncode is None:
            LOGGER.warning("Watch build ignored SIGTERM; killing it")
            process.kill()
            returncode = _wait_for_exit(kill_timeout)
        return returncode


__all__ = ["BuildProcess", "WATCH_ARGS"]
