"""ck-client process lifecycle management."""

import subprocess
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import IO

import structlog

from .config import ClientConfig

logger = structlog.get_logger()


class ProcessState(Enum):
    """Client process states."""

    PENDING = auto()  # Not yet started
    RUNNING = auto()  # Process is running
    STOPPED = auto()  # Stopped and reaped


@dataclass
class ClientProcess:
    """Manages a single ck-client subprocess."""

    name: str
    spec: ClientConfig
    binary: Path
    payload_path: Path
    log_path: Path

    # Internal state
    _process: subprocess.Popen | None = field(default=None, init=False, repr=False)
    _log_file: IO | None = field(default=None, init=False, repr=False)
    _state: ProcessState = field(default=ProcessState.PENDING, init=False)
    _exit_code: int | None = field(default=None, init=False)

    @property
    def state(self) -> ProcessState:
        """Current process state."""
        return self._state

    @property
    def pid(self) -> int | None:
        """Process ID if started."""
        return self._process.pid if self._process else None

    @property
    def exit_code(self) -> int | None:
        """Exit code if process has terminated."""
        return self._exit_code

    @property
    def log_closed(self) -> bool:
        """True once the log file handle has been released."""
        return self._log_file is None

    def command(self) -> list[str]:
        """Build the ck-client command line."""
        return [
            str(self.binary),
            "-c",
            str(self.payload_path),
            "-s",
            self.spec.server,
            "-p",
            str(self.spec.port),
            "-l",
            str(self.spec.listen),
        ]

    def start(self) -> None:
        """Write the payload file, open the log and start ck-client.

        Raises:
            RuntimeError: If process is already running.
            OSError: If a side file cannot be written or the spawn fails.
            ValueError: If a side file path or argument contains a NUL byte.
        """
        if self._state == ProcessState.RUNNING:
            raise RuntimeError(f"Client {self.name} is already running")

        self.payload_path.write_text(self.spec.config, encoding="utf-8")

        # Truncate: each generation gets a fresh log
        self._log_file = open(self.log_path, "wb")

        cmd = self.command()
        logger.info(
            "starting_client",
            name=self.name,
            server=self.spec.server,
            port=self.spec.port,
            listen=self.spec.listen,
        )

        try:
            self._process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=self._log_file,
                stderr=subprocess.STDOUT,
            )
        except OSError:
            self._cleanup_log()
            raise

        self._state = ProcessState.RUNNING
        self._exit_code = None

        logger.info(
            "client_started",
            name=self.name,
            pid=self._process.pid,
            payload=str(self.payload_path),
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the process gracefully, then forcefully if needed.

        Always releases the log file. Calling it again is a no-op.

        Args:
            timeout: Seconds to wait for graceful shutdown before SIGKILL.
        """
        try:
            if self._process and self._state == ProcessState.RUNNING:
                logger.info("stopping_client", name=self.name, pid=self._process.pid)

                self._process.terminate()

                try:
                    self._process.wait(timeout=timeout)
                except subprocess.TimeoutExpired:
                    logger.warning("force_killing_client", name=self.name)
                    self._process.kill()
                    self._process.wait(timeout=2.0)

                self._exit_code = self._process.returncode
                self._state = ProcessState.STOPPED
        finally:
            self._cleanup_log()

    def _cleanup_log(self) -> None:
        """Close log file if open."""
        if self._log_file:
            self._log_file.close()
            self._log_file = None
