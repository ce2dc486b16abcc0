"""Supervisor loop: keeps one generation of clients in sync with config.yml."""

import queue
import threading
from enum import Enum, auto
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from .config import config_file_path, default_config_root, load_config
from .exceptions import TeardownError, WatchError
from .generation import Generation
from .launcher import launch
from .watcher import ConfigWatcher

logger = structlog.get_logger()


class SupervisorState(Enum):
    """Supervisor loop states."""

    STOPPED = auto()
    RUNNING = auto()
    RELOADING = auto()


class SupervisorSettings(BaseModel):
    """Supervisor settings."""

    config_root: Path = Field(default_factory=default_config_root)
    debounce_seconds: float = Field(default=1.0, ge=0)  # Settle time after a write
    grace_seconds: float = Field(default=2.0, ge=0)  # Pause between stop and start
    stop_timeout: float = Field(default=5.0, gt=0)  # SIGTERM to SIGKILL delay
    poll_interval: float = Field(default=0.5, gt=0)  # Event wait / watcher check

    @property
    def config_path(self) -> Path:
        return config_file_path(self.config_root)


class Supervisor:
    """Runs every configured ck-client and restarts them all when config.yml changes."""

    def __init__(self, settings: SupervisorSettings, binary: Path):
        self.settings = settings
        self.binary = binary

        self._events: queue.Queue = queue.Queue()
        self._watcher = ConfigWatcher(settings.config_path, self._events)
        self._shutdown = threading.Event()
        self._generation: Generation | None = None
        self._generation_counter = 0
        self._state = SupervisorState.STOPPED
        self._reload_count = 0

    @property
    def state(self) -> SupervisorState:
        return self._state

    @property
    def generation(self) -> Generation | None:
        """The live generation, if any."""
        return self._generation

    @property
    def reload_count(self) -> int:
        """Number of completed reload cycles."""
        return self._reload_count

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown.is_set()

    def start(self) -> None:
        """Launch the first generation and begin watching config.yml.

        Raises:
            ConfigError: If config.yml is missing or invalid.
            LaunchError: If any client fails to start.
            WatchError: If the config directory cannot be watched.
        """
        if self._state != SupervisorState.STOPPED:
            return

        self.settings.config_root.mkdir(parents=True, exist_ok=True)
        logger.info(
            "supervisor_starting",
            config_root=str(self.settings.config_root),
            binary=str(self.binary),
        )

        self._generation = self._launch_generation()
        self._state = SupervisorState.RUNNING
        self._watcher.start()

    def run(self) -> None:
        """Run the supervisor loop until shutdown.

        Config and launch errors during a reload end the loop and propagate.
        All clients are stopped whenever this returns.
        """
        try:
            self.start()
            logger.info("supervisor_running", clients=self._generation.names)

            while not self._shutdown.is_set():
                self._check_watcher()
                try:
                    event = self._events.get(timeout=self.settings.poll_interval)
                except queue.Empty:
                    continue

                logger.info("config_changed", event_type=event.event_type)
                self.reload()
        except KeyboardInterrupt:
            logger.info("keyboard_interrupt")
        finally:
            self.shutdown()

    def reload(self) -> None:
        """Replace the live generation with a fresh one from config.yml.

        Waits out the debounce window, stops the old generation, waits the
        grace period, then launches the new one. Writes that land inside the
        debounce window are folded into this single reload.
        """
        self._state = SupervisorState.RELOADING

        if self._shutdown.wait(self.settings.debounce_seconds):
            return
        coalesced = self._drain_events()
        if coalesced:
            logger.debug("config_events_coalesced", count=coalesced)

        old = self._generation
        self._generation = None
        if old is not None:
            old.cancel()
            if not old.wait_closed(timeout=self._teardown_timeout(old)):
                logger.error("generation_close_timeout", generation=old.generation_id)
                # Keep it so shutdown() waits on it again
                self._generation = old
                raise TeardownError(
                    f"Generation {old.generation_id} did not stop in time: {old.names}"
                )

        if self._shutdown.wait(self.settings.grace_seconds):
            return

        self._generation = self._launch_generation()
        self._state = SupervisorState.RUNNING
        self._reload_count += 1
        logger.info(
            "reload_complete",
            generation=self._generation.generation_id,
            clients=self._generation.names,
        )

    def request_shutdown(self) -> None:
        """Request a graceful shutdown (called from signal handler)."""
        self._shutdown.set()

    def shutdown(self) -> None:
        """Stop watching and stop every client."""
        self._shutdown.set()
        self._watcher.stop()

        if self._generation is not None:
            logger.info("shutting_down", clients=self._generation.names)
            generation, self._generation = self._generation, None
            generation.close(timeout=self._teardown_timeout(generation))

        if self._state != SupervisorState.STOPPED:
            self._state = SupervisorState.STOPPED
            logger.info("shutdown_complete")

    def _launch_generation(self) -> Generation:
        logger.info("loading_config", path=str(self.settings.config_path))
        config = load_config(self.settings.config_path)

        self._generation_counter += 1
        generation = launch(
            self.settings.config_root,
            config,
            self.binary,
            generation_id=self._generation_counter,
            stop_timeout=self.settings.stop_timeout,
        )
        if not generation.processes:
            logger.warning("no_clients_configured", path=str(self.settings.config_path))
        return generation

    def _drain_events(self) -> int:
        drained = 0
        while True:
            try:
                self._events.get_nowait()
            except queue.Empty:
                return drained
            drained += 1

    def _check_watcher(self) -> None:
        """Restart the observer if its thread has died."""
        if self._watcher.alive:
            return
        logger.error("watch_error", error="config watcher stopped unexpectedly")
        try:
            self._watcher.restart()
        except WatchError as e:
            logger.error("watch_error", error=str(e))

    def _teardown_timeout(self, generation: Generation) -> float:
        # SIGTERM wait plus the SIGKILL wait, per process
        return (self.settings.stop_timeout + 2.0) * max(len(generation.processes), 1)
