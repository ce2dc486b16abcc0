"""A generation: the set of clients launched from one read of config.yml."""

import threading
from dataclasses import dataclass, field

import structlog

from .process import ClientProcess

logger = structlog.get_logger()


@dataclass
class Generation:
    """Owns every ClientProcess launched together, plus their cancellation token.

    Cancelling the token is the only way the processes get stopped. A single
    teardown thread per generation waits on the token and stops the whole
    set exactly once, no matter how many times cancel() is called.
    """

    generation_id: int
    processes: list[ClientProcess] = field(default_factory=list)
    stop_timeout: float = 5.0

    # Internal state
    _cancelled: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _closed: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    _teardown_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _torn_down: bool = field(default=False, init=False)
    _thread: threading.Thread | None = field(default=None, init=False, repr=False)

    @property
    def cancelled(self) -> bool:
        """True once cancel() has been called."""
        return self._cancelled.is_set()

    @property
    def closed(self) -> bool:
        """True once every process has been stopped and every log closed."""
        return self._closed.is_set()

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.processes]

    @property
    def pids(self) -> dict[str, int | None]:
        return {p.name: p.pid for p in self.processes}

    def start(self) -> None:
        """Start the background teardown thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._wait_and_teardown,
            name=f"generation-{self.generation_id}-teardown",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "generation_started",
            generation=self.generation_id,
            clients=self.names,
        )

    def cancel(self) -> None:
        """Signal teardown. Safe to call any number of times."""
        if self._cancelled.is_set():
            return
        logger.info("generation_cancelled", generation=self.generation_id)
        self._cancelled.set()
        if self._thread is None:
            # Never started, so nothing is waiting on the token
            self._teardown()

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Block until teardown has finished.

        Returns:
            True if the generation is fully closed.
        """
        return self._closed.wait(timeout)

    def close(self, timeout: float | None = None) -> bool:
        """Cancel and wait for teardown."""
        self.cancel()
        return self.wait_closed(timeout)

    def _wait_and_teardown(self) -> None:
        self._cancelled.wait()
        self._teardown()

    def _teardown(self) -> None:
        with self._teardown_lock:
            if self._torn_down:
                return
            self._torn_down = True

        try:
            for process in self.processes:
                try:
                    process.stop(timeout=self.stop_timeout)
                except Exception as e:
                    # Keep going so the rest of the set is still stopped
                    logger.error(
                        "client_stop_failed",
                        generation=self.generation_id,
                        name=process.name,
                        error=str(e),
                    )
        finally:
            self._closed.set()
            logger.info("generation_closed", generation=self.generation_id)
