"""Watching config.yml for changes."""

import queue
from pathlib import Path

import structlog
from watchdog.events import (
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .exceptions import WatchError

logger = structlog.get_logger()


class ConfigChangeHandler(FileSystemEventHandler):
    """A watchdog event handler that queues writes to the config file.

    The observer watches the whole config directory, so events for the
    generated side files arrive here too and are dropped.
    """

    def __init__(self, config_path: Path, events: queue.Queue):
        super().__init__()
        self.config_path = Path(config_path).resolve()
        self.events = events

    def _is_config(self, path) -> bool:
        if isinstance(path, bytes):
            path = path.decode()
        return Path(path).resolve() == self.config_path

    def is_config_write(self, event: FileSystemEvent) -> bool:
        """Whether the event means config.yml now has new content."""
        if event.is_directory:
            return False
        if event.event_type == FileModifiedEvent.event_type:
            return self._is_config(event.src_path)
        if event.event_type == FileCreatedEvent.event_type:
            return self._is_config(event.src_path)
        if event.event_type == FileMovedEvent.event_type:
            # Editors that save by writing a temp file and renaming it
            return self._is_config(event.dest_path)
        return False

    def on_any_event(self, event: FileSystemEvent) -> None:
        if not self.is_config_write(event):
            return
        logger.debug("config_event", event_type=event.event_type, path=event.src_path)
        self.events.put(event)


class ConfigWatcher:
    """Runs a watchdog Observer over the directory holding config.yml."""

    def __init__(self, config_path: Path, events: queue.Queue):
        self.config_path = Path(config_path)
        self.events = events
        self._observer: Observer | None = None

    @property
    def alive(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        """Schedule and start the observer.

        Raises:
            WatchError: If the directory cannot be watched.
        """
        handler = ConfigChangeHandler(self.config_path, self.events)
        observer = Observer()
        try:
            observer.schedule(handler, str(self.config_path.parent), recursive=False)
            observer.start()
        except OSError as e:
            raise WatchError(f"Cannot watch {self.config_path.parent}: {e}") from e
        self._observer = observer
        logger.info("watching_config", path=str(self.config_path))

    def restart(self) -> None:
        """Replace a dead observer with a fresh one."""
        self.stop()
        self.start()
        logger.info("watcher_restarted", path=str(self.config_path))

    def stop(self) -> None:
        if self._observer is None:
            return
        observer, self._observer = self._observer, None
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=5.0)
