"""Launching one ck-client per configured instance."""

from pathlib import Path

import structlog

from .config import Config
from .exceptions import LaunchError
from .generation import Generation
from .process import ClientProcess

logger = structlog.get_logger()


def payload_path(config_root: Path, name: str) -> Path:
    """Side file holding the instance's opaque ck-client config."""
    return config_root / f".config-{name}.json"


def log_path(config_root: Path, name: str) -> Path:
    """Side file receiving the instance's stdout and stderr."""
    return config_root / f".log-{name}.log"


def launch(
    config_root: Path,
    config: Config,
    binary: Path,
    generation_id: int = 1,
    stop_timeout: float = 5.0,
) -> Generation:
    """Start one ck-client per configured instance.

    Launching is all-or-nothing: if any instance fails to start, the ones
    already started in this call are stopped before the error is raised.

    Args:
        config_root: Directory for the payload and log side files.
        config: Parsed client configuration.
        binary: Path to the ck-client executable.
        generation_id: Identifier used in log events.
        stop_timeout: Seconds each client gets to exit on teardown.

    Returns:
        A started Generation owning every launched process.

    Raises:
        LaunchError: If any side file or process fails to start.
    """
    generation = Generation(generation_id=generation_id, stop_timeout=stop_timeout)

    for name, spec in config.clients.items():
        process = ClientProcess(
            name=name,
            spec=spec,
            binary=binary,
            payload_path=payload_path(config_root, name),
            log_path=log_path(config_root, name),
        )

        try:
            process.start()
        except BaseException as e:
            logger.error(
                "client_launch_failed",
                generation=generation_id,
                name=name,
                error=str(e),
                started=generation.names,
            )
            process.stop(timeout=stop_timeout)
            generation.cancel()
            if isinstance(e, (OSError, ValueError, RuntimeError)):
                raise LaunchError(name, str(e)) from e
            raise

        generation.processes.append(process)

    generation.start()
    return generation
