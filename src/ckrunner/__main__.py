"""CLI entry point for the runner."""

import argparse
import logging
import signal
from pathlib import Path

import structlog

from .bootstrap import ensure_binary_present
from .config import default_config_root
from .exceptions import RunnerError
from .supervisor import Supervisor, SupervisorSettings


def setup_signal_handlers(supervisor: Supervisor) -> None:
    """Set up signal handlers for graceful shutdown.

    Args:
        supervisor: Supervisor to notify on shutdown signals.
    """
    logger = structlog.get_logger()

    def handler(signum: int, frame) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("signal_received", signal=sig_name)
        supervisor.request_shutdown()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ck-runner",
        description="Runs one ck-client per entry in config.yml and restarts them on change",
    )
    parser.add_argument(
        "--config-root",
        type=str,
        default=None,
        help=f"Directory holding config.yml (default: {default_config_root()})",
    )
    parser.add_argument(
        "--binary",
        type=str,
        default=None,
        help="ck-client executable to use (skips lookup and install)",
    )
    parser.add_argument(
        "--debounce",
        type=float,
        default=None,
        help="Seconds to wait after a config write before reloading",
    )
    parser.add_argument(
        "--grace",
        type=float,
        default=None,
        help="Seconds to wait between stopping and restarting clients",
    )
    parser.add_argument(
        "--stop-timeout",
        type=float,
        default=None,
        help="Seconds a client gets to exit before it is killed",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> SupervisorSettings:
    """Apply CLI overrides on top of the default settings."""
    overrides = {}
    if args.config_root:
        overrides["config_root"] = Path(args.config_root).expanduser()
    if args.debounce is not None:
        overrides["debounce_seconds"] = args.debounce
    if args.grace is not None:
        overrides["grace_seconds"] = args.grace
    if args.stop_timeout is not None:
        overrides["stop_timeout"] = args.stop_timeout
    return SupervisorSettings(**overrides)


def main(argv: list[str] | None = None) -> None:
    """Run the ck-client supervisor."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    logger = structlog.get_logger()

    try:
        settings = settings_from_args(args)
    except ValueError as e:
        logger.error("invalid_settings", error=str(e))
        raise SystemExit(1)

    try:
        if args.binary:
            binary = Path(args.binary).expanduser()
        else:
            binary = ensure_binary_present()

        supervisor = Supervisor(settings=settings, binary=binary)
        setup_signal_handlers(supervisor)
        supervisor.run()

    except RunnerError as e:
        logger.error("runner_error", error=str(e), error_type=type(e).__name__)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
