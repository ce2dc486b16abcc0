"""ck-runner - supervises ck-client processes and reloads them when config.yml changes."""

from .bootstrap import ensure_binary_present, find_binary
from .config import ClientConfig, Config, config_file_path, default_config_root, load_config
from .exceptions import (
    BootstrapError,
    ConfigError,
    ConfigNotFoundError,
    ConfigParseError,
    LaunchError,
    RunnerError,
    TeardownError,
    WatchError,
)
from .generation import Generation
from .launcher import launch, log_path, payload_path
from .process import ClientProcess, ProcessState
from .supervisor import Supervisor, SupervisorSettings, SupervisorState

__all__ = [
    "ClientConfig",
    "Config",
    "config_file_path",
    "default_config_root",
    "load_config",
    "ensure_binary_present",
    "find_binary",
    "ClientProcess",
    "ProcessState",
    "Generation",
    "launch",
    "payload_path",
    "log_path",
    "Supervisor",
    "SupervisorSettings",
    "SupervisorState",
    "RunnerError",
    "BootstrapError",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigParseError",
    "LaunchError",
    "TeardownError",
    "WatchError",
]
