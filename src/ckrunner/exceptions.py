"""Custom exceptions for the client runner."""


class RunnerError(Exception):
    """Base exception for runner errors."""

    pass


class BootstrapError(RunnerError):
    """Raised when the ck-client binary cannot be found or installed."""

    pass


class ConfigError(RunnerError):
    """Raised when the client configuration cannot be loaded."""

    pass


class ConfigNotFoundError(ConfigError):
    """Raised when config.yml does not exist."""

    pass


class ConfigParseError(ConfigError):
    """Raised when config.yml is unreadable, malformed or invalid."""

    pass


class LaunchError(RunnerError):
    """Raised when a client instance fails to launch."""

    def __init__(self, name: str, reason: str):
        super().__init__(f"Failed to launch client '{name}': {reason}")
        self.name = name
        self.reason = reason


class WatchError(RunnerError):
    """Raised when the config file watcher fails."""

    pass


class TeardownError(RunnerError):
    """Raised when a generation's clients do not exit in time."""

    pass
