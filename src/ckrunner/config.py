"""Client configuration from YAML files."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigNotFoundError, ConfigParseError

CONFIG_FILE_NAME = "config.yml"


class ClientConfig(BaseModel):
    """Configuration for a single ck-client instance."""

    server: str  # Remote Cloak server address
    port: int = Field(ge=1, le=65535)  # Remote server port
    listen: int = Field(ge=1, le=65535)  # Local listen port
    config: str  # Opaque ck-client JSON config, written verbatim


class Config(BaseModel):
    """Complete client configuration."""

    clients: dict[str, ClientConfig] = Field(default_factory=dict)

    @field_validator("clients", mode="before")
    @classmethod
    def _empty_clients(cls, value):
        # `clients:` with nothing under it parses as None
        return {} if value is None else value

    @field_validator("clients")
    @classmethod
    def _check_names(cls, value: dict[str, ClientConfig]) -> dict[str, ClientConfig]:
        for name in value:
            if not name or name in (".", "..") or any(c in name for c in "/\\\0"):
                raise ValueError(f"invalid client name: {name!r}")
        return value


def default_config_root() -> Path:
    """Default directory holding config.yml and the generated side files."""
    return Path.home() / ".config" / "cloak"


def config_file_path(config_root: Path) -> Path:
    """Path of the watched config file inside a config root."""
    return config_root / CONFIG_FILE_NAME


def load_config(config_path: Path) -> Config:
    """Load configuration from a YAML file.

    The file is read fresh on every call.

    Args:
        config_path: Path to the YAML config file.

    Returns:
        Parsed Config object.

    Raises:
        ConfigNotFoundError: If config file doesn't exist.
        ConfigParseError: If the file is unreadable, malformed or invalid.
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigNotFoundError(f"Config file not found: {config_path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigParseError(f"Cannot read {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigParseError(f"Malformed YAML in {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigParseError(
            f"Expected a mapping at the top of {config_path}, "
            f"got {type(data).__name__}"
        )

    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(f"Invalid config in {config_path}: {e}") from e
