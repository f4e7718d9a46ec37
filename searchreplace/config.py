"""
Configuration management for searchreplace.

Loads config.yaml from $SEARCHREPLACE_HOME (default ~/.config/searchreplace).
An optional env_file is loaded with python-dotenv first, so secrets such as
SEARCHREPLACE_DB_PASSWORD can live outside the YAML file.
"""

import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from searchreplace.errors import ConfigurationError
from searchreplace.gateway import GatewayConfig
from searchreplace.plan import DEFAULT_BATCH_SIZE

HOME_ENV_VAR = "SEARCHREPLACE_HOME"
PASSWORD_ENV_VAR = "SEARCHREPLACE_DB_PASSWORD"
DEFAULT_HOME = "~/.config/searchreplace"

BACKENDS = ("mysql", "sqlite")
LOG_FORMATS = ("structured", "pretty")


@dataclass
class SearchReplaceConfig:
    """Connection and runtime defaults for the searchreplace CLI."""
    backend: str = "mysql"
    host: str = "localhost"
    port: Optional[int] = None
    username: str = ""
    password: str = ""
    database: str = ""
    sqlite_path: str = ""
    batch_size: int = DEFAULT_BATCH_SIZE
    log_level: str = "INFO"
    log_format: str = "pretty"
    log_file: Optional[str] = None
    env_file: Optional[str] = None

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If any value is invalid
        """
        if self.backend not in BACKENDS:
            raise ConfigurationError(
                f"Unknown backend '{self.backend}'. Expected one of: {', '.join(BACKENDS)}"
            )
        if self.backend == "mysql":
            missing = [name for name in ("host", "username", "database") if not getattr(self, name)]
            if missing:
                raise ConfigurationError(f"Missing required mysql settings: {missing}")
        if self.backend == "sqlite" and not self.sqlite_path:
            raise ConfigurationError("Missing required sqlite setting: sqlite_path")
        if isinstance(self.batch_size, bool) or not isinstance(self.batch_size, int) or self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be a positive integer, got {self.batch_size!r}")
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"Unknown log_format '{self.log_format}'. Expected one of: {', '.join(LOG_FORMATS)}"
            )

    def to_gateway_config(self) -> GatewayConfig:
        """Build gateway connection parameters from this configuration."""
        return GatewayConfig(
            backend=self.backend,
            host=self.host,
            username=self.username,
            password=self.password or "",
            database=self.database,
            port=self.port,
            sqlite_path=str(Path(self.sqlite_path).expanduser()) if self.sqlite_path else "",
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def __repr__(self) -> str:
        return (
            f"SearchReplaceConfig(backend={self.backend}, host={self.host}, "
            f"database={self.database or self.sqlite_path})"
        )


def get_searchreplace_home() -> Path:
    """Return the config directory ($SEARCHREPLACE_HOME or ~/.config/searchreplace)."""
    return Path(os.environ.get(HOME_ENV_VAR, DEFAULT_HOME)).expanduser()


def load_config(config_path: Optional[Path] = None) -> SearchReplaceConfig:
    """
    Load searchreplace configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to $SEARCHREPLACE_HOME/config.yaml

    Returns:
        Validated SearchReplaceConfig

    Raises:
        FileNotFoundError: If the config file does not exist
        ConfigurationError: If the YAML is invalid or values fail validation
    """
    if config_path is None:
        config_path = get_searchreplace_home() / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(
            f"searchreplace config.yaml not found at {config_path}. Run `searchreplace init`."
        )

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax: {e}")

    if not data:
        raise ConfigurationError("Configuration file is empty")
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must contain a mapping")

    known = {f.name for f in fields(SearchReplaceConfig)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

    config = SearchReplaceConfig(**data)

    if config.env_file:
        env_path = Path(config.env_file).expanduser()
        if env_path.exists():
            load_dotenv(env_path)

    password = os.environ.get(PASSWORD_ENV_VAR)
    if password is not None:
        config.password = password

    config.validate()
    return config
