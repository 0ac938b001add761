import logging
import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from core.errors import ConfigError

DEFAULT_CONFIG_FILE = "config.yml"
DEFAULT_API_PATH = "manag/"
DEFAULT_LOG_LEVEL = "info"
# Port allocated to the OpenOTP exporter in the Prometheus default port list
DEFAULT_PORT = 9794
DEFAULT_TIMEOUT = 10.0

CONFIG_FILE = os.environ.get("OPENOTP_EXPORTER_CONFIG", DEFAULT_CONFIG_FILE)


class ApiConfig(BaseModel):
    """
    Connection details for the OpenOTP management JSON-RPC API.
    """

    username: str = ""
    password: str = ""
    certfile: Optional[str] = None
    path: str = ""


class LoggingConfig(BaseModel):
    filename: Optional[str] = None
    journal: bool = False
    level: str = ""


class ExporterConfig(BaseModel):
    hostname: str = ""
    port: int = 0
    timeout: float = DEFAULT_TIMEOUT


class Config(BaseModel):
    """
    Resolved exporter configuration, loaded once at startup.
    """

    api: ApiConfig = Field(default_factory=ApiConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    exporter: ExporterConfig = Field(default_factory=ExporterConfig)

    def apply_defaults(self) -> "Config":
        if not self.api.path:
            self.api.path = DEFAULT_API_PATH
        if not self.logging.level:
            self.logging.level = DEFAULT_LOG_LEVEL
        if not self.exporter.port:
            self.exporter.port = DEFAULT_PORT
        if self.api.certfile:
            self.api.certfile = expand_tilde(self.api.certfile)
        if self.logging.filename:
            self.logging.filename = expand_tilde(self.logging.filename)
        return self

    @property
    def listen_host(self) -> str:
        # An empty hostname means listen on every interface
        return self.exporter.hostname or "0.0.0.0"

    def write_config(self, filename: str):
        """
        Write this configuration to a YAML file.

        Args:
            filename (str): Destination path.
        """
        with open(filename, "w") as f:
            yaml.safe_dump(self.model_dump(exclude_none=True), f, default_flow_style=False)


def expand_tilde(path: str) -> str:
    """Expand a leading ~ to the current user's home directory."""
    if path == "~" or path.startswith("~/"):
        return os.path.expanduser(path)
    return path


def parse_config(filename: str) -> Config:
    """
    Parse a YAML configuration file into a Config, with defaults applied.

    Args:
        filename (str): Path to the YAML file.

    Returns:
        Config: The resolved configuration.

    Raises:
        ConfigError: If the file cannot be read or does not match the schema.
    """
    try:
        with open(filename) as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {filename}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse config file {filename}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {filename} must contain a YAML mapping")
    try:
        config = Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {filename}: {e}") from e
    config.apply_defaults()
    if not isinstance(logging.getLevelName(config.logging.level.upper()), int):
        raise ConfigError(f"Unable to set log level: {config.logging.level}")
    return config
