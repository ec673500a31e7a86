"""Configuration loaded from a .env file and the environment."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_CARBON_PORT = 8082
_INTEGER = re.compile(r"[+-]?[0-9]+")


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded."""


@dataclass
class DBConfig:
    """Database connection settings."""

    host: str = ""
    port: str = ""
    username: str = ""
    password: str = ""
    database: str = ""


@dataclass
class CarbonConfig:
    """Address of the billing server and the parent groups to query."""

    host: str = ""
    port: int = DEFAULT_CARBON_PORT
    parents: list[str] = field(default_factory=list)


@dataclass
class LoggerConfig:
    """Logging settings."""

    debug: bool = False


@dataclass
class Config:
    """Complete application configuration."""

    db: DBConfig = field(default_factory=DBConfig)
    carbon: CarbonConfig = field(default_factory=CarbonConfig)
    log: LoggerConfig = field(default_factory=LoggerConfig)


def load_config(env_file: str | os.PathLike[str] | None = None) -> Config:
    """Load the .env file into the environment and build the configuration."""
    path = Path(env_file if env_file is not None else ".env")
    if not path.is_file():
        raise ConfigError("Error loading .env file")
    load_dotenv(path, override=False)

    raw_port = os.environ.get("CARBON_PORT", "")
    port = int(raw_port) if _INTEGER.fullmatch(raw_port) else DEFAULT_CARBON_PORT

    return Config(
        carbon=CarbonConfig(
            host=os.environ.get("CARBON_HOST", ""),
            port=port,
            parents=os.environ.get("CARBON_PARENTS", "").split(","),
        ),
        log=LoggerConfig(debug=os.environ.get("CARBON_DEBUG") == "true"),
    )