"""
Configuration module for the artifact mirror.

Loads all configuration from environment variables once at startup into an
immutable Config that is handed to the reconciler, scheduler and web app.
"""

import logging
import os
from dataclasses import dataclass

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL_MINUTES = 1
DEFAULT_MAX_DECOMPRESSED_SIZE = 50 * 1024 * 1024


@dataclass(frozen=True)
class Repository:
    """
    A configured sync target.

    Attributes:
        name: Registry-side identifier, e.g. "org/image"
        local_dir: Directory name under the store root (last path segment of name)
    """

    name: str
    local_dir: str

    @classmethod
    def from_name(cls, name: str) -> "Repository":
        """
        Build a repository from its remote identifier.

        Examples:
            >>> Repository.from_name(" org/image ")
            Repository(name='org/image', local_dir='image')
        """
        name = name.strip()
        return cls(name=name, local_dir=name.split("/")[-1])


def parse_repositories(value: str) -> tuple:
    """
    Parse a comma-separated repository list.

    Blank entries are ignored.

    Raises:
        ConfigError: if no usable entry remains
    """
    repositories = tuple(
        Repository.from_name(item) for item in value.split(",") if item.strip()
    )
    if not repositories or any(not repo.local_dir for repo in repositories):
        raise ConfigError(f"QUAY_ORG_REPOS has no usable repository: {value!r}")
    return repositories


def _parse_interval(value) -> int:
    if value is None or value == "":
        logger.info(
            f"SYNC_INTERVAL_MINUTES is empty, using default of {DEFAULT_SYNC_INTERVAL_MINUTES} minute"
        )
        return DEFAULT_SYNC_INTERVAL_MINUTES
    try:
        interval = int(value)
    except ValueError:
        interval = 0
    if interval < 1:
        logger.warning(
            f"SYNC_INTERVAL_MINUTES value {value!r} is invalid, "
            f"using default of {DEFAULT_SYNC_INTERVAL_MINUTES} minute"
        )
        return DEFAULT_SYNC_INTERVAL_MINUTES
    return interval


def _int_setting(environ, key: str, default: int) -> int:
    value = environ.get(key, str(default))
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {value!r}")


@dataclass(frozen=True)
class Config:
    """
    Mirror configuration.

    Environment Variables:
        QUAY_ORG_REPOS: Comma-separated repositories to mirror. Required.
        SYNC_INTERVAL_MINUTES: Minutes between sync passes. Default: 1
        PORT: HTTP listen port. Required.
        HOST: Server bind address. Default: 0.0.0.0
        FILES_DIR: Local store root. Default: ./files
        REGISTRY_HOST: Registry hostname. Default: quay.io
        ORAS_BIN: Pull tool executable. Default: oras
        PULL_TIMEOUT: Pull timeout in seconds. Default: 600
        CATALOG_TIMEOUT: Tag catalog request timeout in seconds. Default: 30
        MAX_DECOMPRESSED_SIZE: Limit for served .gz content in bytes. Default: 50MB
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
    """

    REPOSITORIES: tuple
    PORT: int
    SYNC_INTERVAL_MINUTES: int = DEFAULT_SYNC_INTERVAL_MINUTES
    HOST: str = "0.0.0.0"
    FILES_DIR: str = "./files"
    REGISTRY_HOST: str = "quay.io"
    ORAS_BIN: str = "oras"
    PULL_TIMEOUT: int = 600
    CATALOG_TIMEOUT: int = 30
    MAX_DECOMPRESSED_SIZE: int = DEFAULT_MAX_DECOMPRESSED_SIZE
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "Config":
        """
        Load configuration from environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Raises:
            ConfigError: if QUAY_ORG_REPOS or PORT is missing or invalid
        """
        if environ is None:
            environ = os.environ

        repos_value = environ.get("QUAY_ORG_REPOS", "")
        if not repos_value.strip():
            raise ConfigError("QUAY_ORG_REPOS env var is empty")

        port_value = environ.get("PORT", "")
        if not port_value.strip():
            raise ConfigError("PORT env var is empty")

        return cls(
            REPOSITORIES=parse_repositories(repos_value),
            PORT=_int_setting(environ, "PORT", 0),
            SYNC_INTERVAL_MINUTES=_parse_interval(environ.get("SYNC_INTERVAL_MINUTES")),
            HOST=environ.get("HOST", "0.0.0.0"),
            FILES_DIR=environ.get("FILES_DIR", "./files"),
            REGISTRY_HOST=environ.get("REGISTRY_HOST", "quay.io"),
            ORAS_BIN=environ.get("ORAS_BIN", "oras"),
            PULL_TIMEOUT=_int_setting(environ, "PULL_TIMEOUT", 600),
            CATALOG_TIMEOUT=_int_setting(environ, "CATALOG_TIMEOUT", 30),
            MAX_DECOMPRESSED_SIZE=_int_setting(
                environ, "MAX_DECOMPRESSED_SIZE", DEFAULT_MAX_DECOMPRESSED_SIZE
            ),
            LOG_LEVEL=environ.get("LOG_LEVEL", "INFO").strip().upper(),
        )

    def __repr__(self):
        """String representation for logging."""
        return (
            f"Config(REPOSITORIES={[repo.name for repo in self.REPOSITORIES]}, "
            f"SYNC_INTERVAL_MINUTES={self.SYNC_INTERVAL_MINUTES}, "
            f"HOST={self.HOST}, "
            f"PORT={self.PORT}, "
            f"FILES_DIR={self.FILES_DIR}, "
            f"REGISTRY_HOST={self.REGISTRY_HOST})"
        )
