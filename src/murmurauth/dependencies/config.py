"""Configuration dependency shared by the web application and the CLI."""

from __future__ import annotations

import os
from pathlib import Path

import structlog

from ..config import Config
from ..constants import CONFIG_PATH

__all__ = ["ConfigDependency", "config_dependency"]


class ConfigDependency:
    """Load the murmurauth configuration once and hand it out on request.

    Without an explicit path, the file named by ``MURMURAUTH_CONFIG_PATH`` is
    used, falling back on the default path. The environment is consulted when
    the configuration is loaded rather than at import time, so the CLI can
    set the variable before starting the web application. Loading the
    configuration also configures logging.

    Parameters
    ----------
    path
        Configuration file to use instead of the one from the environment.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._config: Config | None = None

    async def __call__(self) -> Config:
        return self.config()

    @property
    def config_path(self) -> Path:
        """Path the configuration is (or will be) loaded from."""
        if self._path:
            return self._path
        return Path(os.getenv("MURMURAUTH_CONFIG_PATH", CONFIG_PATH))

    def config(self) -> Config:
        """Return the configuration, loading it on first use.

        Returns
        -------
        Config
            The murmurauth configuration.

        Raises
        ------
        OSError
            Raised if the configuration file cannot be read.
        pydantic.ValidationError
            Raised if the configuration is invalid.
        """
        if not self._config:
            self._config = self._load(self.config_path)
        return self._config

    def set_config_path(self, path: Path) -> None:
        """Switch to a different configuration file and load it immediately.

        Used by the CLI and the test suite. Components already created from
        the previous configuration are not affected.

        Parameters
        ----------
        path
            The new configuration path.
        """
        self._config = self._load(path)
        self._path = path

    def _load(self, path: Path) -> Config:
        config = Config.from_file(path)
        config.configure_logging()
        logger = structlog.get_logger("murmurauth")
        logger.debug("Loaded configuration", path=str(path))
        return config


config_dependency = ConfigDependency()
"""The dependency that will return the current configuration."""
