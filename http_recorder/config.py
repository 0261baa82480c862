"""
Configuration management for the HTTP recorder.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Union

import tomli

from .exceptions import RecorderConfigError
from .headers import EnvHeaderSource, HeaderSourceLike, StaticHeaderSource, createExcludedHeadersSet
from .redaction import RedactionFunction, Redactor

logger = logging.getLogger(__name__)

MODE_ENV_VAR = "HTTP_RECORDER_MODE"


class RecorderMode(StrEnum):
    """Recorder operating mode."""

    RECORD = "record"
    REPLAY = "replay"


@dataclass(frozen=True)
class RecorderConfig:
    """
    Recorder configuration, constructed once and read-only afterwards.

    Attributes:
        path: Directory holding the recordings, created on first record
        mode: RECORD (hit the network and store) or REPLAY (answer from storage only)
        excludedHeaders: Header names never written to disk, on top of the built-in list
        redaction: Optional Redactor or redaction callable applied before persisting
        headers: Header name to HeaderSource mapping, resolved on every request
    """

    path: str
    mode: RecorderMode = RecorderMode.RECORD
    excludedHeaders: List[str] = field(default_factory=list)
    redaction: Optional[Union[Redactor, RedactionFunction]] = None
    headers: Dict[str, HeaderSourceLike] = field(default_factory=dict)

    def __post_init__(self):
        if not self.path or not str(self.path).strip():
            raise RecorderConfigError("Recorder path must not be empty")
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "path", str(self.path))
        object.__setattr__(self, "mode", parseMode(self.mode))
        object.__setattr__(self, "excludedHeaders", list(self.excludedHeaders))
        object.__setattr__(self, "headers", dict(self.headers))

    def getExcludedHeadersSet(self) -> Set[str]:
        """Built-in sensitive headers plus the configured ones, lowercased."""
        return createExcludedHeadersSet(customHeaders=self.excludedHeaders)


def parseMode(mode: Union[str, RecorderMode]) -> RecorderMode:
    """Parse a mode string, case-insensitive."""
    try:
        return RecorderMode(str(mode).strip().lower())
    except ValueError as e:
        raise RecorderConfigError(f"Invalid recorder mode '{mode}', expected 'record' or 'replay'") from e


def parseHeaderSource(name: str, definition: Any) -> HeaderSourceLike:
    """
    Build a header source from its config file definition.

    Supported forms:
        "static value"
        { value = "static value" }
        { env = "ENV_VAR_NAME", default = "optional", dotenv = ".env" }
    """
    if isinstance(definition, str):
        return StaticHeaderSource(definition)

    if isinstance(definition, Mapping):
        if "value" in definition:
            return StaticHeaderSource(str(definition["value"]))
        if "env" in definition:
            return EnvHeaderSource(
                str(definition["env"]),
                default=definition.get("default"),
                dotenvPath=definition.get("dotenv"),
            )

    raise RecorderConfigError(f"Invalid source for header '{name}': {definition!r}")


class ConfigManager:
    """Loads recorder and logging settings from a TOML file."""

    def __init__(self, configPath: str = "http-recorder.toml"):
        """Initialize ConfigManager with config file path."""
        self.configPath = configPath
        self.config = self._loadConfig()

    def _loadConfig(self) -> Dict[str, Any]:
        """Load configuration from TOML file."""
        configFile = Path(self.configPath)
        if not configFile.exists():
            raise RecorderConfigError(f"Configuration file {self.configPath} not found")

        try:
            with open(configFile, "rb") as f:
                config = tomli.load(f)
        except (OSError, tomli.TOMLDecodeError) as e:
            raise RecorderConfigError(f"Failed to load configuration {self.configPath}: {e}", originalError=e) from e

        logger.info(f"Configuration loaded from {self.configPath}")
        return config

    def get(self, key: str, default=None) -> Any:
        """Get configuration value by key."""
        return self.config.get(key, default)

    def getLoggingConfig(self) -> Dict[str, Any]:
        """Get logging-specific configuration."""
        return self.get("logging", {})

    def getRecorderConfig(self, redaction: Optional[Union[Redactor, RedactionFunction]] = None) -> RecorderConfig:
        """
        Build a RecorderConfig from the [recorder] table.

        Redaction is code, not data, so it is passed in by the caller.
        The HTTP_RECORDER_MODE environment variable overrides the configured mode.

        Raises:
            RecorderConfigError: If the table is missing or invalid
        """
        recorderConfig = self.get("recorder")
        if not isinstance(recorderConfig, dict):
            raise RecorderConfigError("Recorder configuration is missing")

        path = recorderConfig.get("path")
        if not path:
            raise RecorderConfigError("Recorder path is not specified in configuration")

        mode = os.environ.get(MODE_ENV_VAR) or recorderConfig.get("mode", RecorderMode.RECORD)

        excludedHeaders = recorderConfig.get("excluded-headers", [])
        if not isinstance(excludedHeaders, list):
            raise RecorderConfigError("excluded-headers must be a list of header names")

        headers = {
            name: parseHeaderSource(name, definition)
            for name, definition in recorderConfig.get("headers", {}).items()
        }

        return RecorderConfig(
            path=path,
            mode=parseMode(mode),
            excludedHeaders=[str(header) for header in excludedHeaders],
            redaction=redaction,
            headers=headers,
        )
