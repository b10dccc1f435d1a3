"""
Configuration management for the counter rate check.

Loads defaults from an optional YAML file and environment variables.
Command line options are applied on top by the entry point.
"""

import logging
import math
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from .models import Thresholds


class ConfigError(Exception):
    """Raised when the configuration is invalid."""


def default_cache_dir() -> str:
    """Get the default cache directory under the system temp location."""
    return str(Path(tempfile.gettempdir()) / "snmp_counter_rate")


@dataclass
class SNMPConfig:
    """SNMP client configuration."""

    host: str = ""
    oid: str = ""
    community: str = "public"
    port: int = 161
    timeout_seconds: float = 10.0


@dataclass
class CacheConfig:
    """Sample cache configuration."""

    directory: str = field(default_factory=default_cache_dir)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None


@dataclass
class CheckConfig:
    """Main configuration container, built once per invocation."""

    snmp: SNMPConfig = field(default_factory=SNMPConfig)
    thresholds: Thresholds = field(default_factory=Thresholds)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Optional[str]) -> "CheckConfig":
        """Load configuration from a YAML file, then apply the environment."""
        if path is None:
            config = cls()
            config._apply_env_overrides()
            return config

        config_path = Path(path)
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read config file {config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"config file {config_path} is not a mapping")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "CheckConfig":
        """Create config from dictionary."""
        config = cls()

        try:
            if "snmp" in data:
                config.snmp = SNMPConfig(**data["snmp"])

            if "thresholds" in data:
                config.thresholds = Thresholds(**data["thresholds"])

            if "cache" in data:
                config.cache = CacheConfig(**data["cache"])

            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])
        except TypeError as e:
            raise ConfigError(f"invalid config section: {e}")

        # Override with environment variables
        config._apply_env_overrides()

        return config

    def _apply_env_overrides(self):
        """Apply environment variable overrides."""
        try:
            if os.getenv("SNMP_COMMUNITY"):
                self.snmp.community = os.getenv("SNMP_COMMUNITY")
            if os.getenv("SNMP_PORT"):
                self.snmp.port = int(os.getenv("SNMP_PORT"))
            if os.getenv("SNMP_TIMEOUT"):
                self.snmp.timeout_seconds = float(os.getenv("SNMP_TIMEOUT"))
        except ValueError as e:
            raise ConfigError(f"invalid environment override: {e}")

        if os.getenv("SNMP_RATE_CACHE_DIR"):
            self.cache.directory = os.getenv("SNMP_RATE_CACHE_DIR")

        # Logging
        if os.getenv("LOG_LEVEL"):
            self.logging.level = os.getenv("LOG_LEVEL")

    def validate(self):
        """Check and coerce values; raises ConfigError on the first problem."""
        if not self.snmp.host:
            raise ConfigError("target host is required")
        if not self.snmp.oid:
            raise ConfigError("counter OID is required")
        if not is_numeric_oid(str(self.snmp.oid)):
            raise ConfigError(f"malformed OID: {self.snmp.oid}")

        # YAML values arrive untyped
        self.snmp.community = str(self.snmp.community)
        try:
            self.snmp.port = int(self.snmp.port)
        except (TypeError, ValueError, OverflowError) as e:
            raise ConfigError(f"invalid port: {e}")
        if not 0 < self.snmp.port < 65536:
            raise ConfigError(f"invalid port: {self.snmp.port}")

        try:
            self.snmp.timeout_seconds = float(self.snmp.timeout_seconds)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid timeout: {e}")
        if not 0 < self.snmp.timeout_seconds < math.inf:
            raise ConfigError(
                f"timeout must be positive, got {self.snmp.timeout_seconds}"
            )

        try:
            self.thresholds.warning_rate = float(self.thresholds.warning_rate)
            self.thresholds.critical_rate = float(self.thresholds.critical_rate)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid threshold: {e}")

        if not isinstance(self.cache.directory, str) or not self.cache.directory:
            raise ConfigError(f"invalid cache directory: {self.cache.directory!r}")

        level = self.logging.level
        if not isinstance(level, str) or not isinstance(
            logging.getLevelName(level.upper()), int
        ):
            raise ConfigError(f"invalid log level: {level!r}")
        self.logging.level = level.upper()

        if not isinstance(self.logging.format, str):
            raise ConfigError(f"invalid log format: {self.logging.format!r}")
        if self.logging.file_path is not None and not isinstance(
            self.logging.file_path, str
        ):
            raise ConfigError(f"invalid log file: {self.logging.file_path!r}")


def is_numeric_oid(oid: str) -> bool:
    """Check that an OID is in dotted numeric form, e.g. 1.3.6.1.2.1.1.3.0."""
    parts = oid.lstrip(".").split(".")
    return len(parts) >= 2 and all(part.isascii() and part.isdigit() for part in parts)
