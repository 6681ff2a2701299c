# assetreg/config.py
"""
Registry configuration.

Loaded from a YAML file:

    data_dir: ./registry_data
    hash_algorithm: sha3_256
    sign_events: true
    key_file: ./registry_data/keys/registry.pem
    log_level: INFO
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .hashing import DEFAULT_ALGORITHM, SUPPORTED_ALGORITHMS

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class RegistryConfig:
    """Parsed registry configuration."""
    data_dir: Path = Path("./registry_data")
    hash_algorithm: str = DEFAULT_ALGORITHM
    sign_events: bool = False
    key_file: Optional[Path] = None
    log_level: str = "INFO"

    @property
    def key_path(self) -> Path:
        """Private key location, defaulting to data_dir/keys/registry.pem."""
        if self.key_file:
            return Path(self.key_file)
        return Path(self.data_dir) / "keys" / "registry.pem"

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)

    def validate(self) -> "RegistryConfig":
        if self.hash_algorithm not in SUPPORTED_ALGORITHMS:
            raise ConfigError(
                f"hash_algorithm must be one of {', '.join(SUPPORTED_ALGORITHMS)}, "
                f"got {self.hash_algorithm!r}"
            )
        if not isinstance(self.sign_events, bool):
            raise ConfigError(f"sign_events must be true or false, got {self.sign_events!r}")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return self

    def with_overrides(self, **overrides: Any) -> "RegistryConfig":
        """Return a copy with the non-None overrides applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "data_dir" in changes:
            changes["data_dir"] = Path(changes["data_dir"])
        return replace(self, **changes).validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        for name in ("data_dir", "key_file"):
            value = data.get(name)
            if value is not None and not isinstance(value, (str, os.PathLike)):
                raise ConfigError(f"{name} must be a path, got {value!r}")
        if "data_dir" in data and data["data_dir"] is None:
            raise ConfigError("data_dir must be a path, got None")

        config = cls(**data)
        config.data_dir = Path(config.data_dir)
        if config.key_file is not None:
            config.key_file = Path(config.key_file)
        if isinstance(config.log_level, str):
            config.log_level = config.log_level.upper()
        return config.validate()

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "RegistryConfig":
        """Parse configuration from a YAML string."""
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Config must be a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path | str) -> "RegistryConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r") as f:
                return cls.from_yaml(f.read())
        except OSError as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
