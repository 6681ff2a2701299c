# tests/test_config.py
"""Tests for registry configuration."""

import logging
import tempfile
from pathlib import Path

import pytest

from assetreg.config import RegistryConfig
from assetreg.errors import ConfigError


class TestRegistryConfig:
    """Tests for RegistryConfig."""

    def test_defaults(self):
        config = RegistryConfig()
        assert config.data_dir == Path("./registry_data")
        assert config.hash_algorithm == "sha3_256"
        assert config.sign_events is False
        assert config.key_path == Path("./registry_data/keys/registry.pem")
        assert config.log_level_value == logging.INFO

    def test_from_yaml(self):
        config = RegistryConfig.from_yaml(
            "data_dir: /var/lib/assetreg\n"
            "hash_algorithm: blake2b\n"
            "sign_events: true\n"
            "key_file: /etc/assetreg/key.pem\n"
            "log_level: debug\n"
        )
        assert config.data_dir == Path("/var/lib/assetreg")
        assert config.hash_algorithm == "blake2b"
        assert config.sign_events is True
        assert config.key_path == Path("/etc/assetreg/key.pem")
        assert config.log_level == "DEBUG"

    def test_empty_yaml_gives_defaults(self):
        assert RegistryConfig.from_yaml("") == RegistryConfig()

    def test_key_path_follows_data_dir(self):
        config = RegistryConfig.from_yaml("data_dir: /data\n")
        assert config.key_path == Path("/data/keys/registry.pem")

    @pytest.mark.parametrize("content", [
        "unknown_key: 1\n",
        "hash_algorithm: md5\n",
        "sign_events: maybe\n",
        "log_level: LOUD\n",
        "- a list\n",
        "data_dir: [unclosed\n",
        "data_dir: 5\n",
        "data_dir: [a]\n",
        "data_dir:\n",
        "key_file: 7\n",
    ])
    def test_invalid(self, content):
        with pytest.raises(ConfigError):
            RegistryConfig.from_yaml(content)

    def test_overrides(self):
        config = RegistryConfig().with_overrides(data_dir="/tmp/x", log_level=None)
        assert config.data_dir == Path("/tmp/x")
        assert config.log_level == "INFO"

    def test_from_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "assetreg.yaml"
            path.write_text("sign_events: true\n")
            assert RegistryConfig.from_file(path).sign_events is True

    def test_missing_file(self):
        with pytest.raises(ConfigError):
            RegistryConfig.from_file("/nonexistent/assetreg.yaml")
