"""
Tests for configuration loading.
"""

import pytest

from stig_hardener.core.config import ToolConfig, load_config
from stig_hardener.core.errors import ConfigurationError


class TestLoadConfig:
    """Test load_config."""

    def test_defaults(self):
        config = load_config()

        assert config == ToolConfig()
        assert config.command_timeout == 60
        assert config.persist_by_default is True
        assert "default_persistence" not in ToolConfig.model_fields

    def test_overrides_are_merged(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("command_timeout: 15\nauditpol_path: C:\\Tools\\auditpol.exe\n")

        config = load_config(str(path))

        assert config.command_timeout == 15
        assert config.auditpol_path == "C:\\Tools\\auditpol.exe"
        assert config.gpresult_path == "gpresult.exe"

    def test_nested_section(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("stig_hardener:\n  persist_by_default: false\n")

        assert load_config(str(path)).persist_by_default is False

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(str(path)) == ToolConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("command_timeout: 0\n")

        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("command_timeout: [\n")

        with pytest.raises(ConfigurationError):
            load_config(str(path))
