"""
Configuration for the STIG hardener.

Defaults can be overridden by a YAML file; user values are merged over
the defaults and validated.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class ToolConfig(BaseModel):
    """Runtime settings for providers, persistence and reporting."""
    powershell_path: Optional[str] = Field(None, description="PowerShell executable (auto-detected if None)")
    auditpol_path: str = "auditpol.exe"
    gpresult_path: str = "gpresult.exe"
    schtasks_path: str = "schtasks.exe"
    command_timeout: int = Field(60, gt=0, description="Seconds before an external command is abandoned")
    task_name_prefix: str = "STIG Reapply"
    controls_dir: Optional[str] = Field(None, description="Directory of control definition YAML files")
    persist_by_default: bool = True


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> ToolConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to a YAML configuration file

    Returns:
        ToolConfig: Validated configuration

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    defaults = ToolConfig().model_dump()

    if not config_path:
        return ToolConfig(**defaults)

    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(path, 'r') as f:
            user_config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read configuration {config_path}: {e}") from e

    if not isinstance(user_config, dict):
        raise ConfigurationError(f"Configuration {config_path} must be a mapping")

    # Accept both a flat file and one nested under a 'stig_hardener' key
    user_config = user_config.get('stig_hardener', user_config)

    try:
        config = ToolConfig(**_merge(defaults, user_config))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e

    logger.debug("Loaded configuration from %s", config_path)
    return config
