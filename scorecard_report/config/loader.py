"""
Config Loader

Loads the report configuration from YAML files, with programmatic overrides
(the keyword options of ``report()``).
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union
import json
import logging

import yaml
from pydantic import ValidationError as PydanticValidationError

from scorecard_report.config.schema import ReportConfig
from scorecard_report.core.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def load_config(
    yaml_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ReportConfig:
    """Load report configuration from YAML with optional overrides.

    Args:
        yaml_path: Path to the YAML config file. If None, uses defaults.
        overrides: Nested dict merged on top, e.g. ``{"pdo": 20}`` or
            ``{"stability": {"epsilon": 0}}``.

    Returns:
        Frozen ReportConfig instance.

    Raises:
        ConfigurationError: If the file is missing or any value is invalid.
    """
    raw: Dict[str, Any] = {}

    if yaml_path is not None:
        yaml_file = Path(yaml_path)
        if not yaml_file.exists():
            raise ConfigurationError(
                f"Config file not found: {yaml_path}",
                details={"path": str(yaml_path)},
            )
        try:
            with open(yaml_file, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {yaml_path}", cause=e)

        logger.info("Loaded config from %s", yaml_path)

    if overrides:
        _deep_merge(raw, overrides)

    return build_config(raw)


def build_config(raw: Union[Dict[str, Any], ReportConfig, None]) -> ReportConfig:
    """Validate a raw option mapping into a ReportConfig."""
    if isinstance(raw, ReportConfig):
        return raw
    try:
        config = ReportConfig(**(raw or {}))
    except PydanticValidationError as e:
        fields = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise ConfigurationError(
            f"Invalid report configuration: {fields}",
            details={"fields": fields},
            cause=e,
        )
    logger.debug("Report config loaded successfully")
    return config


def merge_options(config: Optional[ReportConfig], options: Dict[str, Any]) -> ReportConfig:
    """Apply keyword options on top of an existing configuration."""
    base = config.model_dump() if config is not None else {}
    _deep_merge(base, options)
    return build_config(base)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override dict into base dict (in-place).

    Args:
        base: Base dictionary to merge into.
        override: Override dictionary whose values take priority.
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def save_config(config: ReportConfig, path: str) -> None:
    """Save a ReportConfig to a YAML or JSON file.

    Args:
        config: The report configuration to save.
        path: Output file path (.yaml or .json).
    """
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(mode="json")

    if out_path.suffix in (".yaml", ".yml"):
        with open(out_path, "w") as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
    else:
        with open(out_path, "w") as f:
            json.dump(config_dict, f, indent=2, default=str)

    logger.info("Config saved to %s", path)
