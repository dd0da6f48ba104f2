"""
Factory configuration loader.

Reads an optional YAML/JSON configuration file and applies environment
overrides on top of it.

Config file format (YAML or JSON):
    primary_store_path: /srv/metadata/custom
    secondary_store_path: /srv/metadata/standard
    default_model: ApplicationSuite
    type_registry: metaforge.metamodel

Environment variables:
    METAFORGE_CONFIG_FILE      - path to the config file (optional).
                                 Default search path: <project_root>/metaforge.yaml
    METAFORGE_PRIMARY_STORE    - overrides primary_store_path
    METAFORGE_SECONDARY_STORE  - overrides secondary_store_path
    METAFORGE_DEFAULT_MODEL    - overrides default_model
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .catalog import DEFAULT_NAME_PATTERN
from .errors import ConfigurationError

_log = logging.getLogger("metaforge.config")

_ENV_OVERRIDES = {
    "METAFORGE_PRIMARY_STORE": "primary_store_path",
    "METAFORGE_SECONDARY_STORE": "secondary_store_path",
    "METAFORGE_DEFAULT_MODEL": "default_model",
}


class Configuration(BaseModel):
    primary_store_path: str
    secondary_store_path: str
    type_registry: str = "metaforge.metamodel"
    type_name_pattern: str = DEFAULT_NAME_PATTERN
    default_model: str = "ApplicationSuite"
    create_missing_primary: bool = True
    extra: Dict[str, Any] = Field(default_factory=dict)


def _resolve_path(path: Optional[Path]) -> Optional[Path]:
    """Determine the config file path from argument or env var or default."""
    if path is not None:
        return Path(path)
    env_path = os.getenv("METAFORGE_CONFIG_FILE", "").strip()
    if env_path:
        return Path(env_path)
    project_root = Path(__file__).resolve().parents[2]
    return project_root / "metaforge.yaml"


def _read_mapping(resolved: Path) -> Dict[str, Any]:
    try:
        raw_text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {resolved}: {exc}") from exc

    # JSON first, YAML for everything else
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Failed to parse config file {resolved} as JSON or YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {resolved} must be a mapping, got {type(data).__name__}")
    return data


def load_configuration(path: Optional[Path] = None, **overrides: Any) -> Configuration:
    """
    Build a Configuration from file, then environment, then keyword overrides.

    A missing file is fine as long as both store paths end up set.
    """
    data: Dict[str, Any] = {}
    resolved = _resolve_path(path)
    if resolved is not None and resolved.exists():
        data.update(_read_mapping(resolved))
        _log.info("Loaded configuration from %s", resolved)
    elif path is not None:
        raise ConfigurationError(f"Config file not found: {resolved}")

    for env_key, field_name in _ENV_OVERRIDES.items():
        val = os.getenv(env_key, "").strip()
        if val:
            data[field_name] = val

    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return Configuration(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
