"""YAML configuration loader.

Tuning knobs that do not belong in the environment (discovery limits,
summary/tag settings) live in ``config/config.yaml``.  :func:`load_config`
deep-merges that file over :data:`DEFAULT_CONFIG`, so a deployment only
lists the values it changes.  Secrets, endpoints and ports come from
:class:`~pagestash.config.settings.Settings` instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG: dict[str, Any] = {
    "discovery": {
        "map_limit": 25,
        "search_limit": 15,
        "search_location": None,
        "search_tbs": None,
    },
    "summary": {
        "temperature": 0.3,
        "max_tokens": 1200,
        "max_tags": 5,
    },
}


def load_config(path: str = "config/config.yaml") -> dict:
    """Load the YAML config merged over the built-in defaults.

    Args:
        path: Path to the YAML configuration file.  A missing file is not
            an error; the built-in defaults are used.

    Returns:
        Fully resolved configuration dictionary.
    """
    config: dict[str, Any] = {}
    _deep_merge(config, DEFAULT_CONFIG)

    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            _deep_merge(config, yaml.safe_load(f) or {})

    return config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        elif isinstance(value, dict):
            base[key] = {}
            _deep_merge(base[key], value)
        else:
            base[key] = value
