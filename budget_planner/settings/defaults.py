"""Planner settings: savings rate, suggestion tiers, income budget and labels.

Settings live as JSON files next to this module. ``planner.json`` holds
``constants`` (default savings rate, custom category prefix, income budget
name and category), ``tiers`` (share of the pool and category keys per tier)
and ``category_labels`` (display names keyed by budget type).
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List

SETTINGS_DIR = Path(__file__).parent


def load_config(config_name: str) -> Dict[str, Any]:
    """Read a settings file from the settings directory.

    Args:
        config_name: File stem, e.g. ``'planner'`` for ``planner.json``

    Raises:
        FileNotFoundError: If no such settings file ships with the package
        json.JSONDecodeError: If the file is not valid JSON

    Example:
        >>> load_config('planner')['constants']['default_savings_rate']
        20
    """
    config_path = SETTINGS_DIR / f"{config_name}.json"
    if not config_path.is_file():
        raise FileNotFoundError(f"Settings file not found: {config_path}")
    return json.loads(config_path.read_text(encoding='utf-8'))


def get_planner_config() -> Dict[str, Any]:
    """Full planner settings: ``constants``, ``tiers`` and ``category_labels``."""
    return load_config('planner')


def get_config_value(config_name: str, *keys: str, default: Any = None) -> Any:
    """Look up one planner setting by its key path.

    A missing key, a path that runs past a scalar
    (``'default_savings_rate', 'x'``) or a missing settings file yields
    ``default``.

    Example:
        >>> get_config_value('planner', 'constants', 'income_budget', 'category', default='SALARY')
        'SALARY'
        >>> get_config_value('planner', 'constants', 'custom_category_prefix')
        'CUSTOM-'
    """
    try:
        value: Any = load_config(config_name)
    except FileNotFoundError:
        return default
    for key in keys:
        if not isinstance(value, Mapping) or key not in value:
            return default
        value = value[key]
    return value


def get_tiers() -> List[Dict[str, Any]]:
    """Suggestion tiers in order, each with ``name``, ``share`` of the pool and ``categories``."""
    return get_planner_config()['tiers']


def get_category_labels() -> Dict[str, Dict[str, str]]:
    """Canonical category display names keyed by budget type, then category key."""
    return get_planner_config()['category_labels']
