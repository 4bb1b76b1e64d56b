"""Planner configuration files and loaders.

Planner constants (tier templates, default savings rate, category labels)
are stored in JSON files so they can be tuned without code changes.
"""

from .defaults import (
    load_config,
    get_planner_config,
    get_config_value,
    get_tiers,
    get_category_labels,
)

__all__ = [
    'load_config',
    'get_planner_config',
    'get_config_value',
    'get_tiers',
    'get_category_labels',
]
