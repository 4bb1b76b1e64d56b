"""Common utilities shared across the planner and its pages."""

from .money import (
    ZERO,
    to_decimal,
    round_money,
    format_currency,
    escape_dollar_for_markdown,
)

__all__ = [
    'ZERO',
    'to_decimal',
    'round_money',
    'format_currency',
    'escape_dollar_for_markdown',
]
