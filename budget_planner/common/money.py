"""Money helpers: Decimal conversion, rounding and currency formatting."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Union

Number = Union[Decimal, int, float, str]

ZERO = Decimal('0')
CENT = Decimal('0.01')


def to_decimal(value: Any) -> Decimal:
    """Convert user input to a Decimal.

    Floats go through ``str`` so ``0.1`` stays ``0.1``. ``None`` and empty
    strings become zero.

    Raises:
        ValueError: If the value cannot be read as a number
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a monetary amount: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        number = Decimal(str(value))
    else:
        text = str(value).strip().replace('$', '').replace(',', '')
        if not text:
            return ZERO
        try:
            number = Decimal(text)
        except InvalidOperation as e:
            raise ValueError(f"Not a monetary amount: {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return number


def round_money(value: Number) -> Decimal:
    """Round to two decimal places, half up.

    Example:
        >>> round_money(2.675)
        Decimal('2.68')
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Number, include_sign: bool = True) -> str:
    """Format a currency amount with proper formatting.
    
    Args:
        amount: The amount to format
        include_sign: Whether to include the dollar sign
        
    Returns:
        Formatted currency string (e.g., "$1,234.56" or "1,234.56").
        Negative amounts keep the minus in front of the sign ("-$12.00").
        
    Example:
        >>> format_currency(1234.56)
        '$1,234.56'
        >>> format_currency(-960, include_sign=False)
        '-960.00'
    """
    value = round_money(amount)
    formatted = f"{abs(value):,.2f}"
    prefix = '-' if value < 0 else ''
    return f"{prefix}${formatted}" if include_sign else f"{prefix}{formatted}"


def escape_dollar_for_markdown(amount: Number) -> str:
    """Format a dollar amount and escape the dollar sign for markdown rendering.
    
    Streamlit markdown treats ``$`` as a LaTeX delimiter, so it is escaped.
        
    Example:
        >>> escape_dollar_for_markdown(1234.56)
        '\\\\$1,234.56'
    """
    return format_currency(amount).replace("$", "\\$")
