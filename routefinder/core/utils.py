"""Utility helpers shared across routefinder core modules."""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, ROUND_DOWN
from typing import Any, Iterable

AMOUNT_TOLERANCE = Decimal("0.000001")


def get_logger(name: str = "routefinder") -> logging.Logger:
    """Return a configured logger that prints to stdout."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def to_decimal(value: Any) -> Decimal:
    """Convert ``value`` to ``Decimal`` going through ``str`` for floats."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {value!r}") from exc


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Scale a human amount to integer token units, rounding down."""
    scaled = amount * (Decimal(10) ** decimals)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_DOWN))


def from_base_units(value: int, decimals: int) -> Decimal:
    """Scale integer token units to a human amount."""
    return Decimal(int(value)) / (Decimal(10) ** decimals)


def format_amount(amount: Decimal) -> str:
    """Render ``amount`` without exponent or trailing zeros (``50``, ``0.5``)."""
    if amount == 0:
        return "0"
    return format(amount.normalize(), "f")


def amounts_match(left: Decimal, right: Decimal) -> bool:
    """Return True when two amounts agree within ``AMOUNT_TOLERANCE``."""
    return abs(left - right) <= AMOUNT_TOLERANCE


def sum_decimals(values: Iterable[Decimal]) -> Decimal:
    """Return the sum of an iterable of decimals."""
    total = Decimal(0)
    for value in values:
        total += value
    return total


__all__ = [
    "AMOUNT_TOLERANCE",
    "amounts_match",
    "format_amount",
    "from_base_units",
    "get_logger",
    "sum_decimals",
    "to_base_units",
    "to_decimal",
]
