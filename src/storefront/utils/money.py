"""Rounding helpers for rupee amounts."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest whole unit, halves away from zero."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount (rupees) to minor units (paise)."""
    return round_half_up(amount * 100)
