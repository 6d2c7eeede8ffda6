"""
formatting.py — Human-scale number rendering for the dashboard.

Pure functions, no I/O. Total over every real input, including None.

    format_compact(999)        → "999"
    format_compact(12_345)     → "12.3K"
    format_compact(4_200_000)  → "4.2M"
    percentage(50, 1000)       → "5.0"
    percentage(1, 0)           → "0.0"
"""

from __future__ import annotations

import math
from typing import Optional, Union

Number = Union[int, float]

_THOUSAND = 1_000
_MILLION = 1_000_000


def format_grouped(n: Optional[Number]) -> str:
    """Render an integer with thousands separators ("1,234,567")."""
    if n is None:
        return "0"
    return f"{n:,.0f}"


def format_compact(n: Optional[Number]) -> str:
    """
    Render n as a short, human-scale string.

    |n| < 1 000        → grouped integer ("999")
    |n| < 1 000 000    → one decimal + "K" ("12.3K")
    otherwise          → one decimal + "M" ("4.2M")
    """
    if n is None or (isinstance(n, float) and math.isnan(n)):
        return "0"
    magnitude = abs(n)
    if magnitude >= _MILLION:
        return f"{n / _MILLION:.1f}M"
    if magnitude >= _THOUSAND:
        return f"{n / _THOUSAND:.1f}K"
    return format_grouped(n)


def percentage(numerator: Optional[Number], denominator: Optional[Number]) -> str:
    """numerator / denominator as a percentage fixed to one decimal; "0.0" when the denominator is 0."""
    if not denominator or numerator is None:
        return "0.0"
    return f"{numerator / denominator * 100:.1f}"
