"""Display helpers for point amounts. None of these raise except ``validate_points_amount``."""

from __future__ import annotations

import math
import re

from .errors import InvalidAmountError

MAX_POINTS_AMOUNT = 1_000_000

# Display peg, not a settlement price.
POINTS_PER_USD = 100

_STRIP_PATTERN = re.compile(r"[,\s_]")


def _is_finite_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def format_points(points: float) -> str:
    if not _is_finite_number(points):
        return "0"
    return f"{math.floor(points):,}"


def format_points_compact(points: float) -> str:
    if not _is_finite_number(points):
        return "0"
    # 999,950 rounds to 1000.0K, so it is shown as millions.
    if points >= 1_000_000 or round(points / 1_000, 1) >= 1_000:
        return f"{points / 1_000_000:.1f}M"
    if points >= 1_000:
        return f"{points / 1_000:.1f}K"
    return format_points(points)


def validate_points_amount(points: float) -> int:
    """Return ``points`` as an int or raise ``InvalidAmountError``."""

    if not _is_finite_number(points):
        raise InvalidAmountError("Point amount must be a finite number", amount=points)
    if points < 0:
        raise InvalidAmountError("Point amount cannot be negative", amount=points)
    if points != math.floor(points):
        raise InvalidAmountError("Point amount must be a whole number", amount=points)
    if points > MAX_POINTS_AMOUNT:
        raise InvalidAmountError(
            f"Point amount cannot exceed {MAX_POINTS_AMOUNT:,}", amount=points
        )
    return int(points)


def parse_points_amount(text: str | None) -> int:
    if not text:
        return 0
    cleaned = _STRIP_PATTERN.sub("", str(text))
    try:
        value = float(cleaned)
    except ValueError:
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return math.floor(value)


def format_currency(cents: int) -> str:
    if not _is_finite_number(cents):
        return "$0.00"
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) / 100:,.2f}"


def points_to_usd(points: int) -> float:
    if not _is_finite_number(points):
        return 0.0
    return points / POINTS_PER_USD


__all__ = [
    "MAX_POINTS_AMOUNT",
    "POINTS_PER_USD",
    "format_currency",
    "format_points",
    "format_points_compact",
    "parse_points_amount",
    "points_to_usd",
    "validate_points_amount",
]
