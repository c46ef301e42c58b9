"""Points awarded per tap-in source."""

from __future__ import annotations

from typing import Mapping

DEFAULT_TAP_IN_POINTS = 10

TAP_IN_POINT_VALUES: Mapping[str, int] = {
    "qr_code": 20,
    "nfc": 20,
    "link": 10,
    "show_entry": 100,
    "merch_purchase": 50,
    "presave": 40,
}


def points_for_source(source: str) -> int:
    return TAP_IN_POINT_VALUES.get(source, DEFAULT_TAP_IN_POINTS)


__all__ = ["DEFAULT_TAP_IN_POINTS", "TAP_IN_POINT_VALUES", "points_for_source"]
