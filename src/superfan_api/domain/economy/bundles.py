"""Point bundles sold at the unified peg of 100 points per dollar."""

from __future__ import annotations

from dataclasses import dataclass

from .formatting import format_currency, format_points


@dataclass(slots=True, frozen=True)
class PurchaseBundle:
    id: str
    points: int
    usd_cents: int
    bonus_points: int = 0

    @property
    def total_points(self) -> int:
        return self.points + self.bonus_points

    @property
    def display_name(self) -> str:
        label = f"{format_points(self.points)} Points"
        if self.bonus_points:
            label += f" + {format_points(self.bonus_points)} Bonus"
        return f"{label} ({format_currency(self.usd_cents)})"


UNIFIED_PEG_CENTS_PER_POINT = 1

PURCHASE_BUNDLES: tuple[PurchaseBundle, ...] = (
    PurchaseBundle(id="1000", points=1_000, usd_cents=1_000),
    PurchaseBundle(id="5000", points=5_000, usd_cents=5_000, bonus_points=250),
    PurchaseBundle(id="10000", points=10_000, usd_cents=10_000, bonus_points=1_000),
)


def get_bundle(bundle_id: str) -> PurchaseBundle | None:
    return next((bundle for bundle in PURCHASE_BUNDLES if bundle.id == bundle_id), None)


__all__ = ["PURCHASE_BUNDLES", "PurchaseBundle", "UNIFIED_PEG_CENTS_PER_POINT", "get_bundle"]
