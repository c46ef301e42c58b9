from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class EconomySnapshot:
    tap_ins: Dict[str, int]
    ledger: Dict[str, int]
    redemptions: Dict[str, int]
    guardrails: Dict[str, int]
    duplicates: Dict[str, int]

    def as_dict(self) -> Dict[str, Dict[str, int]]:
        return {
            "tapIns": dict(self.tap_ins),
            "ledger": dict(self.ledger),
            "redemptions": dict(self.redemptions),
            "guardrails": dict(self.guardrails),
            "duplicates": dict(self.duplicates),
        }


class EconomyObservabilityStore:
    """In-process counters for the points economy."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._tap_ins: Dict[str, int] = defaultdict(int)
        self._ledger: Dict[str, int] = defaultdict(int)
        self._redemptions: Dict[str, int] = defaultdict(int)
        self._guardrails: Dict[str, int] = defaultdict(int)
        self._duplicates: Dict[str, int] = defaultdict(int)

    def record_tap_in(self, source: str, points: int) -> None:
        with self._lock:
            self._tap_ins[source or "unknown"] += 1
            self._tap_ins["points_awarded"] += points

    def record_ledger_mutation(self, transaction_type: str, points: int) -> None:
        with self._lock:
            self._ledger[f"{transaction_type.lower()}_count"] += 1
            self._ledger[f"{transaction_type.lower()}_points"] += points

    def record_redemption(self, state: str) -> None:
        with self._lock:
            self._redemptions[state.lower()] += 1

    def record_guardrail_rejection(self, club_id: str) -> None:
        with self._lock:
            self._guardrails["rejections"] += 1
            self._guardrails[f"club:{club_id}"] += 1

    def record_duplicate(self, event: str) -> None:
        with self._lock:
            self._duplicates[event] += 1

    def snapshot(self) -> EconomySnapshot:
        with self._lock:
            return EconomySnapshot(
                tap_ins=dict(self._tap_ins),
                ledger=dict(self._ledger),
                redemptions=dict(self._redemptions),
                guardrails=dict(self._guardrails),
                duplicates=dict(self._duplicates),
            )

    def reset(self) -> None:
        with self._lock:
            for bucket in (self._tap_ins, self._ledger, self._redemptions, self._guardrails, self._duplicates):
                bucket.clear()


_STORE = EconomyObservabilityStore()


def get_economy_store() -> EconomyObservabilityStore:
    return _STORE


__all__ = ["EconomyObservabilityStore", "EconomySnapshot", "get_economy_store"]
