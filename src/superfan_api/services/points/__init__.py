from .ledger import WalletLedger
from .points_service import (
    ClubBalance,
    GlobalBalance,
    PointsService,
    PurchaseResult,
    SpendResult,
    TapInResult,
    WalletBreakdown,
)
from .redemptions import RedemptionService
from .reserve_service import ReserveService, ReserveSnapshot

__all__ = [
    "ClubBalance",
    "GlobalBalance",
    "PointsService",
    "PurchaseResult",
    "RedemptionService",
    "ReserveService",
    "ReserveSnapshot",
    "SpendResult",
    "TapInResult",
    "WalletBreakdown",
    "WalletLedger",
]
