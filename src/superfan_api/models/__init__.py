from .club import Club, ClubReserve, WeeklyUpfrontStat  # noqa: F401
from .points import PointSource, PointTransaction, PointTransactionType, PointWallet  # noqa: F401
from .rewards import (  # noqa: F401
    RedemptionState,
    Reward,
    RewardKind,
    RewardRedemption,
    RewardSettleMode,
    RewardStatus,
)
from .tap_in import TapIn  # noqa: F401
