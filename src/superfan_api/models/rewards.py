"""Club rewards and the redemptions members make against them."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from superfan_api.db.base import Base
from superfan_api.domain.economy.status import StatusTier


class RewardKind(str, Enum):
    ACCESS = "ACCESS"
    PRESALE_LOCK = "PRESALE_LOCK"
    VARIANT = "VARIANT"


class RewardSettleMode(str, Enum):
    ZERO = "ZERO"
    PRR = "PRR"


class RewardStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class RedemptionState(str, Enum):
    HELD = "HELD"
    CONFIRMED = "CONFIRMED"
    FULFILLED = "FULFILLED"
    REFUNDED = "REFUNDED"


class Reward(Base):
    """Something a member can buy with club points."""

    __tablename__ = "rewards"
    __table_args__ = (
        CheckConstraint("inventory IS NULL OR inventory >= 0", name="inventory_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    club_id = Column(UUID(as_uuid=True), ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(SqlEnum(RewardKind, name="reward_kind"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    points_price = Column(Integer, nullable=False)
    # NULL inventory means unlimited stock.
    inventory = Column(Integer, nullable=True)
    window_start = Column(DateTime(timezone=True), nullable=True)
    window_end = Column(DateTime(timezone=True), nullable=True)
    settle_mode = Column(
        SqlEnum(RewardSettleMode, name="reward_settle_mode"),
        nullable=False,
        default=RewardSettleMode.ZERO,
    )
    status = Column(
        SqlEnum(RewardStatus, name="reward_status"),
        nullable=False,
        default=RewardStatus.ACTIVE,
    )
    min_status = Column(SqlEnum(StatusTier, name="status_tier"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    club = relationship("Club", back_populates="rewards")
    redemptions = relationship("RewardRedemption", back_populates="reward")


class RewardRedemption(Base):
    """A member's claim on a reward, paid for with a split of purchased and earned points."""

    __tablename__ = "reward_redemptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    club_id = Column(UUID(as_uuid=True), ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False)
    reward_id = Column(UUID(as_uuid=True), ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False, index=True)
    wallet_id = Column(UUID(as_uuid=True), ForeignKey("point_wallets.id", ondelete="CASCADE"), nullable=False)
    points_spent = Column(Integer, nullable=False)
    spent_purchased = Column(Integer, nullable=False, default=0)
    spent_earned = Column(Integer, nullable=False, default=0)
    state = Column(
        SqlEnum(RedemptionState, name="redemption_state"),
        nullable=False,
        default=RedemptionState.HELD,
        index=True,
    )
    hold_expires_at = Column(DateTime(timezone=True), nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    ref = Column(String, nullable=False, unique=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    fulfilled_at = Column(DateTime(timezone=True), nullable=True)
    refunded_at = Column(DateTime(timezone=True), nullable=True)
    refund_reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    reward = relationship("Reward", back_populates="redemptions")
