"""Club pricing configuration and reserve accounting tables."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from superfan_api.db.base import Base


class Club(Base):
    """An artist club whose points are sold and settled at club-specific prices."""

    __tablename__ = "clubs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default="1")
    point_sell_cents = Column(Integer, nullable=False, default=120, server_default="120")
    point_settle_cents = Column(Integer, nullable=False, default=60, server_default="60")
    guardrail_min_sell = Column(Integer, nullable=False, default=50, server_default="50")
    guardrail_max_sell = Column(Integer, nullable=False, default=500, server_default="500")
    guardrail_min_settle = Column(Integer, nullable=False, default=25, server_default="25")
    guardrail_max_settle = Column(Integer, nullable=False, default=250, server_default="250")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    wallets = relationship("PointWallet", back_populates="club")
    rewards = relationship("Reward", back_populates="club")


class ClubReserve(Base):
    """Running reserve held against a club's outstanding points."""

    __tablename__ = "club_reserves"

    club_id = Column(UUID(as_uuid=True), ForeignKey("clubs.id", ondelete="CASCADE"), primary_key=True)
    reserve_cents = Column(BigInteger, nullable=False, default=0, server_default="0")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class WeeklyUpfrontStat(Base):
    """Per-week totals of what a club sold and what it could draw upfront."""

    __tablename__ = "weekly_upfront_stats"
    __table_args__ = (
        UniqueConstraint("club_id", "week_start", name="uq_weekly_upfront_stats_club_week"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    club_id = Column(UUID(as_uuid=True), ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False, index=True)
    week_start = Column(Date, nullable=False)
    gross_cents = Column(BigInteger, nullable=False, default=0, server_default="0")
    platform_fee_cents = Column(BigInteger, nullable=False, default=0, server_default="0")
    reserve_delta_cents = Column(BigInteger, nullable=False, default=0, server_default="0")
    upfront_cents = Column(BigInteger, nullable=False, default=0, server_default="0")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
