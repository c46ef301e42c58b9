"""Point wallets and their append-only transaction log."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SqlEnum,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from superfan_api.db.base import Base


class PointTransactionType(str, Enum):
    PURCHASE = "PURCHASE"
    BONUS = "BONUS"
    SPEND = "SPEND"
    REFUND = "REFUND"


class PointSource(str, Enum):
    EARNED = "earned"
    PURCHASED = "purchased"
    SPENT = "spent"
    REFUND = "refund"


class PointWallet(Base):
    """One wallet per (user, club); points never move between clubs."""

    __tablename__ = "point_wallets"
    __table_args__ = (
        UniqueConstraint("user_id", "club_id", name="uq_point_wallets_user_club"),
        CheckConstraint("balance_pts >= 0", name="balance_non_negative"),
        CheckConstraint("earned_pts >= 0", name="earned_non_negative"),
        CheckConstraint("purchased_pts >= 0", name="purchased_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    club_id = Column(UUID(as_uuid=True), ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False, index=True)
    balance_pts = Column(Integer, nullable=False, default=0, server_default="0")
    earned_pts = Column(Integer, nullable=False, default=0, server_default="0")
    purchased_pts = Column(Integer, nullable=False, default=0, server_default="0")
    spent_pts = Column(Integer, nullable=False, default=0, server_default="0")
    escrowed_pts = Column(Integer, nullable=False, default=0, server_default="0")
    last_activity_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    club = relationship("Club", back_populates="wallets")
    transactions = relationship(
        "PointTransaction",
        back_populates="wallet",
        order_by="PointTransaction.created_at",
    )

    @property
    def status_pts(self) -> int:
        """Earned points that count toward status, net of escrow."""

        return max(0, (self.earned_pts or 0) - (self.escrowed_pts or 0))


class PointTransaction(Base):
    """Immutable record of a single balance mutation."""

    __tablename__ = "point_transactions"
    __table_args__ = (
        UniqueConstraint("wallet_id", "ref", name="uq_point_transactions_wallet_ref"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    wallet_id = Column(
        UUID(as_uuid=True),
        ForeignKey("point_wallets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = Column(SqlEnum(PointTransactionType, name="point_transaction_type"), nullable=False)
    pts = Column(Integer, nullable=False)
    unit_sell_cents = Column(Integer, nullable=True)
    unit_settle_cents = Column(Integer, nullable=True)
    usd_gross_cents = Column(Integer, nullable=True)
    ref = Column(String, nullable=True)
    source = Column(SqlEnum(PointSource, name="point_source"), nullable=False)
    affects_status = Column(Boolean, nullable=False, default=False, server_default="0")
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    wallet = relationship("PointWallet", back_populates="transactions")
