"""Tap-in events: a fan checking in at a show, scanning a QR code, and so on."""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, func
from sqlalchemy.dialects.postgresql import UUID

from superfan_api.db.base import Base


class TapIn(Base):
    __tablename__ = "tap_ins"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    club_id = Column(UUID(as_uuid=True), ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False, index=True)
    source = Column(String, nullable=False)
    points_earned = Column(Integer, nullable=False)
    location = Column(String, nullable=True)
    ref = Column(String, nullable=False, unique=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
