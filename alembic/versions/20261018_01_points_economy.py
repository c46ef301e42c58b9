"""Points economy tables.

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


point_transaction_type = sa.Enum("PURCHASE", "BONUS", "SPEND", "REFUND", name="point_transaction_type")
point_source = sa.Enum("EARNED", "PURCHASED", "SPENT", "REFUND", name="point_source")
reward_kind = sa.Enum("ACCESS", "PRESALE_LOCK", "VARIANT", name="reward_kind")
reward_settle_mode = sa.Enum("ZERO", "PRR", name="reward_settle_mode")
reward_status = sa.Enum("ACTIVE", "INACTIVE", name="reward_status")
status_tier = sa.Enum("CADET", "RESIDENT", "HEADLINER", "SUPERFAN", name="status_tier")
redemption_state = sa.Enum("HELD", "CONFIRMED", "FULFILLED", "REFUNDED", name="redemption_state")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "clubs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("point_sell_cents", sa.Integer(), nullable=False, server_default="120"),
        sa.Column("point_settle_cents", sa.Integer(), nullable=False, server_default="60"),
        sa.Column("guardrail_min_sell", sa.Integer(), nullable=False, server_default="50"),
        sa.Column("guardrail_max_sell", sa.Integer(), nullable=False, server_default="500"),
        sa.Column("guardrail_min_settle", sa.Integer(), nullable=False, server_default="25"),
        sa.Column("guardrail_max_settle", sa.Integer(), nullable=False, server_default="250"),
        *_timestamps(),
    )

    op.create_table(
        "club_reserves",
        sa.Column(
            "club_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("clubs.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("reserve_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "weekly_upfront_stats",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("club_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("week_start", sa.Date(), nullable=False),
        sa.Column("gross_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("platform_fee_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("reserve_delta_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("upfront_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("club_id", "week_start", name="uq_weekly_upfront_stats_club_week"),
    )
    op.create_index("ix_weekly_upfront_stats_club_id", "weekly_upfront_stats", ["club_id"])

    op.create_table(
        "point_wallets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("club_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("balance_pts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("earned_pts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("purchased_pts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("spent_pts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("escrowed_pts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "club_id", name="uq_point_wallets_user_club"),
        sa.CheckConstraint("balance_pts >= 0", name="ck_point_wallets_balance_non_negative"),
        sa.CheckConstraint("earned_pts >= 0", name="ck_point_wallets_earned_non_negative"),
        sa.CheckConstraint("purchased_pts >= 0", name="ck_point_wallets_purchased_non_negative"),
    )
    op.create_index("ix_point_wallets_user_id", "point_wallets", ["user_id"])
    op.create_index("ix_point_wallets_club_id", "point_wallets", ["club_id"])

    op.create_table(
        "point_transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "wallet_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("point_wallets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", point_transaction_type, nullable=False),
        sa.Column("pts", sa.Integer(), nullable=False),
        sa.Column("unit_sell_cents", sa.Integer(), nullable=True),
        sa.Column("unit_settle_cents", sa.Integer(), nullable=True),
        sa.Column("usd_gross_cents", sa.Integer(), nullable=True),
        sa.Column("ref", sa.String(), nullable=True),
        sa.Column("source", point_source, nullable=False),
        sa.Column("affects_status", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("wallet_id", "ref", name="uq_point_transactions_wallet_ref"),
    )
    op.create_index("ix_point_transactions_wallet_id", "point_transactions", ["wallet_id"])

    op.create_table(
        "rewards",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("club_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", reward_kind, nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("points_price", sa.Integer(), nullable=False),
        sa.Column("inventory", sa.Integer(), nullable=True),
        sa.Column("window_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("window_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("settle_mode", reward_settle_mode, nullable=False),
        sa.Column("status", reward_status, nullable=False),
        sa.Column("min_status", status_tier, nullable=True),
        *_timestamps(),
        sa.CheckConstraint("inventory IS NULL OR inventory >= 0", name="ck_rewards_inventory_non_negative"),
    )
    op.create_index("ix_rewards_club_id", "rewards", ["club_id"])

    op.create_table(
        "reward_redemptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("club_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reward_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("rewards.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "wallet_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("point_wallets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("points_spent", sa.Integer(), nullable=False),
        sa.Column("spent_purchased", sa.Integer(), nullable=False),
        sa.Column("spent_earned", sa.Integer(), nullable=False),
        sa.Column("state", redemption_state, nullable=False),
        sa.Column("hold_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("ref", sa.String(), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refund_reason", sa.String(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("ref", name="uq_reward_redemptions_ref"),
    )
    op.create_index("ix_reward_redemptions_user_id", "reward_redemptions", ["user_id"])
    op.create_index("ix_reward_redemptions_reward_id", "reward_redemptions", ["reward_id"])
    op.create_index("ix_reward_redemptions_state", "reward_redemptions", ["state"])

    op.create_table(
        "tap_ins",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("club_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("points_earned", sa.Integer(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("ref", sa.String(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("ref", name="uq_tap_ins_ref"),
    )
    op.create_index("ix_tap_ins_user_id", "tap_ins", ["user_id"])
    op.create_index("ix_tap_ins_club_id", "tap_ins", ["club_id"])


def downgrade() -> None:
    op.drop_table("tap_ins")
    op.drop_table("reward_redemptions")
    op.drop_table("rewards")
    op.drop_table("point_transactions")
    op.drop_table("point_wallets")
    op.drop_table("weekly_upfront_stats")
    op.drop_table("club_reserves")
    op.drop_table("clubs")

    bind = op.get_bind()
    for enum in (
        redemption_state,
        status_tier,
        reward_status,
        reward_settle_mode,
        reward_kind,
        point_source,
        point_transaction_type,
    ):
        enum.drop(bind, checkfirst=True)
