"""Feedback calibration baseline: source_calibrations, account_trust_policies."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


# Revision identifiers, used by Alembic.
revision = "0001_feedback_calibration"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -------------------------------------------------------------------------
    # source_calibrations: per-(owner, source) rolling like/dislike statistics
    # -------------------------------------------------------------------------
    op.create_table(
        "source_calibrations",
        sa.Column("owner_id", sa.String(), nullable=False),
        sa.Column("source_id", sa.String(), nullable=False),
        sa.Column("items_shown", sa.Integer(), server_default="0", nullable=False),
        sa.Column("items_liked", sa.Integer(), server_default="0", nullable=False),
        sa.Column("items_disliked", sa.Integer(), server_default="0", nullable=False),
        sa.Column("rolling_hit_rate", sa.Float(), nullable=True),
        sa.Column("calibration_offset", sa.Float(), server_default="0", nullable=False),
        sa.Column("window_start", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), server_default="0", nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("owner_id", "source_id", name="source_calibrations_pkey"),
        sa.CheckConstraint("items_shown >= 0", name="source_calibrations_items_shown_nonneg"),
        sa.CheckConstraint("items_liked >= 0", name="source_calibrations_items_liked_nonneg"),
        sa.CheckConstraint("items_disliked >= 0", name="source_calibrations_items_disliked_nonneg"),
    )
    op.create_index("source_calibrations_owner_idx", "source_calibrations", ["owner_id"], unique=False)

    # -------------------------------------------------------------------------
    # account_trust_policies: per-(source, normalized handle) decayed scores + mode
    # -------------------------------------------------------------------------
    op.create_table(
        "account_trust_policies",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True, nullable=False),
        sa.Column("source_id", sa.String(), nullable=False),
        sa.Column("handle", sa.String(), nullable=False),
        sa.Column("mode", sa.String(length=16), server_default="auto", nullable=False),
        sa.Column("pos_score", sa.Float(), server_default="0", nullable=False),
        sa.Column("neg_score", sa.Float(), server_default="0", nullable=False),
        sa.Column("last_feedback_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("source_id", "handle", name="account_trust_policies_source_handle_key"),
        sa.CheckConstraint("mode IN ('auto', 'always', 'mute')", name="account_trust_policies_mode_check"),
        sa.CheckConstraint("pos_score >= 0", name="account_trust_policies_pos_nonneg"),
        sa.CheckConstraint("neg_score >= 0", name="account_trust_policies_neg_nonneg"),
    )
    op.create_index("account_trust_policies_source_idx", "account_trust_policies", ["source_id"], unique=False)


def downgrade() -> None:
    op.drop_index("account_trust_policies_source_idx", table_name="account_trust_policies")
    op.drop_table("account_trust_policies")
    op.drop_index("source_calibrations_owner_idx", table_name="source_calibrations")
    op.drop_table("source_calibrations")
