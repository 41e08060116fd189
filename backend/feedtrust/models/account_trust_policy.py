"""AccountTrustPolicy model.

Per-(source, handle) inclusion policy for accounts that feed a source.

- handle is stored normalized (lowercase, no leading '@').
- mode is operator-controlled; feedback only moves pos_score / neg_score.
- last_updated_at is the decay reference point; a mode change does not move it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Float, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from feedtrust.core.base import Base, CreatedAtMixin, UpdatedAtMixin, UUIDPrimaryKeyMixin, VersionedMixin


POLICY_MODES = ("auto", "always", "mute")


class AccountTrustPolicy(UUIDPrimaryKeyMixin, VersionedMixin, CreatedAtMixin, UpdatedAtMixin, Base):
    """Decayed feedback magnitudes and explicit mode for one account handle."""

    __tablename__ = "account_trust_policies"
    __table_args__ = (
        UniqueConstraint("source_id", "handle", name="account_trust_policies_source_handle_key"),
        CheckConstraint(
            "mode IN ('auto', 'always', 'mute')",
            name="account_trust_policies_mode_check",
        ),
        CheckConstraint("pos_score >= 0", name="account_trust_policies_pos_nonneg"),
        CheckConstraint("neg_score >= 0", name="account_trust_policies_neg_nonneg"),
        Index("account_trust_policies_source_idx", "source_id"),
    )

    source_id: Mapped[str] = mapped_column(String, nullable=False)
    handle: Mapped[str] = mapped_column(String, nullable=False)

    mode: Mapped[str] = mapped_column(String(16), nullable=False, default="auto", server_default="auto")

    pos_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    neg_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")

    last_feedback_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
