"""RewardClaim and ClaimEvent models."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint, CheckConstraint

from app.db.base import Base

CLAIM_PENDING = "pending"
CLAIM_CLAIMED = "claimed"


class RewardClaim(Base):
    """Canonical allocation of one winner's reward."""

    __tablename__ = "reward_claims"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    winner_id = Column(Integer, ForeignKey("winners.id", ondelete="SET NULL"), nullable=True)
    wallet_address = Column(String(42), nullable=False)
    user_key = Column(String(64), nullable=True)
    pool_tier = Column(Integer, nullable=True)
    rank_in_pool = Column(Integer, nullable=True)
    reward_amount = Column(String(78), nullable=False, default="0")
    status = Column(String(20), nullable=False, default=CLAIM_PENDING)
    tx_hash = Column(String(100), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    __table_args__ = (
        Index("idx_reward_claims_wallet", "wallet_address"),
        UniqueConstraint("quiz_id", "wallet_address", name="uq_claim_quiz_wallet"),
        CheckConstraint("status IN ('pending', 'claimed')", name="ck_claim_status"),
    )


class ClaimEvent(Base):
    """Audit trail: exactly one row per pending -> claimed transition."""

    __tablename__ = "claim_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    claim_id = Column(Integer, ForeignKey("reward_claims.id", ondelete="CASCADE"), nullable=False)
    wallet_address = Column(String(42), nullable=False)
    tx_hash = Column(String(100), nullable=False)
    source = Column(String(20), nullable=False, default="claim")
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    __table_args__ = (
        UniqueConstraint("claim_id", name="uq_claim_event_claim"),
    )
