"""Winner model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, Boolean, BigInteger, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base


class Winner(Base):
    """A finisher holding one slot of a quiz.

    ``slot`` is the 1-based arrival order handed out by the slot counter and
    decides the reward tier. Leaderboard rank is derived separately from
    completion time. ``claimed``/``claim_tx_hash`` mirror the canonical
    RewardClaim row for older readers of this table.
    """

    __tablename__ = "winners"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    wallet_address = Column(String(42), nullable=False)
    user_key = Column(String(64), nullable=True)
    slot = Column(Integer, nullable=False)
    completion_time_ms = Column(BigInteger, nullable=False)
    reward_amount = Column(String(78), nullable=False, default="0")
    pool_tier = Column(Integer, nullable=True)
    rank_in_pool = Column(Integer, nullable=True)
    claimed = Column(Boolean, nullable=False, default=False)
    claim_tx_hash = Column(String(100), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    quiz = relationship("Quiz", back_populates="winners")

    __table_args__ = (
        Index("idx_winners_leaderboard", "quiz_id", "completion_time_ms", "created_at"),
        Index("idx_winners_wallet", "wallet_address"),
        UniqueConstraint("quiz_id", "wallet_address", name="uq_winner_quiz_wallet"),
        UniqueConstraint("quiz_id", "slot", name="uq_winner_quiz_slot"),
    )
