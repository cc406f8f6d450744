"""PollVote model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base


class PollVote(Base):
    """One ballot: one voter choosing one option of one poll.

    ``choice_slot`` is 0 for single-choice polls and the option index for
    multiple-choice polls, so ``uq_poll_voter_slot`` means "one ballot per
    voter" or "one ballot per voter per option" depending on the poll.
    """

    __tablename__ = "poll_votes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    poll_id = Column(Integer, ForeignKey("polls.id", ondelete="CASCADE"), nullable=False)
    voter_key = Column(String(64), nullable=False)
    voter_address = Column(String(42), nullable=True)
    option_index = Column(Integer, nullable=False)
    choice_slot = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    poll = relationship("Poll", back_populates="votes")

    __table_args__ = (
        Index("idx_poll_votes_poll", "poll_id"),
        Index("idx_poll_votes_voter", "poll_id", "voter_key"),
        UniqueConstraint("poll_id", "voter_key", "choice_slot", name="uq_poll_voter_slot"),
    )
