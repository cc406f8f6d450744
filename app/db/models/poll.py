"""Poll model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Index
from sqlalchemy.orm import relationship

from app.db.base import Base


class Poll(Base):
    __tablename__ = "polls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    creator_key = Column(String(64), nullable=False)
    creator_address = Column(String(42), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    # Ordered [{"index": 0, "text": "..."}, ...]; tallies are derived from poll_votes
    options = Column(JSON, nullable=False)
    is_multiple_choice = Column(Boolean, nullable=False, default=False)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    ends_at = Column(DateTime(timezone=True), nullable=True)
    require_token = Column(String(42), nullable=True)
    require_token_amount = Column(String(78), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    votes = relationship("PollVote", back_populates="poll", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_polls_creator", "creator_key"),
        Index("idx_polls_created_at", "created_at"),
    )

    @property
    def option_count(self) -> int:
        return len(self.options or [])
