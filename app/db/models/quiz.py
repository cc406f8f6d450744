"""Quiz model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Index, CheckConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base


class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    creator_wallet = Column(String(42), nullable=False)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    # {"questions": [{"id", "text", "options", "correct_index"}]}; correct_index never leaves the server
    questions_json = Column(JSON, nullable=False)
    reward_token = Column(String(42), nullable=True)
    # Base units as a decimal string: pools exceed 64-bit integers
    reward_amount = Column(String(78), nullable=False, default="0")
    # NULL means unlimited winners ("fun" quiz)
    winner_limit = Column(Integer, nullable=True)
    # [{"tier", "name", "winner_count", "percentage"}] in rank order
    reward_pools = Column(JSON, nullable=True)
    time_per_question = Column(Integer, nullable=False, default=15)
    stake_token = Column(String(42), nullable=True)
    stake_amount = Column(String(78), nullable=True)
    entry_fee = Column(String(78), nullable=True)
    entry_fee_token = Column(String(42), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    # Slot counter; only ever advanced by a conditional UPDATE in services.winners
    current_winners = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")
    contract_quiz_id = Column(String(78), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    # Relationships
    winners = relationship("Winner", back_populates="quiz", cascade="all, delete-orphan")
    attempts = relationship("QuizAttempt", back_populates="quiz", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_quizzes_status", "status"),
        CheckConstraint(
            "winner_limit IS NULL OR current_winners <= winner_limit",
            name="ck_quiz_winner_capacity",
        ),
    )

    @property
    def is_fun(self) -> bool:
        return self.winner_limit is None

    @property
    def is_full(self) -> bool:
        return self.winner_limit is not None and self.current_winners >= self.winner_limit

    @property
    def questions(self) -> list:
        return (self.questions_json or {}).get("questions", [])
