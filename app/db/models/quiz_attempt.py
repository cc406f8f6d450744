"""QuizAttempt model."""
import uuid
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, Boolean, BigInteger, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base


class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    session_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    wallet_address = Column(String(42), nullable=False)
    user_key = Column(String(64), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))
    end_time = Column(DateTime(timezone=True), nullable=True)
    # {"answers": [{"question_id", "selected_index", "server_timestamp"}]}
    answers_json = Column(JSON, nullable=False, default=lambda: {"answers": []})
    total_questions = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="active")
    score = Column(Integer, nullable=False, default=0)
    completion_time_ms = Column(BigInteger, nullable=True)
    is_winner = Column(Boolean, nullable=False, default=False)

    # Relationships
    quiz = relationship("Quiz", back_populates="attempts")

    __table_args__ = (
        UniqueConstraint("quiz_id", "wallet_address", name="uq_attempt_quiz_wallet"),
    )

    @property
    def answers(self) -> list:
        return (self.answers_json or {}).get("answers", [])
