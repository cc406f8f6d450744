"""Quiz attempt (play session) business logic."""
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    AlreadyAnswered,
    AlreadyAttempted,
    AlreadyWinner,
    InvalidAnswer,
    NotFoundError,
    QuizClosed,
    QuizFull,
    TimeExpired,
)
from app.core.logging_config import get_logger
from app.core.utils import to_utc, utcnow
from app.db.models import QuizAttempt, Winner
from app.services.quiz import get_quiz, is_open, public_question
from app.services.utils import store_failure, violated_constraint
from app.services.winners import register_winner

logger = get_logger(__name__)

ATTEMPT_ACTIVE = "active"
ATTEMPT_COMPLETED = "completed"
ATTEMPT_FAILED = "failed"
ATTEMPT_TIMEOUT = "timeout"


@dataclass
class StartedAttempt:
    session_id: str
    questions: List[Dict[str, Any]]
    time_per_question: int
    server_time: datetime


@dataclass
class AnswerResult:
    correct: bool
    is_complete: bool
    next_question: Optional[Dict[str, Any]] = None
    result: Dict[str, Any] = field(default_factory=dict)
    winner: Optional[Winner] = None


def start_attempt(
    db: Session,
    quiz_id: int,
    wallet_address: str,
    user_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> StartedAttempt:
    """Open the single play session a wallet gets for a quiz.

    Raises:
        NotFoundError: unknown quiz
        QuizFull: every winner slot is taken
        QuizClosed: quiz inactive or outside its time window
        AlreadyAttempted: the wallet already played this quiz
    """
    now = now or utcnow()
    quiz = get_quiz(db, quiz_id)

    if quiz.is_full:
        raise QuizFull("Quiz has reached its winner limit")

    if not is_open(quiz, now):
        raise QuizClosed("Quiz is not accepting attempts")

    questions = list(quiz.questions)
    attempt = QuizAttempt(
        quiz_id=quiz.id,
        wallet_address=wallet_address,
        user_key=user_key,
        start_time=now,
        answers_json={"answers": []},
        total_questions=len(questions),
        status=ATTEMPT_ACTIVE,
    )

    try:
        db.add(attempt)
        db.commit()
        db.refresh(attempt)
    except IntegrityError as exc:
        db.rollback()
        if violated_constraint(exc, QuizAttempt, "uq_attempt_quiz_wallet"):
            raise AlreadyAttempted("You have already attempted this quiz") from exc
        raise store_failure(db, exc, "start_attempt") from exc
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "start_attempt") from exc

    random.shuffle(questions)
    logger.info("attempt_started", quiz_id=quiz.id, session_id=attempt.session_id, wallet=wallet_address)

    return StartedAttempt(
        session_id=attempt.session_id,
        questions=[public_question(question) for question in questions],
        time_per_question=quiz.time_per_question,
        server_time=now,
    )


def _get_active_attempt(db: Session, session_id: str, wallet_address: str) -> QuizAttempt:
    try:
        attempt = db.query(QuizAttempt).filter(QuizAttempt.session_id == session_id).first()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "get_attempt") from exc

    # A session belonging to another wallet is reported as missing
    if not attempt or attempt.wallet_address != wallet_address:
        raise NotFoundError("Session", session_id)

    if attempt.status != ATTEMPT_ACTIVE:
        raise NotFoundError("Active session", session_id)

    return attempt


def _finish(db: Session, attempt: QuizAttempt, answers: list, status: str, now: datetime, **values) -> None:
    attempt.answers_json = {"answers": answers}
    attempt.status = status
    attempt.end_time = now
    for name, value in values.items():
        setattr(attempt, name, value)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "finish_attempt") from exc


def submit_answer(
    db: Session,
    session_id: str,
    wallet_address: str,
    question_id: str,
    selected_index: int,
    now: Optional[datetime] = None,
) -> AnswerResult:
    """
    Grade one answer of an active session.

    Timing is measured on the server: question n must be answered within
    ``time_per_question`` seconds of ``start_time + n * time_per_question``.
    A wrong answer ends the session. The last correct answer completes it and
    tries to register the player as a winner with the server-measured
    completion time; a full quiz simply means no reward.

    Raises:
        NotFoundError: unknown, foreign or finished session
        AlreadyAnswered: question answered before in this session
        InvalidAnswer: question id not part of the quiz
        TimeExpired: the answer arrived too late; the session is closed
    """
    now = now or utcnow()
    attempt = _get_active_attempt(db, session_id, wallet_address)
    quiz = get_quiz(db, attempt.quiz_id)

    answers = list(attempt.answers)
    if any(answer["question_id"] == question_id for answer in answers):
        raise AlreadyAnswered("This question has already been answered")

    session_start = to_utc(attempt.start_time)
    per_question = timedelta(seconds=quiz.time_per_question)
    question_start = session_start + per_question * len(answers)
    answered_at_ms = int(to_utc(now).timestamp() * 1000)

    if to_utc(now) - question_start > per_question:
        answers.append({"question_id": question_id, "selected_index": -1, "server_timestamp": answered_at_ms})
        _finish(db, attempt, answers, ATTEMPT_TIMEOUT, now)
        logger.info("attempt_timed_out", session_id=session_id, question_index=len(answers) - 1)
        raise TimeExpired("Time limit exceeded")

    question = next((q for q in quiz.questions if q["id"] == question_id), None)
    if question is None:
        raise InvalidAnswer("Question not found")

    answers.append({"question_id": question_id, "selected_index": selected_index, "server_timestamp": answered_at_ms})
    correct = selected_index == question["correct_index"]
    completion_time_ms = int((to_utc(now) - session_start).total_seconds() * 1000)
    summary = {
        "session_id": session_id,
        "total_questions": attempt.total_questions,
        "completion_time_ms": completion_time_ms,
        "is_winner": False,
    }

    if not correct:
        score = len(answers) - 1
        _finish(db, attempt, answers, ATTEMPT_FAILED, now, score=score)
        logger.info("attempt_failed", session_id=session_id, score=score)
        return AnswerResult(correct=False, is_complete=True, result={**summary, "score": score})

    if len(answers) < attempt.total_questions:
        attempt.answers_json = {"answers": answers}
        try:
            db.commit()
        except SQLAlchemyError as exc:
            raise store_failure(db, exc, "submit_answer") from exc

        answered = {answer["question_id"] for answer in answers}
        remaining = [q for q in quiz.questions if q["id"] not in answered]
        return AnswerResult(correct=True, is_complete=False, next_question=public_question(remaining[0]))

    # All answered correctly. Register first: the attempt must not be
    # modified before register_winner commits or rolls back its transaction.
    winner = None
    try:
        winner = register_winner(db, quiz.id, wallet_address, completion_time_ms, attempt.user_key)
    except QuizFull:
        logger.info("quiz_full_on_completion", quiz_id=quiz.id, wallet=wallet_address)
    except AlreadyWinner:
        # A retried final answer whose winner row already committed
        winner = (
            db.query(Winner)
            .filter(Winner.quiz_id == quiz.id, Winner.wallet_address == wallet_address)
            .first()
        )

    _finish(
        db, attempt, answers, ATTEMPT_COMPLETED, now,
        score=len(answers),
        completion_time_ms=completion_time_ms,
        is_winner=winner is not None,
    )
    logger.info("attempt_completed", session_id=session_id, is_winner=winner is not None)

    result = {**summary, "score": len(answers), "is_winner": winner is not None}
    if winner is not None:
        result["reward_amount"] = winner.reward_amount
        result["slot"] = winner.slot

    return AnswerResult(correct=True, is_complete=True, result=result, winner=winner)
