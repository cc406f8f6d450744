"""Quiz business logic."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import DEFAULT_TIME_PER_QUESTION, MIN_QUESTION_OPTIONS
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging_config import get_logger
from app.core.utils import has_passed, isoformat, to_utc, utcnow
from app.db.models import Quiz
from app.services.rewards import (
    RewardTier,
    default_tiers,
    parse_tiers,
    payout_schedule,
    reward_per_winner,
    validate_tiers,
)
from app.services.utils import store_failure

logger = get_logger(__name__)

QUIZ_ACTIVE = "active"
QUIZ_COMPLETED = "completed"


def _validate_questions(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not questions:
        raise ValidationError("A quiz needs at least one question")

    validated = []
    for number, question in enumerate(questions, start=1):
        options = question.get("options") or []
        if len(options) < MIN_QUESTION_OPTIONS:
            raise ValidationError(f"Question {number} needs at least {MIN_QUESTION_OPTIONS} options")

        correct_index = question.get("correct_index")
        if not isinstance(correct_index, int) or not 0 <= correct_index < len(options):
            raise ValidationError(f"Question {number} has an invalid correct answer index")

        validated.append({
            "id": question.get("id") or f"q{number}",
            "text": question["text"],
            "options": list(options),
            "correct_index": correct_index,
        })

    ids = [question["id"] for question in validated]
    if len(set(ids)) != len(ids):
        raise ValidationError("Question ids must be unique")

    return validated


def create_quiz(
    db: Session,
    creator_wallet: str,
    title: str,
    questions: List[Dict[str, Any]],
    reward_amount: str = "0",
    winner_limit: Optional[int] = None,
    reward_pools: Optional[List[RewardTier]] = None,
    reward_token: Optional[str] = None,
    description: Optional[str] = None,
    time_per_question: int = DEFAULT_TIME_PER_QUESTION,
    start_time: Optional[datetime] = None,
    end_time: Optional[datetime] = None,
    stake_token: Optional[str] = None,
    stake_amount: Optional[str] = None,
    entry_fee: Optional[str] = None,
    entry_fee_token: Optional[str] = None,
    contract_quiz_id: Optional[str] = None,
) -> Quiz:
    """Create a quiz.

    ``winner_limit=None`` creates an unlimited ("fun") quiz that never fills
    up and pays no reward. A finite quiz without ``reward_pools`` splits the
    pool evenly across its slots.

    Raises:
        ValidationError: malformed questions, schedule or time window
    """
    validated_questions = _validate_questions(questions)

    if time_per_question < 1:
        raise ValidationError("Time per question must be at least one second")

    if start_time and end_time and to_utc(end_time) <= to_utc(start_time):
        raise ValidationError("End time must be after start time")

    total = int(reward_amount)

    if winner_limit is None:
        tiers = []
    else:
        if winner_limit < 1:
            raise ValidationError("Winner limit must be at least 1")
        tiers = list(reward_pools) if reward_pools else default_tiers(winner_limit)
        try:
            validate_tiers(tiers, winner_limit)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    quiz = Quiz(
        creator_wallet=creator_wallet,
        title=title,
        description=description,
        questions_json={"questions": validated_questions},
        reward_token=reward_token,
        reward_amount=str(total),
        winner_limit=winner_limit,
        reward_pools=[tier.to_dict() for tier in tiers],
        time_per_question=time_per_question,
        start_time=to_utc(start_time) if start_time else None,
        end_time=to_utc(end_time) if end_time else None,
        stake_token=stake_token,
        stake_amount=stake_amount,
        entry_fee=entry_fee,
        entry_fee_token=entry_fee_token,
        contract_quiz_id=contract_quiz_id,
        current_winners=0,
        status=QUIZ_ACTIVE,
    )

    try:
        db.add(quiz)
        db.commit()
        db.refresh(quiz)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "create_quiz") from exc

    logger.info(
        "quiz_created",
        quiz_id=quiz.id,
        winner_limit=winner_limit,
        reward_amount=quiz.reward_amount,
        tiers=len(tiers),
    )
    return quiz


def get_quiz(db: Session, quiz_id: int) -> Quiz:
    try:
        quiz = db.query(Quiz).filter(Quiz.id == quiz_id).first()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "get_quiz") from exc

    if not quiz:
        raise NotFoundError("Quiz", quiz_id)
    return quiz


def list_quizzes(db: Session, status: Optional[str] = QUIZ_ACTIVE, limit: int = 20, offset: int = 0) -> List[Quiz]:
    query = db.query(Quiz)
    if status:
        query = query.filter(Quiz.status == status)
    try:
        return query.order_by(Quiz.created_at.desc(), Quiz.id.desc()).offset(offset).limit(limit).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "list_quizzes") from exc


def is_open(quiz: Quiz, now: Optional[datetime] = None) -> bool:
    """Accepting new attempts: active, slots left, inside its time window."""
    now = now or utcnow()
    if quiz.status != QUIZ_ACTIVE or quiz.is_full:
        return False
    if quiz.start_time and to_utc(quiz.start_time) > to_utc(now):
        return False
    return not has_passed(quiz.end_time, now)


def public_question(question: Dict[str, Any]) -> Dict[str, Any]:
    """A question as shown to players: the correct index is withheld."""
    return {"id": question["id"], "text": question["text"], "options": question["options"]}


def quiz_to_dict(quiz: Quiz) -> Dict[str, Any]:
    """Public quiz view. Never includes correct answers."""
    total = int(quiz.reward_amount)
    tiers = parse_tiers(quiz.reward_pools)

    if quiz.is_fun:
        per_winner = None
        pools = []
    else:
        per_winner = str(reward_per_winner(total, quiz.winner_limit))
        pools = [
            {
                **allocation.tier.to_dict(),
                "pool_amount": str(allocation.pool_amount),
                "per_winner": str(allocation.per_winner),
            }
            for allocation in payout_schedule(total, tiers).allocations
        ]

    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "creator_wallet": quiz.creator_wallet,
        "question_count": len(quiz.questions),
        "time_per_question": quiz.time_per_question,
        "reward_token": quiz.reward_token,
        "reward_amount": quiz.reward_amount,
        "winner_limit": quiz.winner_limit,
        "current_winners": quiz.current_winners,
        "remaining_spots": None if quiz.is_fun else max(quiz.winner_limit - quiz.current_winners, 0),
        "reward_per_winner": per_winner,
        "reward_pools": pools,
        "stake_required": (
            {"token": quiz.stake_token, "amount": quiz.stake_amount}
            if quiz.stake_token and quiz.stake_amount else None
        ),
        "entry_fee": quiz.entry_fee,
        "entry_fee_token": quiz.entry_fee_token,
        "start_time": isoformat(quiz.start_time),
        "end_time": isoformat(quiz.end_time),
        "status": quiz.status,
        "is_fun": quiz.is_fun,
        "created_at": isoformat(quiz.created_at),
    }
