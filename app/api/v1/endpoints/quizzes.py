"""Quiz, play session and leaderboard endpoints."""
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.deps import Identity, get_db, get_notification_dispatcher, get_wallet_identity
from app.schemas import (
    AnswerRequest,
    AnswerResponse,
    LeaderboardResponse,
    QuizCreate,
    QuizList,
    QuizResponse,
    StartAttemptResponse,
)
from app.services.attempt import start_attempt, submit_answer
from app.services.notifications import NotificationDispatcher
from app.services.quiz import QUIZ_ACTIVE, create_quiz, get_quiz, list_quizzes, quiz_to_dict
from app.services.rewards import RewardTier
from app.services.winners import leaderboard
from app.core.cache import global_cache, leaderboard_key
from app.core.config import settings
from app.core.rate_limit import limiter, RATE_LIMITS

router = APIRouter()
attempts_router = APIRouter()


@router.post("", response_model=QuizResponse, status_code=201)
@limiter.limit(RATE_LIMITS["create"])
async def create_quiz_endpoint(
    request: Request,
    quiz: QuizCreate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_wallet_identity),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db: Session = Depends(get_db)
):
    """
    Create a quiz owned by the caller's wallet.

    Omitting ``winner_limit`` creates an unlimited quiz without rewards.
    With a limit, ``reward_pools`` may split the reward into tiers whose
    winner counts add up to the limit; without pools the reward is split
    evenly and any indivisible remainder stays in the pool.

    Subscribed users are notified in the background once the quiz is stored.

    Example:
        Request:
            POST /api/v1/quizzes
            Authorization: Bearer eyJhbGc...
            {
                "title": "Base trivia",
                "questions": [{"text": "2 + 2?", "options": ["3", "4"], "correct_index": 1}],
                "reward_amount": "1000",
                "winner_limit": 3
            }

        Response (201):
            {"quiz": {"id": 12, "reward_per_winner": "333", "remaining_spots": 3, ...}}
    """
    tiers = None
    if quiz.reward_pools:
        tiers = [
            RewardTier(tier=pool.tier, winner_count=pool.winner_count, percentage=pool.percentage, name=pool.name)
            for pool in quiz.reward_pools
        ]

    created = create_quiz(
        db,
        creator_wallet=identity.wallet_address,
        title=quiz.title,
        questions=[question.model_dump() for question in quiz.questions],
        reward_amount=quiz.reward_amount,
        winner_limit=quiz.winner_limit,
        reward_pools=tiers,
        reward_token=quiz.reward_token,
        description=quiz.description,
        time_per_question=quiz.time_per_question,
        start_time=quiz.start_time,
        end_time=quiz.end_time,
        stake_token=quiz.stake_token,
        stake_amount=quiz.stake_amount,
        entry_fee=quiz.entry_fee,
        entry_fee_token=quiz.entry_fee_token,
        contract_quiz_id=quiz.contract_quiz_id,
    )

    background_tasks.add_task(dispatcher.notify_quiz_start, created.id, created.title)
    return {"quiz": quiz_to_dict(created)}


@router.get("", response_model=QuizList)
@limiter.limit(RATE_LIMITS["read"])
async def list_quizzes_endpoint(
    request: Request,
    status: Optional[str] = Query(QUIZ_ACTIVE, max_length=20),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    quizzes = list_quizzes(db, status=status, limit=limit, offset=offset)
    return {"quizzes": [quiz_to_dict(quiz) for quiz in quizzes]}


@router.get("/{quiz_id}", response_model=QuizResponse)
@limiter.limit(RATE_LIMITS["read"])
async def get_quiz_endpoint(request: Request, quiz_id: int, db: Session = Depends(get_db)):
    """Quiz detail including remaining spots. Correct answers are never included."""
    return {"quiz": quiz_to_dict(get_quiz(db, quiz_id))}


@router.post("/{quiz_id}/start", response_model=StartAttemptResponse)
@limiter.limit(RATE_LIMITS["quiz_play"])
async def start_quiz_endpoint(
    request: Request,
    quiz_id: int,
    identity: Identity = Depends(get_wallet_identity),
    db: Session = Depends(get_db)
):
    """
    Open the caller's play session.

    Each wallet gets one session per quiz. The questions come back shuffled
    and without their answers; the server clock starts now.

    Raises:
        409 QUIZ_FULL: every winner slot is taken
        409 ALREADY_ATTEMPTED: the wallet already played this quiz
        400 QUIZ_CLOSED: inactive, not started yet or ended
    """
    started = start_attempt(db, quiz_id, identity.wallet_address, user_key=identity.primary_key)
    return StartAttemptResponse(
        session_id=started.session_id,
        questions=started.questions,
        time_per_question=started.time_per_question,
        server_time=started.server_time,
    )


@router.get("/{quiz_id}/leaderboard", response_model=LeaderboardResponse)
@limiter.limit(RATE_LIMITS["read"])
async def leaderboard_endpoint(request: Request, quiz_id: int, db: Session = Depends(get_db)):
    """Winners fastest first, ranked from 1. Cached briefly, invalidated on new winners."""

    def fetch():
        quiz = get_quiz(db, quiz_id)
        entries = leaderboard(db, quiz_id)
        return {
            "quiz_id": quiz.id,
            "winner_limit": quiz.winner_limit,
            "current_winners": quiz.current_winners,
            "entries": [asdict(entry) for entry in entries],
        }

    return global_cache.get_or_fetch(
        leaderboard_key(quiz_id),
        fetch,
        ttl_seconds=settings.READ_CACHE_TTL_SECONDS,
    )


@attempts_router.post("/{session_id}/answer", response_model=AnswerResponse)
@limiter.limit(RATE_LIMITS["quiz_play"])
async def answer_endpoint(
    request: Request,
    session_id: str,
    answer: AnswerRequest,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_wallet_identity),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    db: Session = Depends(get_db)
):
    """
    Submit one answer of an active session.

    A wrong answer or a late one ends the session. The final correct answer
    registers the player as a winner if a slot is left; the winner
    notification is sent after the response, and a failed notification
    never affects the registration.
    """
    outcome = submit_answer(
        db,
        session_id,
        identity.wallet_address,
        question_id=answer.question_id,
        selected_index=answer.selected_index,
    )

    if outcome.winner is not None:
        winner = outcome.winner
        global_cache.invalidate(leaderboard_key(winner.quiz_id))
        if winner.user_key:
            background_tasks.add_task(
                dispatcher.notify_winner,
                winner.user_key,
                winner.quiz.title,
                winner.reward_amount,
                winner.quiz_id,
            )

    return AnswerResponse(
        correct=outcome.correct,
        is_complete=outcome.is_complete,
        next_question=outcome.next_question,
        result=outcome.result or None,
    )
