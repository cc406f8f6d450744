"""Winner registration and quiz leaderboards."""
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import AlreadyWinner, QuizFull, ValidationError
from app.core.logging_config import get_logger
from app.db.models import CLAIM_PENDING, Quiz, RewardClaim, Winner
from app.services.quiz import QUIZ_COMPLETED, get_quiz
from app.services.rewards import parse_tiers, reward_for_slot
from app.services.utils import store_failure, violated_constraint

logger = get_logger(__name__)


@dataclass
class LeaderboardEntry:
    rank: int
    wallet_address: str
    user_key: Optional[str]
    completion_time_ms: int
    reward_amount: str
    pool_tier: Optional[int]
    claimed: bool


def _claim_slot(db: Session, quiz: Quiz):
    """
    Advance the quiz's slot counter inside the current transaction.

    For a finite quiz this is a compare-and-increment: the UPDATE only
    matches while ``current_winners < winner_limit``, so concurrent
    finishers serialize on the quiz row and at most ``winner_limit``
    increments can ever succeed. The same statement flips the quiz to
    completed when it takes the last slot.

    Returns:
        The 1-based slot number taken, or None when the quiz is full
    """
    if quiz.is_fun:
        statement = (
            update(Quiz)
            .where(Quiz.id == quiz.id)
            .values(current_winners=Quiz.current_winners + 1)
        )
    else:
        statement = (
            update(Quiz)
            .where(Quiz.id == quiz.id, Quiz.current_winners < Quiz.winner_limit)
            .values(
                current_winners=Quiz.current_winners + 1,
                status=case(
                    (Quiz.current_winners + 1 >= Quiz.winner_limit, QUIZ_COMPLETED),
                    else_=Quiz.status,
                ),
            )
        )

    result = db.execute(statement.execution_options(synchronize_session=False))
    if result.rowcount == 0:
        return None

    return db.execute(select(Quiz.current_winners).where(Quiz.id == quiz.id)).scalar_one()


def register_winner(
    db: Session,
    quiz_id: int,
    wallet_address: str,
    completion_time_ms: int,
    user_key: Optional[str] = None,
) -> Winner:
    """
    Give a finisher a winner slot on a quiz.

    The slot counter increment, the winner row and its pending reward claim
    are one transaction. The reward is computed from the slot's tier now and
    never recomputed.

    Raises:
        NotFoundError: unknown quiz
        ValidationError: negative completion time
        QuizFull: every slot is taken
        AlreadyWinner: this wallet already holds a slot on the quiz
        StoreError: database failure, nothing recorded
    """
    if completion_time_ms < 0:
        raise ValidationError("Completion time can not be negative")

    quiz = get_quiz(db, quiz_id)

    try:
        existing = (
            db.query(Winner.id)
            .filter(Winner.quiz_id == quiz.id, Winner.wallet_address == wallet_address)
            .first()
        )
        if existing:
            raise AlreadyWinner("This wallet already holds a winner slot for this quiz")

        slot = _claim_slot(db, quiz)
        if slot is None:
            db.rollback()
            logger.info("quiz_full", quiz_id=quiz.id, wallet=wallet_address)
            raise QuizFull("All winner slots for this quiz are taken")

        if quiz.is_fun:
            amount, pool_tier, rank_in_pool = 0, None, None
        else:
            reward = reward_for_slot(int(quiz.reward_amount), parse_tiers(quiz.reward_pools), slot - 1)
            amount, pool_tier, rank_in_pool = reward.amount, reward.tier, reward.rank_in_pool

        winner = Winner(
            quiz_id=quiz.id,
            wallet_address=wallet_address,
            user_key=user_key,
            slot=slot,
            completion_time_ms=completion_time_ms,
            reward_amount=str(amount),
            pool_tier=pool_tier,
            rank_in_pool=rank_in_pool,
            claimed=False,
        )
        db.add(winner)
        db.flush()

        if not quiz.is_fun:
            db.add(RewardClaim(
                quiz_id=quiz.id,
                winner_id=winner.id,
                wallet_address=wallet_address,
                user_key=user_key,
                pool_tier=pool_tier,
                rank_in_pool=rank_in_pool,
                reward_amount=str(amount),
                status=CLAIM_PENDING,
            ))

        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if violated_constraint(exc, Winner, "uq_winner_quiz_wallet") or \
                violated_constraint(exc, RewardClaim, "uq_claim_quiz_wallet"):
            raise AlreadyWinner("This wallet already holds a winner slot for this quiz") from exc
        raise store_failure(db, exc, "register_winner") from exc
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "register_winner") from exc

    db.refresh(winner)
    logger.info(
        "winner_registered",
        quiz_id=quiz.id,
        wallet=wallet_address,
        slot=slot,
        completion_time_ms=completion_time_ms,
        reward_amount=winner.reward_amount,
        pool_tier=pool_tier,
    )
    return winner


def leaderboard(db: Session, quiz_id: int) -> List[LeaderboardEntry]:
    """
    Winners ordered fastest first.

    Equal completion times are ordered by when the winner row was recorded,
    then by id, so repeated calls over unchanged data give the same ranks.
    """
    quiz = get_quiz(db, quiz_id)

    try:
        winners = (
            db.query(Winner)
            .filter(Winner.quiz_id == quiz.id)
            .order_by(Winner.completion_time_ms.asc(), Winner.created_at.asc(), Winner.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "leaderboard") from exc

    return [
        LeaderboardEntry(
            rank=rank,
            wallet_address=winner.wallet_address,
            user_key=winner.user_key,
            completion_time_ms=winner.completion_time_ms,
            reward_amount=winner.reward_amount,
            pool_tier=winner.pool_tier,
            claimed=winner.claimed,
        )
        for rank, winner in enumerate(winners, start=1)
    ]
