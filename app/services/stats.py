"""Cross-quiz player statistics: the global leaderboard and profile stats."""
import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import LEADERBOARD_PERIODS
from app.core.exceptions import ValidationError
from app.core.logging_config import get_logger
from app.core.sanitization import normalize_wallet_address
from app.core.utils import to_utc, utcnow
from app.db.models import QuizAttempt, Winner
from app.services.utils import store_failure

logger = get_logger(__name__)


@dataclass
class PlayerStanding:
    rank: int
    wallet_address: str
    total_wins: int
    total_rewards: str
    total_attempts: int
    avg_completion_time_ms: Optional[int]
    # Lowest winner slot ever held; 0 for players without a win
    best_slot: int


@dataclass
class GlobalLeaderboard:
    period: str
    total_players: int
    entries: List[PlayerStanding]


@dataclass
class ProfileStats:
    wallet_address: str
    total_attempts: int
    total_wins: int
    total_rewards: str


def _month_before(now: datetime) -> datetime:
    year, month = (now.year, now.month - 1) if now.month > 1 else (now.year - 1, 12)
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def period_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Earliest timestamp counted for a leaderboard period, None for "all".

    "month" is one calendar month back, clamped to the end of a shorter month.
    """
    if period not in LEADERBOARD_PERIODS:
        raise ValidationError(f"Period must be one of: {', '.join(LEADERBOARD_PERIODS)}")

    now = to_utc(now) if now else utcnow()
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return _month_before(now)
    return None


def _sum_amounts(rows) -> Dict[str, int]:
    # Base-unit amounts are stored as decimal strings wider than any SQL
    # integer type, so they are summed as Python ints
    totals: Dict[str, int] = {}
    for wallet_address, amount in rows:
        totals[wallet_address] = totals.get(wallet_address, 0) + int(amount or 0)
    return totals


def global_leaderboard(
    db: Session,
    period: str = "all",
    limit: int = 50,
    now: Optional[datetime] = None,
) -> GlobalLeaderboard:
    """
    Players across all quizzes, most wins first, then highest total reward.

    Counts, average completion time and best slot are aggregated in SQL per
    wallet. Players with attempts but no wins are included. Remaining ties
    are broken by wallet address so the order is stable.
    """
    since = period_start(period, now)

    winner_filter = [Winner.created_at >= since] if since else []
    attempt_filter = [QuizAttempt.start_time >= since] if since else []

    try:
        wins = (
            db.query(
                Winner.wallet_address,
                func.count(Winner.id),
                func.avg(Winner.completion_time_ms),
                func.min(Winner.slot),
            )
            .filter(*winner_filter)
            .group_by(Winner.wallet_address)
            .all()
        )
        amounts = _sum_amounts(
            db.query(Winner.wallet_address, Winner.reward_amount).filter(*winner_filter).all()
        )
        attempts = dict(
            db.query(QuizAttempt.wallet_address, func.count(QuizAttempt.session_id))
            .filter(*attempt_filter)
            .group_by(QuizAttempt.wallet_address)
            .all()
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "global_leaderboard") from exc

    standings: Dict[str, PlayerStanding] = {}
    for wallet_address, win_count, avg_time, best_slot in wins:
        standings[wallet_address] = PlayerStanding(
            rank=0,
            wallet_address=wallet_address,
            total_wins=win_count,
            total_rewards=str(amounts.get(wallet_address, 0)),
            total_attempts=attempts.get(wallet_address, 0),
            avg_completion_time_ms=int(float(avg_time) + 0.5) if avg_time is not None else None,
            best_slot=best_slot,
        )
    for wallet_address, attempt_count in attempts.items():
        if wallet_address not in standings:
            standings[wallet_address] = PlayerStanding(
                rank=0,
                wallet_address=wallet_address,
                total_wins=0,
                total_rewards="0",
                total_attempts=attempt_count,
                avg_completion_time_ms=None,
                best_slot=0,
            )

    ordered = sorted(
        standings.values(),
        key=lambda s: (-s.total_wins, -int(s.total_rewards), s.wallet_address),
    )[:limit]
    for rank, standing in enumerate(ordered, start=1):
        standing.rank = rank

    logger.debug("global_leaderboard_built", period=period, players=len(standings), returned=len(ordered))
    return GlobalLeaderboard(period=period, total_players=len(standings), entries=ordered)


def profile_stats(db: Session, wallet_address: str) -> ProfileStats:
    """Attempts, wins and summed rewards of one wallet across all quizzes."""
    try:
        wallet_address = normalize_wallet_address(wallet_address)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc

    try:
        total_attempts = (
            db.query(func.count(QuizAttempt.session_id))
            .filter(QuizAttempt.wallet_address == wallet_address)
            .scalar()
        )
        rewards = (
            db.query(Winner.wallet_address, Winner.reward_amount)
            .filter(Winner.wallet_address == wallet_address)
            .all()
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "profile_stats") from exc

    return ProfileStats(
        wallet_address=wallet_address,
        total_attempts=total_attempts or 0,
        total_wins=len(rewards),
        total_rewards=str(_sum_amounts(rewards).get(wallet_address, 0)),
    )
