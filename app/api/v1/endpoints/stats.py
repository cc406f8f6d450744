"""Cross-quiz leaderboard and player profile endpoints."""
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas import GlobalLeaderboardResponse, ProfileStatsResponse
from app.services.stats import global_leaderboard, profile_stats
from app.core.rate_limit import limiter, RATE_LIMITS

router = APIRouter()


@router.get("/leaderboard", response_model=GlobalLeaderboardResponse)
@limiter.limit(RATE_LIMITS["read"])
async def global_leaderboard_endpoint(
    request: Request,
    period: str = Query("all", max_length=10),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    Top players across all quizzes.

    Ranked by number of wins, then total reward. ``period`` is ``all``,
    ``week`` or ``month``.

    Raises:
        400 VALIDATION_ERROR: unknown period
    """
    board = global_leaderboard(db, period=period, limit=limit)
    return {
        "period": board.period,
        "total_players": board.total_players,
        "leaderboard": [asdict(entry) for entry in board.entries],
    }


@router.get("/profile/stats", response_model=ProfileStatsResponse)
@limiter.limit(RATE_LIMITS["read"])
async def profile_stats_endpoint(
    request: Request,
    wallet: str = Query(..., min_length=1, max_length=64),
    db: Session = Depends(get_db)
):
    """Attempts, wins and total reward of a wallet."""
    return asdict(profile_stats(db, wallet))
