"""Global leaderboard and profile statistics schemas."""
from typing import List, Optional

from pydantic import BaseModel


class PlayerStandingRow(BaseModel):
    rank: int
    wallet_address: str
    total_wins: int
    total_rewards: str
    total_attempts: int
    avg_completion_time_ms: Optional[int] = None
    best_slot: int


class GlobalLeaderboardResponse(BaseModel):
    period: str
    total_players: int
    leaderboard: List[PlayerStandingRow]


class ProfileStatsResponse(BaseModel):
    wallet_address: str
    total_attempts: int
    total_wins: int
    total_rewards: str
