"""Pydantic schemas for request/response validation."""
from app.schemas.poll import PollCreate, PollDetail, PollList, PollOption, PollResponse
from app.schemas.vote import VoteRequest, VoteResponse, VoteStatusResponse
from app.schemas.quiz import (
    AnswerRequest,
    AnswerResponse,
    LeaderboardResponse,
    LeaderboardRow,
    QuestionCreate,
    QuizCreate,
    QuizDetail,
    QuizList,
    QuizResponse,
    RewardPoolCreate,
    StartAttemptResponse,
)
from app.schemas.reward import (
    BatchClaimRequest,
    BatchClaimResponse,
    ClaimRequest,
    ClaimResponse,
    RewardsResponse,
)
from app.schemas.stats import GlobalLeaderboardResponse, PlayerStandingRow, ProfileStatsResponse
from app.schemas.webhook import WebhookEvent
from app.schemas.common import SuccessResponse, ErrorResponse, ErrorDetail

__all__ = [
    "PollCreate",
    "PollDetail",
    "PollList",
    "PollOption",
    "PollResponse",
    "VoteRequest",
    "VoteResponse",
    "VoteStatusResponse",
    "AnswerRequest",
    "AnswerResponse",
    "LeaderboardResponse",
    "LeaderboardRow",
    "QuestionCreate",
    "QuizCreate",
    "QuizDetail",
    "QuizList",
    "QuizResponse",
    "RewardPoolCreate",
    "StartAttemptResponse",
    "BatchClaimRequest",
    "BatchClaimResponse",
    "ClaimRequest",
    "ClaimResponse",
    "RewardsResponse",
    "GlobalLeaderboardResponse",
    "PlayerStandingRow",
    "ProfileStatsResponse",
    "WebhookEvent",
    "SuccessResponse",
    "ErrorResponse",
    "ErrorDetail",
]
