"""Quiz, attempt and leaderboard schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.constants import DEFAULT_TIME_PER_QUESTION
from app.core.sanitization import (
    MAX_DESCRIPTION_LENGTH,
    normalize_wallet_address,
    sanitize_option_text,
    sanitize_text,
    sanitize_title,
    validate_token_amount,
)


class QuestionCreate(BaseModel):
    id: Optional[str] = Field(None, min_length=1, max_length=64)
    text: str = Field(..., min_length=1, max_length=500)
    options: List[str]
    correct_index: int

    @field_validator('text')
    @classmethod
    def sanitize_text_field(cls, v: str) -> str:
        sanitized = sanitize_text(v, max_length=500)
        if not sanitized:
            raise ValueError("Question text cannot be empty")
        return sanitized

    @field_validator('options')
    @classmethod
    def sanitize_options_field(cls, v: List[str]) -> List[str]:
        return [sanitize_option_text(option) for option in v]


class RewardPoolCreate(BaseModel):
    tier: int = Field(..., ge=1)
    winner_count: int = Field(..., ge=1)
    percentage: int = Field(..., ge=1, le=100)
    name: str = Field("", max_length=50)


class QuizCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    questions: List[QuestionCreate] = Field(..., min_length=1)
    reward_token: Optional[str] = None
    reward_amount: str = "0"
    # None makes an unlimited quiz without rewards
    winner_limit: Optional[int] = Field(None, ge=1)
    reward_pools: Optional[List[RewardPoolCreate]] = None
    time_per_question: int = Field(DEFAULT_TIME_PER_QUESTION, ge=1, le=300)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    stake_token: Optional[str] = None
    stake_amount: Optional[str] = None
    entry_fee: Optional[str] = None
    entry_fee_token: Optional[str] = None
    contract_quiz_id: Optional[str] = Field(None, max_length=78)

    @field_validator('title')
    @classmethod
    def sanitize_title_field(cls, v: str) -> str:
        return sanitize_title(v)

    @field_validator('description')
    @classmethod
    def sanitize_description_field(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return sanitize_text(v, max_length=MAX_DESCRIPTION_LENGTH) or None

    @field_validator('reward_token', 'stake_token', 'entry_fee_token')
    @classmethod
    def validate_token_address(cls, v: Optional[str]) -> Optional[str]:
        return normalize_wallet_address(v) if v else None

    @field_validator('reward_amount')
    @classmethod
    def validate_reward_amount(cls, v: str) -> str:
        return validate_token_amount(v)

    @field_validator('stake_amount', 'entry_fee')
    @classmethod
    def validate_optional_amount(cls, v: Optional[str]) -> Optional[str]:
        return validate_token_amount(v) if v else None


class QuizDetail(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    creator_wallet: str
    question_count: int
    time_per_question: int
    reward_token: Optional[str] = None
    reward_amount: str
    winner_limit: Optional[int] = None
    current_winners: int
    remaining_spots: Optional[int] = None
    reward_per_winner: Optional[str] = None
    reward_pools: List[Dict[str, Any]]
    stake_required: Optional[Dict[str, str]] = None
    entry_fee: Optional[str] = None
    entry_fee_token: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: str
    is_fun: bool
    created_at: Optional[str] = None


class QuizResponse(BaseModel):
    quiz: QuizDetail


class QuizList(BaseModel):
    quizzes: List[QuizDetail]


class PublicQuestion(BaseModel):
    id: str
    text: str
    options: List[str]


class StartAttemptResponse(BaseModel):
    session_id: str
    questions: List[PublicQuestion]
    time_per_question: int
    server_time: datetime


class AnswerRequest(BaseModel):
    question_id: str = Field(..., min_length=1, max_length=64)
    selected_index: int = Field(..., ge=0)


class AnswerResponse(BaseModel):
    correct: bool
    is_complete: bool
    next_question: Optional[PublicQuestion] = None
    result: Optional[Dict[str, Any]] = None


class LeaderboardRow(BaseModel):
    rank: int
    wallet_address: str
    user_key: Optional[str] = None
    completion_time_ms: int
    reward_amount: str
    pool_tier: Optional[int] = None
    claimed: bool


class LeaderboardResponse(BaseModel):
    quiz_id: int
    winner_limit: Optional[int] = None
    current_winners: int
    entries: List[LeaderboardRow]
