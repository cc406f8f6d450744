"""Poll schemas."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.sanitization import (
    MAX_DESCRIPTION_LENGTH,
    normalize_wallet_address,
    sanitize_option_text,
    sanitize_text,
    sanitize_title,
    validate_token_amount,
)


class PollCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=MAX_DESCRIPTION_LENGTH)
    # Count bounds are checked by the service so they share the error envelope
    options: List[str]
    ends_at: Optional[datetime] = None
    is_multiple_choice: bool = False
    is_anonymous: bool = False
    require_token: Optional[str] = None
    require_token_amount: Optional[str] = None

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

    @field_validator('options')
    @classmethod
    def sanitize_options_field(cls, v: List[str]) -> List[str]:
        return [sanitize_option_text(option) for option in v]

    @field_validator('require_token')
    @classmethod
    def validate_require_token_field(cls, v: Optional[str]) -> Optional[str]:
        """Token gates name an ERC-20 contract address."""
        return normalize_wallet_address(v) if v else None

    @field_validator('require_token_amount')
    @classmethod
    def validate_require_token_amount_field(cls, v: Optional[str]) -> Optional[str]:
        return validate_token_amount(v) if v else None


class PollOption(BaseModel):
    index: int
    text: str
    votes: int


class PollDetail(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    creator_key: Optional[str] = None
    options: List[PollOption]
    total_votes: int
    is_multiple_choice: bool
    is_anonymous: bool
    ends_at: Optional[str] = None
    has_ended: bool
    require_token: Optional[str] = None
    require_token_amount: Optional[str] = None
    created_at: Optional[str] = None


class PollResponse(BaseModel):
    poll: PollDetail


class PollList(BaseModel):
    polls: List[PollDetail]
