"""Vote schemas."""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.sanitization import normalize_wallet_address


class VoteRequest(BaseModel):
    # Range and single/multiple choice checks need the poll and happen in the service
    option_indexes: List[int] = Field(..., min_length=1)
    wallet_address: Optional[str] = None

    @field_validator('wallet_address')
    @classmethod
    def validate_wallet_field(cls, v: Optional[str]) -> Optional[str]:
        return normalize_wallet_address(v) if v else None


class VoteResponse(BaseModel):
    success: bool = True
    poll_id: int
    voted_options: List[int]


class VoteStatusResponse(BaseModel):
    voted: bool
    voted_options: List[int]
