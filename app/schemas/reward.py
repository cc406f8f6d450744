"""Reward and claim schemas."""
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from app.core.sanitization import validate_tx_hash


class ClaimRequest(BaseModel):
    tx_hash: str = Field(..., min_length=1, max_length=100)

    @field_validator('tx_hash')
    @classmethod
    def validate_tx_hash_field(cls, v: str) -> str:
        return validate_tx_hash(v)


class ClaimResponse(BaseModel):
    success: bool = True
    claim_id: int
    tx_hash: str
    status: str
    # True when this request repeated a claim that was already recorded
    replay: bool = False


class BatchClaimEntry(BaseModel):
    # Canonical ids are integers, legacy ids look like "winner-42"
    claim_id: Union[int, str]
    tx_hash: str = Field(..., min_length=1, max_length=100)

    @field_validator('tx_hash')
    @classmethod
    def validate_tx_hash_field(cls, v: str) -> str:
        return validate_tx_hash(v)


class BatchClaimRequest(BaseModel):
    claims: List[BatchClaimEntry] = Field(..., min_length=1, max_length=50)


class BatchClaimResult(BaseModel):
    claim_id: Union[int, str]
    success: bool
    tx_hash: Optional[str] = None
    replay: bool = False
    error_code: Optional[str] = None
    error: Optional[str] = None


class BatchClaimResponse(BaseModel):
    succeeded: int
    failed: int
    results: List[BatchClaimResult]


class RewardItem(BaseModel):
    id: str
    quiz_id: int
    quiz_title: str
    amount: str
    token: Optional[str] = None
    slot: Optional[int] = None
    pool_tier: Optional[int] = None
    rank_in_pool: Optional[int] = None
    status: str
    tx_hash: Optional[str] = None
    completed_at: Optional[str] = None
    contract_quiz_id: Optional[str] = None


class RewardSummary(BaseModel):
    total_pending: str
    total_claimed: str
    pending_count: int
    claimed_count: int


class RewardsResponse(BaseModel):
    rewards: List[RewardItem]
    summary: RewardSummary
