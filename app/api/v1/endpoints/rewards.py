"""Reward listing and claim endpoints."""
from typing import Union

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import Identity, get_db, get_wallet_identity
from app.schemas import BatchClaimRequest, BatchClaimResponse, ClaimRequest, ClaimResponse, RewardsResponse
from app.services.claims import list_rewards, record_claim, record_claim_batch
from app.core.cache import global_cache, leaderboard_key
from app.core.exceptions import AlreadyClaimed
from app.core.rate_limit import limiter, RATE_LIMITS
from app.db.models import CLAIM_CLAIMED

router = APIRouter()


def _claim_ref(claim_id: str) -> Union[int, str]:
    return int(claim_id) if claim_id.isdigit() else claim_id


@router.get("", response_model=RewardsResponse)
@limiter.limit(RATE_LIMITS["read"])
async def list_rewards_endpoint(
    request: Request,
    identity: Identity = Depends(get_wallet_identity),
    db: Session = Depends(get_db)
):
    """Every reward of the caller's wallet with pending and claimed totals."""
    return list_rewards(db, identity.wallet_address)


# Registered before /{claim_id}/claim so "claim-all" is never read as an id
@router.post("/claim-all", response_model=BatchClaimResponse)
@limiter.limit(RATE_LIMITS["claim"])
async def claim_all_endpoint(
    request: Request,
    batch: BatchClaimRequest,
    identity: Identity = Depends(get_wallet_identity),
    db: Session = Depends(get_db)
):
    """
    Record several claims at once, one transaction each.

    The response always lists every entry; a failing entry does not stop
    the others. Entries repeating a recorded claim count as successes.

    Example:
        Request:
            POST /api/v1/rewards/claim-all
            {"claims": [{"claim_id": 4, "tx_hash": "0xab..."},
                        {"claim_id": "winner-17", "tx_hash": "0xcd..."}]}

        Response (200):
            {"succeeded": 1, "failed": 1, "results": [...]}
    """
    outcome = record_claim_batch(
        db,
        identity.wallet_address,
        [(entry.claim_id, entry.tx_hash) for entry in batch.claims],
    )

    if outcome.succeeded:
        global_cache.invalidate_prefix("quiz:")

    return {
        "succeeded": outcome.succeeded,
        "failed": outcome.failed,
        "results": [
            {
                "claim_id": result.claim_id,
                "success": result.success,
                "tx_hash": result.tx_ref,
                "replay": result.replay,
                "error_code": result.error_code,
                "error": result.error,
            }
            for result in outcome.results
        ],
    }


@router.post("/{claim_id}/claim", response_model=ClaimResponse)
@limiter.limit(RATE_LIMITS["claim"])
async def claim_endpoint(
    request: Request,
    claim_id: str,
    claim: ClaimRequest,
    identity: Identity = Depends(get_wallet_identity),
    db: Session = Depends(get_db)
):
    """
    Record the on-chain transaction that paid out a reward.

    The claim moves from pending to claimed exactly once. Repeating the
    request with the same transaction hash succeeds again (``replay``);
    a different hash for an already claimed reward is a 409.

    Raises:
        404 NOT_FOUND: no such reward for the caller's wallet
        409 ALREADY_CLAIMED: claimed before with another transaction
    """
    try:
        result = record_claim(db, _claim_ref(claim_id), identity.wallet_address, claim.tx_hash)
    except AlreadyClaimed as exc:
        if not exc.replay:
            raise
        return ClaimResponse(claim_id=exc.claim_id, tx_hash=exc.existing_tx_ref, status=CLAIM_CLAIMED, replay=True)

    global_cache.invalidate(leaderboard_key(result.quiz_id))
    return ClaimResponse(claim_id=result.claim_id, tx_hash=result.tx_ref, status=result.status)
