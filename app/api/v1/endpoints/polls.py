"""Poll endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.deps import Identity, get_current_identity, get_db
from app.schemas import (
    PollCreate,
    PollList,
    PollResponse,
    VoteRequest,
    VoteResponse,
    VoteStatusResponse,
)
from app.services.poll import create_poll, get_poll, get_tallies_bulk, get_tally, list_polls, poll_to_dict
from app.services.vote import cast_vote, has_voted
from app.core.cache import global_cache, tally_key
from app.core.config import settings
from app.core.logging_config import get_logger
from app.core.rate_limit import limiter, RATE_LIMITS

logger = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=PollResponse, status_code=201)
@limiter.limit(RATE_LIMITS["create"])
async def create_poll_endpoint(
    request: Request,
    poll: PollCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """
    Create a poll owned by the authenticated caller.

    Titles and option texts are sanitized by the schema. The service enforces
    2 to 10 options and an end time in the future.

    Example:
        Request:
            POST /api/v1/polls
            Authorization: Bearer eyJhbGc...
            {
                "title": "Next community call topic",
                "options": ["Grants", "Roadmap", "AMA"],
                "is_multiple_choice": false
            }

        Response (201):
            {"poll": {"id": 7, "title": "Next community call topic", ...}}

        Response (400):
            {"success": false, "error": {"code": "VALIDATION_ERROR", "message": "..."}}
    """
    created = create_poll(
        db,
        creator_key=identity.primary_key,
        creator_address=identity.wallet_address,
        title=poll.title,
        options=poll.options,
        description=poll.description,
        ends_at=poll.ends_at,
        is_multiple_choice=poll.is_multiple_choice,
        is_anonymous=poll.is_anonymous,
        require_token=poll.require_token,
        require_token_amount=poll.require_token_amount,
    )
    return {"poll": poll_to_dict(created, {})}


@router.get("", response_model=PollList)
@limiter.limit(RATE_LIMITS["read"])
async def list_polls_endpoint(
    request: Request,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    creator_key: Optional[str] = Query(None, max_length=64),
    db: Session = Depends(get_db)
):
    """Newest polls first, with tallies loaded in one query."""
    polls = list_polls(db, limit=limit, offset=offset, creator_key=creator_key)
    tallies = get_tallies_bulk(db, polls)
    return {"polls": [poll_to_dict(poll, tallies.get(poll.id, {})) for poll in polls]}


@router.get("/{poll_id}", response_model=PollResponse)
@limiter.limit(RATE_LIMITS["read"])
async def get_poll_endpoint(request: Request, poll_id: int, db: Session = Depends(get_db)):
    """
    Poll detail with per-option vote counts.

    Tallies are served from the read cache for a few seconds; a vote
    invalidates the entry so the voter sees their own vote counted.
    """
    poll = get_poll(db, poll_id)
    tally = global_cache.get_or_fetch(
        tally_key(poll_id),
        lambda: get_tally(db, poll_id),
        ttl_seconds=settings.READ_CACHE_TTL_SECONDS,
    )
    return {"poll": poll_to_dict(poll, tally)}


@router.post("/{poll_id}/vote", response_model=VoteResponse)
@limiter.limit(RATE_LIMITS["vote"])
async def vote_endpoint(
    request: Request,
    poll_id: int,
    vote: VoteRequest,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db)
) -> VoteResponse:
    """
    Cast the caller's ballot.

    A ballot is final: a second vote by the same voter is rejected with 409
    (ALREADY_VOTED), including two simultaneous requests. Multiple-choice
    polls accept several option indexes in one ballot; duplicates within the
    ballot are ignored.

    Example:
        Request:
            POST /api/v1/polls/7/vote
            Authorization: Bearer eyJhbGc...
            {"option_indexes": [1]}

        Response (200):
            {"success": true, "poll_id": 7, "voted_options": [1]}

        Response (409):
            {"success": false, "error": {"code": "ALREADY_VOTED", "message": "..."}}
    """
    result = cast_vote(
        db,
        poll_id,
        voter_key=identity.primary_key,
        wallet_address=vote.wallet_address or identity.wallet_address,
        option_indexes=vote.option_indexes,
    )

    global_cache.invalidate(tally_key(poll_id))
    logger.debug("cache_invalidated", key=tally_key(poll_id), reason="vote_cast")

    return VoteResponse(poll_id=result.poll_id, voted_options=result.accepted_options)


@router.get("/{poll_id}/vote", response_model=VoteStatusResponse)
@limiter.limit(RATE_LIMITS["read"])
async def vote_status_endpoint(
    request: Request,
    poll_id: int,
    voter_key: str = Query(..., min_length=1, max_length=64),
    db: Session = Depends(get_db)
):
    """Whether voter_key has voted in the poll, and for which options."""
    status = has_voted(db, poll_id, voter_key)
    return VoteStatusResponse(voted=status.voted, voted_options=status.voted_options)
