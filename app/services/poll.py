"""Poll business logic."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import MAX_POLL_OPTIONS, MIN_POLL_OPTIONS
from app.core.exceptions import NotFoundError, ValidationError
from app.core.logging_config import get_logger
from app.core.utils import has_passed, isoformat, to_utc
from app.db.models import Poll, PollVote
from app.services.utils import store_failure

logger = get_logger(__name__)


def create_poll(
    db: Session,
    creator_key: str,
    title: str,
    options: List[str],
    description: Optional[str] = None,
    creator_address: Optional[str] = None,
    ends_at: Optional[datetime] = None,
    is_multiple_choice: bool = False,
    is_anonymous: bool = False,
    require_token: Optional[str] = None,
    require_token_amount: Optional[str] = None,
) -> Poll:
    """Create a new poll.

    Raises:
        ValidationError: empty title, fewer than 2 or more than 10 options,
            blank option text, or an expiry in the past
    """
    if not title:
        raise ValidationError("Poll title cannot be empty")

    if len(options) < MIN_POLL_OPTIONS:
        raise ValidationError(f"A poll needs at least {MIN_POLL_OPTIONS} options")

    if len(options) > MAX_POLL_OPTIONS:
        raise ValidationError(f"Maximum {MAX_POLL_OPTIONS} options allowed")

    if any(not text for text in options):
        raise ValidationError("Option text cannot be empty")

    if ends_at is not None and has_passed(ends_at):
        raise ValidationError("Poll end time must be in the future")

    poll = Poll(
        creator_key=creator_key,
        creator_address=creator_address,
        title=title,
        description=description,
        options=[{"index": index, "text": text} for index, text in enumerate(options)],
        ends_at=to_utc(ends_at) if ends_at else None,
        is_multiple_choice=is_multiple_choice,
        is_anonymous=is_anonymous,
        require_token=require_token,
        require_token_amount=require_token_amount,
    )

    try:
        db.add(poll)
        db.commit()
        db.refresh(poll)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "create_poll") from exc

    logger.info("poll_created", poll_id=poll.id, creator_key=creator_key, options=len(options))
    return poll


def get_poll(db: Session, poll_id: int) -> Poll:
    try:
        poll = db.query(Poll).filter(Poll.id == poll_id).first()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "get_poll") from exc

    if not poll:
        raise NotFoundError("Poll", poll_id)
    return poll


def list_polls(
    db: Session,
    limit: int = 20,
    offset: int = 0,
    creator_key: Optional[str] = None,
) -> List[Poll]:
    """Newest polls first, optionally only those of one creator."""
    query = db.query(Poll)
    if creator_key:
        query = query.filter(Poll.creator_key == creator_key)

    try:
        return query.order_by(Poll.created_at.desc(), Poll.id.desc()).offset(offset).limit(limit).all()
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "list_polls") from exc


def get_tallies_bulk(db: Session, polls: List[Poll]) -> Dict[int, Dict[int, int]]:
    """
    Vote counts for several polls in one GROUP BY query.

    Returns:
        Dict mapping poll_id -> {option_index -> count}, every option of
        every poll present (zero when it has no votes)
    """
    tallies = {poll.id: {index: 0 for index in range(poll.option_count)} for poll in polls}
    if not tallies:
        return tallies

    try:
        rows = (
            db.query(PollVote.poll_id, PollVote.option_index, func.count())
            .filter(PollVote.poll_id.in_(list(tallies)))
            .group_by(PollVote.poll_id, PollVote.option_index)
            .all()
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "get_tally") from exc

    for poll_id, option_index, count in rows:
        tallies[poll_id][option_index] = count

    return tallies


def get_tally(db: Session, poll_id: int) -> Dict[int, int]:
    """Vote count per option index for one poll.

    Raises:
        NotFoundError: unknown poll
    """
    poll = get_poll(db, poll_id)
    return get_tallies_bulk(db, [poll])[poll.id]


def poll_to_dict(poll: Poll, tally: Dict[int, int], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Serializable poll view with its tally."""
    return {
        "id": poll.id,
        "title": poll.title,
        "description": poll.description,
        "creator_key": None if poll.is_anonymous else poll.creator_key,
        "options": [
            {"index": option["index"], "text": option["text"], "votes": tally.get(option["index"], 0)}
            for option in poll.options
        ],
        "total_votes": sum(tally.values()),
        "is_multiple_choice": poll.is_multiple_choice,
        "is_anonymous": poll.is_anonymous,
        "ends_at": isoformat(poll.ends_at),
        "has_ended": has_passed(poll.ends_at, now),
        "require_token": poll.require_token,
        "require_token_amount": poll.require_token_amount,
        "created_at": isoformat(poll.created_at),
    }
