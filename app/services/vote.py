"""Vote business logic."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import SINGLE_CHOICE_SLOT
from app.core.exceptions import AlreadyVoted, InvalidOption, PollEnded, TooManyOptions
from app.core.logging_config import get_logger
from app.core.utils import has_passed
from app.db.models import PollVote
from app.services.poll import get_poll
from app.services.utils import store_failure, violated_constraint

logger = get_logger(__name__)


@dataclass
class VoteResult:
    poll_id: int
    accepted_options: List[int]


@dataclass
class VoteStatus:
    voted: bool
    voted_options: List[int] = field(default_factory=list)


def _normalize_indexes(option_indexes) -> List[int]:
    if isinstance(option_indexes, int) and not isinstance(option_indexes, bool):
        option_indexes = [option_indexes]

    seen = []
    for index in option_indexes or []:
        if not isinstance(index, int) or isinstance(index, bool):
            raise InvalidOption(f"Invalid option index: {index!r}")
        if index not in seen:
            seen.append(index)
    return seen


def cast_vote(
    db: Session,
    poll_id: int,
    voter_key: str,
    wallet_address: Optional[str],
    option_indexes: List[int],
    now: Optional[datetime] = None,
) -> VoteResult:
    """Record a voter's ballot(s) on a poll.

    One row is inserted per accepted option, all in one transaction. The
    database constraint ``uq_poll_voter_slot`` is the only duplicate check:
    a prior read would race with concurrent requests from the same voter.

    Raises:
        NotFoundError: unknown poll
        PollEnded: the poll's end time has passed
        InvalidOption: no option given, or an index outside the poll's options
        TooManyOptions: more than one option on a single-choice poll
        AlreadyVoted: the voter already holds a conflicting ballot
        StoreError: database failure, nothing recorded
    """
    poll = get_poll(db, poll_id)

    if has_passed(poll.ends_at, now):
        raise PollEnded("Poll has ended")

    indexes = _normalize_indexes(option_indexes)
    if not indexes:
        raise InvalidOption("At least one option must be selected")

    max_index = poll.option_count - 1
    for index in indexes:
        if index < 0 or index > max_index:
            raise InvalidOption(f"Invalid option index: {index}")

    if not poll.is_multiple_choice and len(indexes) > 1:
        raise TooManyOptions("This poll only allows a single choice")

    ballots = [
        PollVote(
            poll_id=poll.id,
            voter_key=voter_key,
            voter_address=wallet_address,
            option_index=index,
            choice_slot=index if poll.is_multiple_choice else SINGLE_CHOICE_SLOT,
        )
        for index in indexes
    ]

    try:
        db.add_all(ballots)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if violated_constraint(exc, PollVote, "uq_poll_voter_slot"):
            logger.info("vote_rejected_duplicate", poll_id=poll.id, options=indexes)
            message = (
                "You have already voted for this option"
                if poll.is_multiple_choice
                else "You have already voted on this poll"
            )
            raise AlreadyVoted(message) from exc
        raise store_failure(db, exc, "cast_vote") from exc
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "cast_vote") from exc

    logger.info(
        "vote_cast",
        poll_id=poll.id,
        voter_key=None if poll.is_anonymous else voter_key,
        options=indexes,
    )
    return VoteResult(poll_id=poll.id, accepted_options=indexes)


def has_voted(db: Session, poll_id: int, voter_key: str) -> VoteStatus:
    """Whether the voter has a ballot on the poll, and for which options."""
    get_poll(db, poll_id)

    try:
        rows = (
            db.query(PollVote.option_index)
            .filter(PollVote.poll_id == poll_id, PollVote.voter_key == voter_key)
            .order_by(PollVote.option_index)
            .all()
        )
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "has_voted") from exc

    options = [option_index for (option_index,) in rows]
    return VoteStatus(voted=bool(options), voted_options=options)
