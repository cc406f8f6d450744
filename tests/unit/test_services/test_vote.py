"""Unit tests for vote service."""
import pytest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    AlreadyVoted,
    InvalidOption,
    NotFoundError,
    PollEnded,
    StoreError,
    TooManyOptions,
)
from app.db.models import PollVote
from app.services.poll import create_poll, get_tally
from app.services.vote import cast_vote, has_voted


@pytest.mark.unit
class TestSingleChoice:

    def test_vote_success(self, db_session, poll_factory):
        poll = poll_factory()

        result = cast_vote(db_session, poll.id, "voter-1", "0x" + "a" * 40, [2])

        assert result.poll_id == poll.id
        assert result.accepted_options == [2]
        row = db_session.query(PollVote).one()
        assert row.choice_slot == 0
        assert row.voter_address == "0x" + "a" * 40

    def test_second_vote_rejected(self, db_session, poll_factory):
        poll = poll_factory()
        cast_vote(db_session, poll.id, "voter-1", None, [0])

        with pytest.raises(AlreadyVoted, match="already voted on this poll"):
            cast_vote(db_session, poll.id, "voter-1", None, [1])

        assert get_tally(db_session, poll.id) == {0: 1, 1: 0, 2: 0}

    def test_multiple_options_rejected(self, db_session, poll_factory):
        poll = poll_factory()

        with pytest.raises(TooManyOptions):
            cast_vote(db_session, poll.id, "voter-1", None, [0, 1])

    def test_duplicate_index_in_ballot_counts_once(self, db_session, poll_factory):
        poll = poll_factory()

        result = cast_vote(db_session, poll.id, "voter-1", None, [1, 1])

        assert result.accepted_options == [1]

    def test_bare_int_accepted(self, db_session, poll_factory):
        poll = poll_factory()
        assert cast_vote(db_session, poll.id, "voter-1", None, 0).accepted_options == [0]


@pytest.mark.unit
class TestMultipleChoice:

    def test_several_options_in_one_ballot(self, db_session, poll_factory):
        poll = poll_factory(is_multiple_choice=True)

        result = cast_vote(db_session, poll.id, "voter-1", None, [0, 2])

        assert result.accepted_options == [0, 2]
        assert get_tally(db_session, poll.id) == {0: 1, 1: 0, 2: 1}

    def test_additional_option_later(self, db_session, poll_factory):
        poll = poll_factory(is_multiple_choice=True)
        cast_vote(db_session, poll.id, "voter-1", None, [0])

        cast_vote(db_session, poll.id, "voter-1", None, [1])

        assert has_voted(db_session, poll.id, "voter-1").voted_options == [0, 1]

    def test_repeated_option_rejected_whole_ballot(self, db_session, poll_factory):
        """A ballot overlapping an earlier one is rejected entirely."""
        poll = poll_factory(is_multiple_choice=True)
        cast_vote(db_session, poll.id, "voter-1", None, [0])

        with pytest.raises(AlreadyVoted, match="already voted for this option"):
            cast_vote(db_session, poll.id, "voter-1", None, [0, 1])

        assert has_voted(db_session, poll.id, "voter-1").voted_options == [0]


@pytest.mark.unit
class TestVoteValidation:

    def test_unknown_poll(self, db_session):
        with pytest.raises(NotFoundError):
            cast_vote(db_session, 404, "voter-1", None, [0])

    @pytest.mark.parametrize("indexes", [[3], [-1], [True]])
    def test_invalid_index(self, db_session, poll_factory, indexes):
        poll = poll_factory()
        with pytest.raises(InvalidOption):
            cast_vote(db_session, poll.id, "voter-1", None, indexes)

    def test_empty_ballot(self, db_session, poll_factory):
        poll = poll_factory()
        with pytest.raises(InvalidOption, match="At least one option"):
            cast_vote(db_session, poll.id, "voter-1", None, [])

    def test_poll_ended(self, db_session, poll_factory):
        ends_at = datetime.now(timezone.utc) + timedelta(minutes=1)
        poll = poll_factory(ends_at=ends_at)

        with pytest.raises(PollEnded):
            cast_vote(db_session, poll.id, "voter-1", None, [0], now=ends_at + timedelta(seconds=1))

        assert db_session.query(PollVote).count() == 0

    def test_store_failure_is_retryable(self, db_session, poll_factory):
        poll = poll_factory()

        with patch.object(db_session, "commit", side_effect=OperationalError("COMMIT", {}, Exception("disk I/O"))):
            with pytest.raises(StoreError) as exc_info:
                cast_vote(db_session, poll.id, "voter-1", None, [0])

        assert exc_info.value.retryable
        assert db_session.query(PollVote).count() == 0


@pytest.mark.unit
class TestHasVoted:

    def test_unknown_poll(self, db_session):
        with pytest.raises(NotFoundError):
            has_voted(db_session, 404, "voter-1")

    def test_not_voted(self, db_session, poll_factory):
        poll = poll_factory()
        status = has_voted(db_session, poll.id, "nobody")
        assert not status.voted
        assert status.voted_options == []

    def test_voted(self, db_session, poll_factory):
        poll = poll_factory()
        cast_vote(db_session, poll.id, "voter-1", None, [1])

        status = has_voted(db_session, poll.id, "voter-1")

        assert status.voted
        assert status.voted_options == [1]


@pytest.mark.unit
@pytest.mark.concurrency
class TestConcurrentVotes:

    def test_simultaneous_ballots_from_one_voter(self, file_session_factory):
        """Racing ballots from one voter: exactly one is recorded."""
        setup = file_session_factory()
        poll = create_poll(setup, "creator", "Race", ["A", "B", "C"])
        poll_id = poll.id
        setup.close()

        def attempt(option):
            db = file_session_factory()
            try:
                cast_vote(db, poll_id, "voter-1", None, [option % 3])
                return "ok"
            except AlreadyVoted:
                return "dup"
            finally:
                db.close()

        with ThreadPoolExecutor(max_workers=8) as executor:
            outcomes = list(executor.map(attempt, range(16)))

        assert outcomes.count("ok") == 1
        assert outcomes.count("dup") == 15

        check = file_session_factory()
        assert check.query(PollVote).filter(PollVote.poll_id == poll_id).count() == 1
        check.close()
