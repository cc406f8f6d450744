"""Service-layer error taxonomy.

Every failure a service reports falls into one of four families:

- ``ValidationError``: the input is wrong; correcting it and retrying is safe.
- ``ConflictError``: the request collides with state that already exists
  (duplicate vote, full quiz, claimed reward). Terminal, not retryable.
- ``NotFoundError``: the referenced entity does not exist.
- ``StoreError``: the database failed. Nothing was written, retry is safe.

The API layer maps each family onto an HTTP status in ``app.main``.
"""
from typing import Optional


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    code = "SERVICE_ERROR"
    retryable = False

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(ServiceError):
    code = "VALIDATION_ERROR"


class InvalidOption(ValidationError):
    code = "INVALID_OPTION"


class TooManyOptions(ValidationError):
    code = "TOO_MANY_OPTIONS"


class PollEnded(ValidationError):
    code = "POLL_ENDED"


class QuizClosed(ValidationError):
    code = "QUIZ_CLOSED"


class InvalidAnswer(ValidationError):
    code = "INVALID_QUESTION"


class TimeExpired(ValidationError):
    code = "TIME_EXPIRED"


class ConflictError(ServiceError):
    code = "CONFLICT"


class AlreadyVoted(ConflictError):
    code = "ALREADY_VOTED"


class AlreadyWinner(ConflictError):
    code = "ALREADY_WINNER"


class QuizFull(ConflictError):
    code = "QUIZ_FULL"


class AlreadyAnswered(ConflictError):
    code = "ALREADY_ANSWERED"


class AlreadyAttempted(ConflictError):
    code = "ALREADY_ATTEMPTED"


class AlreadyClaimed(ConflictError):
    """The reward was claimed before this request.

    ``replay`` is True when the stored transaction reference equals the one
    presented, meaning this request repeats a claim that already succeeded.
    """

    code = "ALREADY_CLAIMED"

    def __init__(self, message: str, existing_tx_ref: Optional[str], replay: bool, claim_id: Optional[int] = None):
        super().__init__(message)
        self.existing_tx_ref = existing_tx_ref
        self.replay = replay
        self.claim_id = claim_id


class NotFoundError(ServiceError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class StoreError(ServiceError):
    code = "STORE_ERROR"
    retryable = True
