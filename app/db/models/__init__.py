"""Database models."""
from app.db.models.poll import Poll
from app.db.models.poll_vote import PollVote
from app.db.models.quiz import Quiz
from app.db.models.quiz_attempt import QuizAttempt
from app.db.models.winner import Winner
from app.db.models.reward_claim import RewardClaim, ClaimEvent, CLAIM_PENDING, CLAIM_CLAIMED
from app.db.models.notification_token import NotificationToken

__all__ = [
    "Poll",
    "PollVote",
    "Quiz",
    "QuizAttempt",
    "Winner",
    "RewardClaim",
    "ClaimEvent",
    "CLAIM_PENDING",
    "CLAIM_CLAIMED",
    "NotificationToken",
]
