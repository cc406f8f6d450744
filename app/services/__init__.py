from .attempt import start_attempt, submit_answer
from .claims import list_rewards, reconcile_legacy_claims, record_claim, record_claim_batch
from .notifications import NotificationDispatcher, dispatcher, handle_webhook_event
from .poll import create_poll, get_poll, get_tallies_bulk, get_tally, list_polls, poll_to_dict
from .quiz import create_quiz, get_quiz, is_open, list_quizzes, quiz_to_dict
from .rewards import payout_schedule, reward_for_slot, reward_per_winner, tier_for_slot
from .stats import global_leaderboard, profile_stats
from .vote import cast_vote, has_voted
from .winners import leaderboard, register_winner

__all__ = [
    # polls
    "create_poll",
    "get_poll",
    "get_tallies_bulk",
    "get_tally",
    "list_polls",
    "poll_to_dict",
    # votes
    "cast_vote",
    "has_voted",
    # quizzes
    "create_quiz",
    "get_quiz",
    "is_open",
    "list_quizzes",
    "quiz_to_dict",
    # attempts
    "start_attempt",
    "submit_answer",
    # winners
    "leaderboard",
    "register_winner",
    # rewards
    "payout_schedule",
    "reward_for_slot",
    "reward_per_winner",
    "tier_for_slot",
    # claims
    "list_rewards",
    "reconcile_legacy_claims",
    "record_claim",
    "record_claim_batch",
    # stats
    "global_leaderboard",
    "profile_stats",
    # notifications
    "NotificationDispatcher",
    "dispatcher",
    "handle_webhook_event",
]
