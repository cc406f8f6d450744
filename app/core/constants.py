"""Application constants.

This module contains magic strings and numbers used throughout the application.
Centralizing these values makes them easier to maintain and modify.
"""

# Poll Configuration
MIN_POLL_OPTIONS = 2
MAX_POLL_OPTIONS = 10

# Single-choice ballots all share this slot, so the
# (poll_id, voter_key, choice_slot) constraint allows one row per voter
SINGLE_CHOICE_SLOT = 0

# Quiz Configuration
DEFAULT_TIME_PER_QUESTION = 15  # seconds
MIN_QUESTION_OPTIONS = 2
PERCENT_DENOMINATOR = 100

# Legacy reward ids refer to a winners row: "winner-<id>"
LEGACY_WINNER_PREFIX = "winner-"

# Global leaderboard periods, counted back from now
LEADERBOARD_PERIODS = ("all", "week", "month")

# Notification throttling (per recipient)
# One push every 30 seconds, at most 100 per UTC calendar day
NOTIFICATION_INTERVAL_SECONDS = 30
NOTIFICATION_DAILY_CAP = 100

# JWT Token Configuration
# Token expiration time in minutes (8 hours)
ACCESS_TOKEN_EXPIRE_MINUTES = 480
