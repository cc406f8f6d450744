"""Database base class and model imports."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import all models here for Alembic to detect them
from app.db.models.poll import Poll  # noqa: F401, E402
from app.db.models.poll_vote import PollVote  # noqa: F401, E402
from app.db.models.quiz import Quiz  # noqa: F401, E402
from app.db.models.quiz_attempt import QuizAttempt  # noqa: F401, E402
from app.db.models.winner import Winner  # noqa: F401, E402
from app.db.models.reward_claim import RewardClaim, ClaimEvent  # noqa: F401, E402
from app.db.models.notification_token import NotificationToken  # noqa: F401, E402
