"""NotificationToken model."""
from datetime import datetime, timezone as tz
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index

from app.db.base import Base


class NotificationToken(Base):
    __tablename__ = "notification_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_key = Column(String(64), nullable=False, unique=True)
    token = Column(String(255), nullable=False)
    url = Column(String(500), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(tz.utc))

    __table_args__ = (
        Index("idx_notification_tokens_enabled", "enabled"),
    )
