"""Shared API dependencies."""
from app.db import get_db, get_db_context
from app.core.security import Identity, get_current_identity, get_wallet_identity
from app.services.notifications import NotificationDispatcher, dispatcher


def get_notification_dispatcher() -> NotificationDispatcher:
    """Dispatcher used for background notifications; overridden in tests."""
    return dispatcher


__all__ = [
    "get_db",
    "get_db_context",
    "Identity",
    "get_current_identity",
    "get_wallet_identity",
    "get_notification_dispatcher",
]
