"""Push notifications: token registry and rate-limited dispatch.

Clients register a relay URL and token through webhook events. Sending is
best effort: a throttled recipient, a missing token or a failing relay all
end in ``False`` and a log line, never in an exception reaching the caller.
"""
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple

import requests
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.logging_config import get_logger
from app.core.notification_limiter import NotificationRateLimiter, notification_limiter
from app.core.utils import utcnow
from app.db.models import NotificationToken
from app.db.session import SessionLocal
from app.services.utils import store_failure

logger = get_logger(__name__)

EVENT_FRAME_ADDED = "frame_added"
EVENT_FRAME_REMOVED = "frame_removed"
EVENT_NOTIFICATIONS_ENABLED = "notifications_enabled"
EVENT_NOTIFICATIONS_DISABLED = "notifications_disabled"

WEBHOOK_EVENTS = (
    EVENT_FRAME_ADDED,
    EVENT_FRAME_REMOVED,
    EVENT_NOTIFICATIONS_ENABLED,
    EVENT_NOTIFICATIONS_DISABLED,
)


def _upsert_token(db: Session, recipient_key: str, token: str, url: str, now: datetime) -> None:
    row = db.query(NotificationToken).filter(NotificationToken.recipient_key == recipient_key).first()
    if row is None:
        db.add(NotificationToken(recipient_key=recipient_key, token=token, url=url, enabled=True, updated_at=now))
    else:
        row.token = token
        row.url = url
        row.enabled = True
        row.updated_at = now
    db.commit()


def handle_webhook_event(
    db: Session,
    event: str,
    recipient_key: str,
    notification_details: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> None:
    """
    Apply a client lifecycle event to the token registry.

    - frame_added: nothing stored, logged only
    - frame_removed: the recipient's token is deleted
    - notifications_enabled: token and relay URL upserted and enabled
    - notifications_disabled: token kept but disabled

    Raises:
        ValidationError: unknown event
        StoreError: database failure
    """
    if event not in WEBHOOK_EVENTS:
        raise ValidationError(f"Unsupported webhook event: {event}")

    now = now or utcnow()
    recipient_key = str(recipient_key)

    if event == EVENT_FRAME_ADDED:
        logger.info("webhook_frame_added", recipient=recipient_key)
        return

    try:
        if event == EVENT_FRAME_REMOVED:
            deleted = (
                db.query(NotificationToken)
                .filter(NotificationToken.recipient_key == recipient_key)
                .delete(synchronize_session=False)
            )
            db.commit()
            logger.info("webhook_frame_removed", recipient=recipient_key, tokens_deleted=deleted)

        elif event == EVENT_NOTIFICATIONS_ENABLED:
            details = notification_details or {}
            if not details.get("token") or not details.get("url"):
                logger.warning("webhook_missing_notification_details", recipient=recipient_key)
                return
            try:
                _upsert_token(db, recipient_key, details["token"], details["url"], now)
            except IntegrityError:
                # A concurrent event inserted the row first; update it instead
                db.rollback()
                _upsert_token(db, recipient_key, details["token"], details["url"], now)
            logger.info("webhook_notifications_enabled", recipient=recipient_key)

        else:
            updated = (
                db.query(NotificationToken)
                .filter(NotificationToken.recipient_key == recipient_key)
                .update({"enabled": False, "updated_at": now}, synchronize_session=False)
            )
            db.commit()
            logger.info("webhook_notifications_disabled", recipient=recipient_key, tokens_updated=updated)
    except SQLAlchemyError as exc:
        raise store_failure(db, exc, "handle_webhook_event") from exc


class NotificationDispatcher:
    """
    Sends push notifications through each recipient's relay.

    Each store read opens its own short-lived session from
    ``session_factory``, so the dispatcher can run from background tasks
    after the request session is closed.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        limiter: NotificationRateLimiter = notification_limiter,
        relay_timeout: float = settings.RELAY_TIMEOUT_SECONDS,
        app_url: str = settings.APP_URL,
    ):
        self.session_factory = session_factory
        self.limiter = limiter
        self.relay_timeout = relay_timeout
        self.app_url = app_url.rstrip("/")

    def _lookup_token(self, recipient_key: str) -> Optional[Tuple[str, str]]:
        db = self.session_factory()
        try:
            row = (
                db.query(NotificationToken.token, NotificationToken.url)
                .filter(NotificationToken.recipient_key == recipient_key, NotificationToken.enabled.is_(True))
                .first()
            )
        except SQLAlchemyError as exc:
            logger.error("notification_token_lookup_failed", recipient=recipient_key, error=str(exc))
            return None
        finally:
            db.close()
        return (row.token, row.url) if row else None

    def _enabled_recipients(self) -> List[str]:
        db = self.session_factory()
        try:
            rows = (
                db.query(NotificationToken.recipient_key)
                .filter(NotificationToken.enabled.is_(True))
                .order_by(NotificationToken.id)
                .all()
            )
        except SQLAlchemyError as exc:
            logger.error("notification_recipients_lookup_failed", error=str(exc))
            return []
        finally:
            db.close()
        return [row.recipient_key for row in rows]

    def send(
        self,
        recipient_key: str,
        title: str,
        body: str,
        target_url: str,
        now: Optional[datetime] = None,
    ) -> bool:
        """Deliver one notification. Returns True only if the relay accepted it."""
        recipient_key = str(recipient_key)

        if not self.limiter.allow(recipient_key, now):
            logger.info("notification_throttled", recipient=recipient_key)
            return False

        token = self._lookup_token(recipient_key)
        if token is None:
            logger.info("notification_skipped", recipient=recipient_key, reason="no_enabled_token")
            return False

        token_value, relay_url = token
        payload = {
            "notificationId": str(uuid.uuid4()),
            "title": title,
            "body": body,
            "targetUrl": target_url,
            "tokens": [token_value],
        }

        try:
            response = requests.post(relay_url, json=payload, timeout=self.relay_timeout)
        except requests.RequestException as exc:
            logger.warning("notification_failed", recipient=recipient_key, error=str(exc))
            return False

        if not response.ok:
            logger.warning("notification_failed", recipient=recipient_key, status_code=response.status_code)
            return False

        self.limiter.record(recipient_key, now)
        logger.info("notification_sent", recipient=recipient_key, notification_id=payload["notificationId"])
        return True

    def notify_winner(self, recipient_key: str, quiz_title: str, reward_amount: str, quiz_id: int) -> bool:
        return self.send(
            recipient_key,
            title="Congratulations!",
            body=f'You won {reward_amount} tokens in "{quiz_title}"!',
            target_url=f"{self.app_url}/quiz/{quiz_id}/leaderboard",
        )

    def notify_quiz_start(self, quiz_id: int, quiz_title: str) -> int:
        """Notify every enabled recipient. Returns the number delivered."""
        recipients = self._enabled_recipients()
        delivered = 0
        for recipient_key in recipients:
            if self.send(
                recipient_key,
                title="Quiz Starting Soon!",
                body=f'"{quiz_title}" is about to start. Join now to win rewards!',
                target_url=f"{self.app_url}/quiz/{quiz_id}",
            ):
                delivered += 1

        logger.info("quiz_start_notified", quiz_id=quiz_id, recipients=len(recipients), delivered=delivered)
        return delivered


dispatcher = NotificationDispatcher()
