"""Client lifecycle webhook."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.schemas import SuccessResponse, WebhookEvent
from app.services.notifications import handle_webhook_event
from app.core.rate_limit import limiter, RATE_LIMITS

router = APIRouter()


@router.post("", response_model=SuccessResponse)
@limiter.limit(RATE_LIMITS["webhook"])
async def webhook_endpoint(
    request: Request,
    event: WebhookEvent,
    db: Session = Depends(get_db)
) -> SuccessResponse:
    """
    Register or drop a user's push notification token.

    Events:
        - frame_added: logged only
        - frame_removed: token deleted
        - notifications_enabled: token and relay URL stored (requires notificationDetails)
        - notifications_disabled: token kept but disabled

    Example:
        Request:
            POST /api/v1/webhook
            {
                "event": "notifications_enabled",
                "fid": 4021,
                "notificationDetails": {"url": "https://relay.example/notify", "token": "tkn_..."}
            }

        Response (200):
            {"success": true, "message": null}
    """
    details = event.notificationDetails.model_dump() if event.notificationDetails else None
    handle_webhook_event(db, event.event, str(event.fid), notification_details=details)
    return SuccessResponse(success=True)
