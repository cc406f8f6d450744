"""Client webhook schemas."""
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field


class NotificationDetails(BaseModel):
    url: str = Field(..., min_length=1, max_length=500)
    token: str = Field(..., min_length=1, max_length=255)


class WebhookEvent(BaseModel):
    event: Literal["frame_added", "frame_removed", "notifications_enabled", "notifications_disabled"]
    fid: Union[int, str]
    notificationDetails: Optional[NotificationDetails] = None
