# fms/notification/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field

from fms.notification.models import EventKind


class NotificationOut(BaseModel):
    id: int
    user_id: int
    ticket_id: int | None
    booking_id: int | None
    site_id: int
    notification_type: str
    title: str
    message: str
    deep_link: str | None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class PushEndpointRegister(BaseModel):
    user_id: int
    token: str = Field(..., min_length=1)
    browser_fingerprint: str | None = None


class PushEndpointOut(PushEndpointRegister):
    id: int
    is_active: bool
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventTrigger(BaseModel):
    event: EventKind
    subject_id: int
