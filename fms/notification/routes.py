# fms/notification/routes.py
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from fms.core.database import get_db
from fms.notification import services as notification_service
from fms.notification.schemas import (
    EventTrigger,
    NotificationOut,
    PushEndpointOut,
    PushEndpointRegister,
)
from fms.notification.services import FanoutDispatcher, get_fanout

router = APIRouter(tags=["Notifications"])


@router.get("/notifications", response_model=list[NotificationOut])
def list_for_user(
    user_id: int,
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    return notification_service.get_notifications(db, user_id, unread_only=unread_only, limit=limit)


@router.patch("/notifications/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: int, db: Session = Depends(get_db)):
    notification = notification_service.mark_read(db, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.post("/notifications/events", status_code=202)
def trigger_event(
    payload: EventTrigger,
    background_tasks: BackgroundTasks,
    fanout: FanoutDispatcher = Depends(get_fanout),
):
    fanout.schedule(background_tasks, payload.event, payload.subject_id)
    return {"status": "queued", "event": payload.event.value, "subject_id": payload.subject_id}


@router.post("/push-endpoints", response_model=PushEndpointOut, status_code=201)
def register_endpoint(payload: PushEndpointRegister, db: Session = Depends(get_db)):
    return notification_service.register_endpoint(
        db, payload.user_id, payload.token, payload.browser_fingerprint
    )
