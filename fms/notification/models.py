# fms/notification/models.py
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from fms.core.clock import utcnow
from fms.core.database import Base


class EventKind(str, Enum):
    TICKET_CREATED = "ticket_created"
    TICKET_WAITLISTED = "ticket_waitlisted"
    TICKET_ASSIGNED = "ticket_assigned"
    TICKET_COMPLETED = "ticket_completed"
    ROOM_BOOKED = "room_booked"


class NotificationType(str, Enum):
    TICKET_CREATED = "TICKET_CREATED"
    TICKET_WAITLISTED = "TICKET_WAITLISTED"
    TICKET_ASSIGNED = "TICKET_ASSIGNED"
    TICKET_COMPLETED = "TICKET_COMPLETED"
    ROOM_BOOKED = "ROOM_BOOKED"


class DeliveryStatus(str, Enum):
    PENDING = "PENDING"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class Notification(Base):
    # Immutable once written, apart from is_read
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=True)
    booking_id = Column(Integer, ForeignKey("room_bookings.id"), nullable=True)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False)
    notification_type = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    deep_link = Column(String, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class PushEndpoint(Base):
    __tablename__ = "push_endpoints"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    token = Column(String, unique=True, nullable=False)
    browser_fingerprint = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)


class DeliveryRecord(Base):
    # Append-only: every dispatch attempt gets its own row
    __tablename__ = "notification_deliveries"

    id = Column(Integer, primary_key=True, index=True)
    notification_id = Column(Integer, ForeignKey("notifications.id"), nullable=False, index=True)
    push_endpoint_id = Column(Integer, ForeignKey("push_endpoints.id"), nullable=False)
    delivery_status = Column(String, default=DeliveryStatus.PENDING.value, nullable=False)
    error = Column(String, nullable=True)
    attempted_at = Column(DateTime, default=utcnow, nullable=False)
    delivered_at = Column(DateTime, nullable=True)
