# fms/notification/services.py
"""
Notification fan-out.

notify() turns one domain event into one Notification row per recipient and
one push per live endpoint of that recipient. Every recipient and every
endpoint is handled in isolation: a failure is logged and the loop moves on.
"""

import logging
from dataclasses import dataclass, field

from fastapi import BackgroundTasks
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fms.booking.models import RoomBooking
from fms.core.clock import utcnow
from fms.core.config import Settings, get_settings
from fms.core.database import get_session_factory
from fms.core.logging import build_log_context, mask_token
from fms.directory.models import Site
from fms.directory.stores import SqlMembershipStore
from fms.notification import recipients as rules
from fms.notification.models import (
    DeliveryRecord,
    DeliveryStatus,
    EventKind,
    Notification,
    NotificationType,
    PushEndpoint,
)
from fms.notification.transport import PushOutcome, PushPayload, PushTransport, get_push_transport
from fms.ticket.models import Ticket

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutboundMessage:
    user_id: int
    site_id: int
    notification_type: NotificationType
    title: str
    message: str
    deep_link: str
    ticket_id: int | None = None
    booking_id: int | None = None


@dataclass
class FanoutReport:
    event: EventKind
    subject_id: int
    recipients: list[int] = field(default_factory=list)
    notifications: int = 0
    delivered: int = 0
    failed: int = 0
    deactivated: int = 0
    errors: int = 0


def ticket_link(ticket_id: int) -> str:
    return f"/tickets/{ticket_id}?via=notification"


def booking_link(booking_id: int) -> str:
    return f"/bookings/{booking_id}?via=notification"


def live_endpoints(db: Session, user_id: int) -> list[PushEndpoint]:
    """
    Active endpoints newest first, one per browser fingerprint.
    Endpoints without a fingerprint are always kept.
    """
    rows = (
        db.query(PushEndpoint)
        .filter(PushEndpoint.user_id == user_id, PushEndpoint.is_active.is_(True))
        .order_by(PushEndpoint.updated_at.desc(), PushEndpoint.id.desc())
        .all()
    )
    seen: set[str] = set()
    picked = []
    for endpoint in rows:
        if endpoint.browser_fingerprint:
            if endpoint.browser_fingerprint in seen:
                continue
            seen.add(endpoint.browser_fingerprint)
        picked.append(endpoint)
    return picked


class NotificationService:
    def __init__(self, db: Session, transport: PushTransport, settings: Settings | None = None):
        self.db = db
        self.transport = transport
        self.settings = settings or get_settings()
        self.members = SqlMembershipStore(db)

    def notify(self, event: EventKind, subject_id: int) -> FanoutReport:
        report = FanoutReport(event, subject_id)
        logger.info("Fan-out started", extra=build_log_context(event=event.value, ticket_id=subject_id))

        if event == EventKind.ROOM_BOOKED:
            messages = self._booking_messages(subject_id)
        else:
            messages = self._ticket_messages(event, subject_id)

        for message in messages:
            report.recipients.append(message.user_id)
            try:
                self._deliver(message, report)
            except Exception:
                self.db.rollback()
                report.errors += 1
                logger.exception(
                    "Failed to notify recipient",
                    extra=build_log_context(event=event.value, user_id=message.user_id),
                )

        logger.info(
            "Fan-out finished: %d notifications, %d delivered, %d failed",
            report.notifications,
            report.delivered,
            report.failed,
            extra=build_log_context(event=event.value, ticket_id=subject_id),
        )
        return report

    # -- recipient resolution -------------------------------------------------

    def _ticket_messages(self, event: EventKind, ticket_id: int) -> list[OutboundMessage]:
        ticket = self.db.query(Ticket).filter(Ticket.id == ticket_id).first()
        if not ticket:
            logger.warning("Ticket not found for %s", event.value, extra=build_log_context(ticket_id=ticket_id))
            return []

        site_name = self._site_name(ticket.site_id)

        def msg(user_id, kind, title, text):
            return OutboundMessage(
                user_id=user_id,
                site_id=ticket.site_id,
                notification_type=kind,
                title=title,
                message=text,
                deep_link=ticket_link(ticket.id),
                ticket_id=ticket.id,
            )

        if event == EventKind.TICKET_COMPLETED:
            creator = self.members.active_member(ticket.raised_by, ticket.site_id)
            members = self.members.active_members(ticket.site_id, rules.COMPLETION_ROLES)
            ids = rules.completion_recipients(members, ticket.raised_by, creator.role if creator else None)
            return [
                msg(uid, NotificationType.TICKET_COMPLETED, "Ticket Completed",
                    f'Ticket "{ticket.title}" has been marked as completed.')
                for uid in ids
            ]

        members = self.members.active_members(ticket.site_id, rules.TICKET_EVENT_ROLES)
        ids = rules.ticket_event_recipients(members, ticket.raised_by)

        if event == EventKind.TICKET_WAITLISTED:
            return [
                msg(uid, NotificationType.TICKET_WAITLISTED, "Ticket Waitlisted",
                    f'Ticket "{ticket.title}" at {site_name} is waiting for an available resolver.')
                for uid in ids
            ]

        if ticket.assigned_to is None:
            if event == EventKind.TICKET_ASSIGNED:
                logger.warning("Assignment event for unassigned ticket", extra=build_log_context(ticket_id=ticket.id))
                return []
            return [
                msg(uid, NotificationType.TICKET_CREATED, "New Ticket Created",
                    f'A new ticket "{ticket.title}" has been raised at {site_name}.')
                for uid in ids
            ]

        assignee_id, others = rules.split_assignee(ids, ticket.assigned_to)
        assignee_name = self.members.user_names([assignee_id]).get(assignee_id, "a resolver")
        if event == EventKind.TICKET_CREATED:
            own = msg(assignee_id, NotificationType.TICKET_ASSIGNED, "New Ticket Created & Assigned",
                      f'A new ticket "{ticket.title}" has been created and assigned to you.')
            other_type = NotificationType.TICKET_CREATED
            other_title = "New Ticket Created"
            other_text = f'A new ticket "{ticket.title}" at {site_name} has been assigned to {assignee_name}.'
        else:
            own = msg(assignee_id, NotificationType.TICKET_ASSIGNED, "Ticket Assigned to You",
                      f'Ticket "{ticket.title}" has been assigned to you.')
            other_type = NotificationType.TICKET_ASSIGNED
            other_title = "Ticket Assigned"
            other_text = f'Ticket "{ticket.title}" has been assigned to {assignee_name}.'

        messages = [msg(uid, other_type, other_title, other_text) for uid in others]
        if assignee_id == ticket.raised_by:
            # They raised it themselves; no need to tell them it is theirs
            logger.info("Skipping assignment notification for creator", extra=build_log_context(ticket_id=ticket.id))
            return messages
        return [own] + messages

    def _booking_messages(self, booking_id: int) -> list[OutboundMessage]:
        booking = self.db.query(RoomBooking).filter(RoomBooking.id == booking_id).first()
        if not booking:
            logger.warning("Booking %s not found", booking_id)
            return []

        members = self.members.active_members(booking.site_id, rules.BOOKING_ROLES)
        technical = self.members.users_with_skill(booking.site_id, rules.BOOKING_SKILL)
        ids = rules.booking_recipients(members, technical)
        booker = self.members.user_names([booking.booked_by]).get(booking.booked_by, "a tenant")
        text = (
            f"{booking.room_name} booked by {booker} on {booking.booking_date:%d-%m-%Y} "
            f"from {booking.start_time:%H:%M} to {booking.end_time:%H:%M}."
        )
        return [
            OutboundMessage(
                user_id=uid,
                site_id=booking.site_id,
                notification_type=NotificationType.ROOM_BOOKED,
                title="Meeting Room Booked",
                message=text,
                deep_link=booking_link(booking.id),
                booking_id=booking.id,
            )
            for uid in ids
        ]

    def _site_name(self, site_id: int) -> str:
        row = self.db.query(Site.name).filter(Site.id == site_id).first()
        return row[0] if row else "the property"

    # -- delivery -------------------------------------------------------------

    def _deliver(self, message: OutboundMessage, report: FanoutReport) -> None:
        notification = Notification(
            user_id=message.user_id,
            ticket_id=message.ticket_id,
            booking_id=message.booking_id,
            site_id=message.site_id,
            notification_type=message.notification_type.value,
            title=message.title,
            message=message.message,
            deep_link=message.deep_link,
            is_read=False,
        )
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        report.notifications += 1

        for endpoint in live_endpoints(self.db, message.user_id):
            try:
                outcome = self.dispatch(notification, endpoint)
            except Exception:
                self.db.rollback()
                report.failed += 1
                logger.exception(
                    "Push dispatch crashed", extra=build_log_context(user_id=message.user_id)
                )
                continue
            if outcome == PushOutcome.DELIVERED:
                report.delivered += 1
            else:
                report.failed += 1
                if outcome == PushOutcome.INVALID_ENDPOINT:
                    report.deactivated += 1

    def build_payload(self, notification: Notification) -> PushPayload:
        return PushPayload(
            title=f"{self.settings.NOTIFICATION_TITLE_PREFIX} | {notification.title}",
            body=notification.message,
            data={
                "deep_link": notification.deep_link or "",
                "notification_id": str(notification.id),
            },
        )

    def dispatch(self, notification: Notification, endpoint: PushEndpoint) -> PushOutcome:
        """One attempt, one DeliveryRecord. The record never stays PENDING."""
        record = DeliveryRecord(
            notification_id=notification.id,
            push_endpoint_id=endpoint.id,
            delivery_status=DeliveryStatus.PENDING.value,
        )
        self.db.add(record)
        self.db.commit()
        record_id = record.id

        try:
            outcome = self.transport.send(endpoint.token, self.build_payload(notification))
        except Exception:
            logger.exception("Push transport raised for %s", mask_token(endpoint.token))
            outcome = PushOutcome.TRANSIENT_FAILURE

        try:
            if outcome == PushOutcome.DELIVERED:
                record.delivery_status = DeliveryStatus.DELIVERED.value
                record.delivered_at = utcnow()
            else:
                record.delivery_status = DeliveryStatus.FAILED.value
                record.error = outcome.value
                if outcome == PushOutcome.INVALID_ENDPOINT:
                    endpoint.is_active = False
                    logger.info("Deactivated unregistered push endpoint %s", mask_token(endpoint.token))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            self.db.query(DeliveryRecord).filter(DeliveryRecord.id == record_id).update(
                {"delivery_status": DeliveryStatus.FAILED.value, "error": "bookkeeping_error"}
            )
            self.db.commit()
            raise
        return outcome


@dataclass
class FanoutDispatcher:
    """Runs fan-out outside the request, on its own session."""

    session_factory: sessionmaker
    transport: PushTransport

    def run(self, event: EventKind, subject_id: int) -> FanoutReport | None:
        db = self.session_factory()
        try:
            return NotificationService(db, self.transport).notify(event, subject_id)
        except Exception:
            logger.exception("Fan-out aborted", extra=build_log_context(event=event.value))
            return None
        finally:
            db.close()

    def schedule(self, background_tasks: BackgroundTasks, event: EventKind, subject_id: int) -> None:
        background_tasks.add_task(self.run, event, subject_id)


def get_fanout() -> FanoutDispatcher:
    return FanoutDispatcher(get_session_factory(), get_push_transport())


def get_notifications(db: Session, user_id: int, unread_only: bool = False, limit: int = 50) -> list[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_read(db: Session, notification_id: int) -> Notification | None:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        return None
    if not notification.is_read:
        notification.is_read = True
        db.commit()
        db.refresh(notification)
    return notification


def register_endpoint(db: Session, user_id: int, token: str, browser_fingerprint: str | None) -> PushEndpoint:
    """Upsert by token; re-registering reactivates and bumps updated_at."""
    endpoint = db.query(PushEndpoint).filter(PushEndpoint.token == token).first()
    if endpoint is None:
        endpoint = PushEndpoint(user_id=user_id, token=token)
        db.add(endpoint)
    endpoint.user_id = user_id
    endpoint.browser_fingerprint = browser_fingerprint
    endpoint.is_active = True
    endpoint.updated_at = utcnow()
    db.commit()
    db.refresh(endpoint)
    return endpoint
