# fms/ticket/services.py
import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fms.core.clock import utcnow
from fms.core.config import Settings, get_settings
from fms.core.logging import build_log_context
from fms.directory.resolver import ResolverLocator
from fms.directory.stores import SqlAvailabilityStore, SqlMembershipStore, SqlReferenceDataStore
from fms.ticket import sla
from fms.ticket.assignment import AssignmentEngine, TicketDraft, TicketInitialState
from fms.ticket.models import Ticket, TicketStatus
from fms.ticket.schemas import (
    AssignmentOutcome,
    BulkAssignResult,
    TicketCreate,
    TicketStatusUpdate,
    TicketUpdate,
)

logger = logging.getLogger(__name__)

OPEN_STATES = (TicketStatus.OPEN.value, TicketStatus.WAITLIST.value)
NON_NULLABLE_EDITS = {"title", "description", "priority"}
WORKING_STATES = (TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS)

ALLOWED_TRANSITIONS: dict[TicketStatus, set[TicketStatus]] = {
    TicketStatus.OPEN: {TicketStatus.WAITLIST, TicketStatus.ASSIGNED, TicketStatus.CLOSED},
    TicketStatus.WAITLIST: {TicketStatus.ASSIGNED, TicketStatus.CLOSED},
    TicketStatus.ASSIGNED: {
        TicketStatus.IN_PROGRESS, TicketStatus.WAITLIST, TicketStatus.RESOLVED, TicketStatus.CLOSED,
    },
    TicketStatus.IN_PROGRESS: {TicketStatus.RESOLVED, TicketStatus.CLOSED},
    TicketStatus.RESOLVED: {TicketStatus.CLOSED},
    TicketStatus.CLOSED: set(),
}


class TicketError(Exception):
    pass


class DuplicateTicketNumber(TicketError):
    pass


class InvalidTransition(TicketError):
    pass


def build_assignment_engine(db: Session, settings: Settings | None = None) -> AssignmentEngine:
    settings = settings or get_settings()
    locator = ResolverLocator(SqlAvailabilityStore(db), SqlMembershipStore(db))
    return AssignmentEngine(
        SqlReferenceDataStore(db),
        locator,
        default_priority=settings.DEFAULT_PRIORITY,
        default_sla_hours=settings.DEFAULT_SLA_HOURS,
    )


def ticket_from_state(
    draft: TicketDraft,
    state: TicketInitialState,
    import_batch_id: int | None = None,
    issue_date: datetime | None = None,
) -> Ticket:
    return Ticket(
        ticket_number=state.ticket_number,
        site_id=draft.site_id,
        title=(draft.title or draft.description)[:100],
        description=draft.description,
        category_code=state.category_code,
        skill_group_id=state.skill_group_id,
        priority=state.priority,
        status=state.status.value,
        raised_by=draft.raised_by,
        assigned_to=state.assigned_to,
        assigned_at=state.assigned_at,
        sla_hours=state.sla_hours,
        sla_deadline=state.sla_deadline,
        sla_started=state.sla_started,
        is_vague=state.is_vague,
        is_internal=draft.is_internal,
        confidence=state.confidence,
        floor_number=state.floor_number,
        location=state.location,
        issue_date=issue_date,
        import_batch_id=import_batch_id,
    )


def get_ticket(db: Session, ticket_id: int) -> Ticket | None:
    return db.query(Ticket).filter(Ticket.id == ticket_id).first()


def get_tickets_by_ids(db: Session, ticket_ids: list[int]) -> list[Ticket]:
    if not ticket_ids:
        return []
    rows = db.query(Ticket).filter(Ticket.id.in_(ticket_ids)).all()
    by_id = {t.id: t for t in rows}
    # keep the caller's order
    return [by_id[i] for i in ticket_ids if i in by_id]


def list_tickets(
    db: Session,
    site_id: int | None = None,
    statuses: list[str] | None = None,
    assigned_to: int | None = None,
    raised_by: int | None = None,
    is_internal: bool | None = None,
) -> list[Ticket]:
    query = db.query(Ticket)
    if site_id is not None:
        query = query.filter(Ticket.site_id == site_id)
    if statuses:
        query = query.filter(Ticket.status.in_(statuses))
    if assigned_to is not None:
        query = query.filter(Ticket.assigned_to == assigned_to)
    if raised_by is not None:
        query = query.filter(Ticket.raised_by == raised_by)
    if is_internal is not None:
        query = query.filter(Ticket.is_internal.is_(is_internal))
    return query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()


def create_ticket(db: Session, payload: TicketCreate, engine: AssignmentEngine) -> Ticket:
    draft = TicketDraft(
        site_id=payload.site_id,
        raised_by=payload.raised_by,
        description=payload.description,
        title=payload.title,
        is_internal=payload.is_internal,
    )
    state = engine.classify_and_assign(draft)
    db_ticket = ticket_from_state(draft, state)
    db.add(db_ticket)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateTicketNumber(state.ticket_number) from exc
    db.refresh(db_ticket)
    logger.info(
        "Ticket %s created with status %s",
        db_ticket.ticket_number,
        db_ticket.status,
        extra=build_log_context(ticket_id=db_ticket.id, site_id=db_ticket.site_id),
    )
    return db_ticket


def update_ticket(db: Session, ticket_id: int, payload: TicketUpdate) -> Ticket | None:
    db_ticket = get_ticket(db, ticket_id)
    if not db_ticket:
        return None
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in NON_NULLABLE_EDITS:
            continue
        setattr(db_ticket, field, value)
    db.commit()
    db.refresh(db_ticket)
    return db_ticket


def release_resolver(db: Session, user_id: int, skill_group_id: int | None, site_id: int) -> bool:
    """
    Hand a resolver back to auto-assignment once they hold no other working
    ticket in that skill group at that site. Does not commit.
    """
    if skill_group_id is None:
        return False
    still_busy = (
        db.query(Ticket.id)
        .filter(
            Ticket.assigned_to == user_id,
            Ticket.skill_group_id == skill_group_id,
            Ticket.site_id == site_id,
            Ticket.status.in_([s.value for s in WORKING_STATES]),
        )
        .first()
    )
    if still_busy:
        return False
    released = SqlAvailabilityStore(db).release(user_id, skill_group_id, site_id)
    if released:
        logger.info(
            "Resolver released back to availability",
            extra=build_log_context(site_id=site_id, user_id=user_id),
        )
    return released


def change_status(
    db: Session, ticket_id: int, payload: TicketStatusUpdate, now: datetime | None = None
) -> tuple[Ticket | None, bool]:
    """
    Apply a status transition. Returns (ticket, changed); repeating the
    current status is a no-op with changed=False.
    """
    db_ticket = get_ticket(db, ticket_id)
    if not db_ticket:
        return None, False

    current = TicketStatus(db_ticket.status)
    target = payload.status
    if target == current and (target != TicketStatus.ASSIGNED or payload.assigned_to in (None, db_ticket.assigned_to)):
        return db_ticket, False
    if target != current and target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(f"Cannot move ticket from {current.value} to {target.value}")

    previous_assignee = db_ticket.assigned_to if current in WORKING_STATES else None
    now = now or utcnow()
    if target == TicketStatus.ASSIGNED:
        assignee = payload.assigned_to or db_ticket.assigned_to
        if assignee is None:
            raise InvalidTransition("An assignee is required to assign a ticket")
        db_ticket.assigned_to = assignee
        db_ticket.assigned_at = now
        if not db_ticket.sla_started:
            db_ticket.sla_deadline = sla.deadline(now, db_ticket.sla_hours)
            db_ticket.sla_started = True
    elif target == TicketStatus.WAITLIST:
        db_ticket.assigned_to = None

    db_ticket.status = target.value
    if previous_assignee is not None and (
        target not in WORKING_STATES or db_ticket.assigned_to != previous_assignee
    ):
        db.flush()
        release_resolver(db, previous_assignee, db_ticket.skill_group_id, db_ticket.site_id)
    db.commit()
    db.refresh(db_ticket)
    return db_ticket, True


def pause_work(db: Session, ticket_id: int, now: datetime | None = None) -> Ticket | None:
    db_ticket = get_ticket(db, ticket_id)
    if not db_ticket:
        return None
    if not db_ticket.work_paused:
        db_ticket.work_paused = True
        db_ticket.work_paused_at = now or utcnow()
        db.commit()
        db.refresh(db_ticket)
    return db_ticket


def resume_work(db: Session, ticket_id: int, now: datetime | None = None) -> Ticket | None:
    db_ticket = get_ticket(db, ticket_id)
    if not db_ticket:
        return None
    if db_ticket.work_paused:
        now = now or utcnow()
        if db_ticket.work_paused_at is not None:
            minutes = int((now - db_ticket.work_paused_at).total_seconds() // 60)
            db_ticket.total_paused_minutes = (db_ticket.total_paused_minutes or 0) + max(0, minutes)
        db_ticket.work_paused = False
        db_ticket.work_paused_at = None
        db.commit()
        db.refresh(db_ticket)
    return db_ticket


def assign_pending(db: Session, tickets: list[Ticket], engine: AssignmentEngine) -> BulkAssignResult:
    """
    Re-run resolver lookup for tickets still open or waitlisted, one at a time
    in list order, committing each before looking at the next.
    """
    results: list[AssignmentOutcome] = []
    newly_assigned: list[int] = []
    for db_ticket in tickets:
        ticket_id = db_ticket.id
        if db_ticket.status not in OPEN_STATES:
            results.append(AssignmentOutcome(
                ticket_id=ticket_id, status=db_ticket.status, assigned_to=db_ticket.assigned_to,
            ))
            continue
        try:
            assignment = engine.assign(db_ticket.skill_group_id, db_ticket.site_id, db_ticket.sla_hours)
            db_ticket.status = assignment.status.value
            if assignment.assigned_to is not None:
                db_ticket.assigned_to = assignment.assigned_to
                db_ticket.assigned_at = assignment.assigned_at
                db_ticket.sla_deadline = assignment.sla_deadline
                db_ticket.sla_started = True
            db.commit()
            if assignment.assigned_to is not None:
                newly_assigned.append(ticket_id)
            results.append(AssignmentOutcome(
                ticket_id=ticket_id, status=db_ticket.status, assigned_to=db_ticket.assigned_to,
            ))
        except Exception as exc:
            db.rollback()
            logger.exception(
                "Assignment failed for ticket", extra=build_log_context(ticket_id=ticket_id)
            )
            results.append(AssignmentOutcome(
                ticket_id=ticket_id, status="error", assigned_to=None, error=str(exc),
            ))

    return BulkAssignResult(
        total=len(results),
        assigned=sum(1 for r in results if r.status == TicketStatus.ASSIGNED.value),
        waitlisted=sum(1 for r in results if r.status == TicketStatus.WAITLIST.value),
        errors=sum(1 for r in results if r.status == "error"),
        results=results,
        newly_assigned=newly_assigned,
    )
