# fms/ticket/routes.py
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from fms.core.clock import utcnow
from fms.core.config import Settings, get_settings
from fms.core.database import get_db
from fms.notification.models import EventKind
from fms.notification.services import FanoutDispatcher, get_fanout
from fms.ticket import bulk
from fms.ticket import services as ticket_service
from fms.ticket.models import TicketStatus
from fms.ticket.schemas import (
    BulkAssignRequest,
    BulkAssignResult,
    BulkImportPreview,
    BulkImportRequest,
    BulkImportResult,
    SlaProgressOut,
    TicketCreate,
    TicketOut,
    TicketStatusUpdate,
    TicketUpdate,
)
from fms.ticket.sla import compute_sla_progress

router = APIRouter(prefix="/tickets", tags=["Tickets"])

STATUS_EVENTS = {
    TicketStatus.ASSIGNED: EventKind.TICKET_ASSIGNED,
    TicketStatus.WAITLIST: EventKind.TICKET_WAITLISTED,
    TicketStatus.RESOLVED: EventKind.TICKET_COMPLETED,
    TicketStatus.CLOSED: EventKind.TICKET_COMPLETED,
}


@router.post("/", response_model=TicketOut, status_code=201)
def create(
    ticket: TicketCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    fanout: FanoutDispatcher = Depends(get_fanout),
):
    engine = ticket_service.build_assignment_engine(db, settings)
    try:
        created = ticket_service.create_ticket(db, ticket, engine)
    except ticket_service.DuplicateTicketNumber:
        raise HTTPException(status_code=409, detail="Duplicate ticket number")

    if created.status == TicketStatus.WAITLIST.value:
        fanout.schedule(background_tasks, EventKind.TICKET_WAITLISTED, created.id)
    else:
        fanout.schedule(background_tasks, EventKind.TICKET_CREATED, created.id)
    return created


@router.get("/", response_model=list[TicketOut])
def list_all(
    site_id: int | None = None,
    status: str | None = Query(default=None, description="One status or a comma separated list"),
    assigned_to: int | None = None,
    raised_by: int | None = None,
    is_internal: bool | None = None,
    db: Session = Depends(get_db),
):
    statuses = [s.strip() for s in status.split(",") if s.strip()] if status else None
    return ticket_service.list_tickets(
        db,
        site_id=site_id,
        statuses=statuses,
        assigned_to=assigned_to,
        raised_by=raised_by,
        is_internal=is_internal,
    )


@router.post("/bulk-import", response_model=BulkImportResult | BulkImportPreview)
def bulk_import(
    payload: BulkImportRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    fanout: FanoutDispatcher = Depends(get_fanout),
):
    engine = ticket_service.build_assignment_engine(db, settings)
    if not payload.confirm:
        return bulk.preview_import(payload.rows, engine)
    try:
        result = bulk.import_tickets(db, payload, engine)
    except bulk.NoValidRows as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    for ticket in result.tickets:
        if ticket.status == TicketStatus.ASSIGNED:
            fanout.schedule(background_tasks, EventKind.TICKET_ASSIGNED, ticket.id)
    return result


@router.post("/bulk-assign", response_model=BulkAssignResult)
def bulk_assign(
    payload: BulkAssignRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    fanout: FanoutDispatcher = Depends(get_fanout),
):
    if payload.ticket_ids:
        tickets = [
            t for t in ticket_service.get_tickets_by_ids(db, payload.ticket_ids)
            if t.site_id == payload.site_id
        ]
    else:
        # oldest first so earlier reports get first claim
        tickets = list(reversed(ticket_service.list_tickets(
            db, site_id=payload.site_id, statuses=list(ticket_service.OPEN_STATES)
        )))[: payload.limit]
    if not tickets:
        raise HTTPException(status_code=404, detail="No tickets found for assignment")
    engine = ticket_service.build_assignment_engine(db, settings)
    result = ticket_service.assign_pending(db, tickets, engine)
    for ticket_id in result.newly_assigned:
        fanout.schedule(background_tasks, EventKind.TICKET_ASSIGNED, ticket_id)
    return result


@router.get("/{ticket_id}", response_model=TicketOut)
def get(ticket_id: int, db: Session = Depends(get_db)):
    ticket = ticket_service.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.put("/{ticket_id}", response_model=TicketOut)
def update(ticket_id: int, ticket: TicketUpdate, db: Session = Depends(get_db)):
    updated = ticket_service.update_ticket(db, ticket_id, ticket)
    if not updated:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return updated


@router.get("/{ticket_id}/sla", response_model=SlaProgressOut)
def sla_progress(ticket_id: int, db: Session = Depends(get_db)):
    ticket = ticket_service.get_ticket(db, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    result = compute_sla_progress(ticket, utcnow())
    return SlaProgressOut(
        ticket_id=ticket.id,
        progress=result.progress,
        remaining_minutes=result.remaining_minutes,
        remaining_text=result.remaining_text,
        breached=result.breached,
        paused=result.paused,
    )


@router.patch("/{ticket_id}/status", response_model=TicketOut)
def update_status(
    ticket_id: int,
    payload: TicketStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    fanout: FanoutDispatcher = Depends(get_fanout),
):
    try:
        ticket, changed = ticket_service.change_status(db, ticket_id, payload)
    except ticket_service.InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    event = STATUS_EVENTS.get(payload.status)
    if changed and event:
        fanout.schedule(background_tasks, event, ticket.id)
    return ticket


@router.post("/{ticket_id}/pause", response_model=TicketOut)
def pause(ticket_id: int, db: Session = Depends(get_db)):
    ticket = ticket_service.pause_work(db, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


@router.post("/{ticket_id}/resume", response_model=TicketOut)
def resume(ticket_id: int, db: Session = Depends(get_db)):
    ticket = ticket_service.resume_work(db, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket
