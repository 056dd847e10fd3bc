# fms/ticket/bulk.py
"""
Bulk snag import.

Rows are validated first; invalid rows are reported with a reason and never
reach resolver lookup. Valid rows run the intake decision in file order,
get inserted together, then a sequential second pass retries assignment
for anything still open or waitlisted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fms.core.clock import utcnow
from fms.core.logging import build_log_context
from fms.ticket.assignment import AssignmentEngine, TicketDraft
from fms.ticket.models import ImportBatch, ImportStatus, TicketStatus
from fms.ticket.schemas import (
    BulkImportPreview,
    BulkImportRequest,
    BulkImportResult,
    ImportRow,
    RowPreview,
    TicketOut,
)
from fms.ticket.services import assign_pending, ticket_from_state

logger = logging.getLogger(__name__)

# Header is row 1 in the uploaded sheet
FIRST_DATA_ROW = 2


class NoValidRows(Exception):
    pass


def parse_issue_date(value: str) -> datetime | None:
    """Parse DD-MM-YYYY; None when malformed."""
    parts = value.split("-")
    if len(parts) != 3:
        return None
    try:
        day, month, year = (int(p) for p in parts)
        return datetime(year, month, day)
    except ValueError:
        return None


@dataclass
class ValidatedRow:
    row_number: int
    description: str
    raw_date: str
    title: str | None
    issue_date: datetime | None
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def reason(self) -> str:
        return f"Row {self.row_number}: {', '.join(self.errors)}"


def validate_rows(rows: list[ImportRow]) -> list[ValidatedRow]:
    validated = []
    for index, row in enumerate(rows):
        description = (row.issue_description or "").strip()
        raw_date = (row.issue_date or "").strip()
        title = (row.title or "").strip() or None
        issue_date = None
        errors = []

        if not description:
            errors.append("Missing issue_description")
        if not raw_date:
            errors.append("Missing issue_date")
        else:
            issue_date = parse_issue_date(raw_date)
            if issue_date is None:
                errors.append("Invalid date format (expected DD-MM-YYYY)")

        validated.append(ValidatedRow(index + FIRST_DATA_ROW, description, raw_date, title, issue_date, errors))
    return validated


def preview_import(rows: list[ImportRow], engine: AssignmentEngine) -> BulkImportPreview:
    validated = validate_rows(rows)
    previews = []
    for row in validated:
        result = engine.classifier.classify(row.title or row.description)
        previews.append(RowPreview(
            row_number=row.row_number,
            issue_description=row.description,
            issue_date=row.raw_date,
            category_code=result.category_code,
            confidence=result.confidence,
            is_vague=result.is_vague,
            is_valid=row.is_valid,
            errors=row.errors,
        ))
    invalid = [r for r in validated if not r.is_valid]
    return BulkImportPreview(
        total_rows=len(validated),
        valid_rows=len(validated) - len(invalid),
        invalid_rows=len(invalid),
        rows=previews,
        errors=[r.reason() for r in invalid],
    )


def open_import_batch(db: Session, payload: BulkImportRequest, valid: int, invalid: int) -> ImportBatch | None:
    """Create the bookkeeping record. Returns None when it can't be written."""
    batch = ImportBatch(
        site_id=payload.site_id,
        imported_by=payload.imported_by,
        filename=payload.filename,
        total_rows=valid + invalid,
        valid_rows=valid,
        error_rows=invalid,
        status=ImportStatus.PROCESSING.value,
    )
    try:
        db.add(batch)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "Could not create import batch, continuing without batch tracking",
            exc_info=True,
            extra=build_log_context(site_id=payload.site_id),
        )
        return None
    db.refresh(batch)
    return batch


def close_import_batch(db: Session, batch: ImportBatch | None, status: ImportStatus) -> None:
    if batch is None:
        return
    try:
        batch.status = status.value
        if status == ImportStatus.COMPLETED:
            batch.completed_at = utcnow()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not update import batch %s", batch.id, exc_info=True)


def import_tickets(db: Session, payload: BulkImportRequest, engine: AssignmentEngine) -> BulkImportResult:
    validated = validate_rows(payload.rows)
    valid_rows = [r for r in validated if r.is_valid]
    errors = [r.reason() for r in validated if not r.is_valid]
    if not valid_rows:
        raise NoValidRows("No valid rows to import")

    batch = open_import_batch(db, payload, len(valid_rows), len(errors))
    batch_id = batch.id if batch else None

    drafts = [
        TicketDraft(
            site_id=payload.site_id,
            raised_by=payload.imported_by,
            description=row.description,
            title=row.title,
        )
        for row in valid_rows
    ]

    try:
        states = engine.classify_and_assign_batch(drafts)
        tickets = [
            ticket_from_state(draft, state, import_batch_id=batch_id, issue_date=row.issue_date)
            for draft, state, row in zip(drafts, states, valid_rows)
        ]
        db.add_all(tickets)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        close_import_batch(db, batch, ImportStatus.FAILED)
        raise

    # Second pass, strictly in file order
    pending = [t for t in tickets if t.status in (TicketStatus.OPEN.value, TicketStatus.WAITLIST.value)]
    if pending:
        assign_pending(db, pending, engine)

    close_import_batch(db, batch, ImportStatus.COMPLETED)

    for t in tickets:
        db.refresh(t)
    logger.info(
        "Imported %d tickets (%d rows rejected)",
        len(tickets),
        len(errors),
        extra=build_log_context(site_id=payload.site_id),
    )
    return BulkImportResult(
        import_batch_id=batch_id,
        tickets_created=len(tickets),
        assigned=sum(1 for t in tickets if t.status == TicketStatus.ASSIGNED.value),
        waitlisted=sum(1 for t in tickets if t.status == TicketStatus.WAITLIST.value),
        errors=errors,
        tickets=[TicketOut.model_validate(t) for t in tickets],
    )

