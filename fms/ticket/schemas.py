# fms/ticket/schemas.py
from datetime import datetime

from pydantic import BaseModel, Field

from fms.ticket.models import TicketStatus


class TicketBase(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    description: str = Field(..., min_length=1)


class TicketCreate(TicketBase):
    site_id: int
    raised_by: int
    is_internal: bool = False


class TicketUpdate(BaseModel):
    # Descriptive fields only; status goes through PATCH /status
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    priority: str | None = None
    floor_number: int | None = None
    location: str | None = None


class TicketStatusUpdate(BaseModel):
    status: TicketStatus
    assigned_to: int | None = None


class TicketOut(TicketBase):
    id: int
    ticket_number: str
    title: str
    site_id: int
    status: TicketStatus
    category_code: str | None
    skill_group_id: int | None
    priority: str
    raised_by: int
    assigned_to: int | None
    assigned_at: datetime | None
    sla_hours: int
    sla_deadline: datetime | None
    sla_started: bool
    work_paused: bool
    total_paused_minutes: int
    is_vague: bool
    is_internal: bool
    confidence: int
    floor_number: int | None
    location: str | None
    import_batch_id: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SlaProgressOut(BaseModel):
    ticket_id: int
    progress: float
    remaining_minutes: int | None
    remaining_text: str
    breached: bool
    paused: bool


class ImportRow(BaseModel):
    issue_description: str | None = None
    issue_date: str | None = None
    title: str | None = None


class BulkImportRequest(BaseModel):
    site_id: int
    imported_by: int
    filename: str = "upload.csv"
    confirm: bool = False
    rows: list[ImportRow] = Field(..., min_length=1)


class RowPreview(BaseModel):
    row_number: int
    issue_description: str
    issue_date: str
    category_code: str | None
    confidence: int
    is_vague: bool
    is_valid: bool
    errors: list[str]


class BulkImportPreview(BaseModel):
    preview: bool = True
    total_rows: int
    valid_rows: int
    invalid_rows: int
    rows: list[RowPreview]
    errors: list[str]


class BulkImportResult(BaseModel):
    preview: bool = False
    import_batch_id: int | None
    tickets_created: int
    assigned: int
    waitlisted: int
    errors: list[str]
    tickets: list[TicketOut]


class BulkAssignRequest(BaseModel):
    site_id: int
    ticket_ids: list[int] = Field(default_factory=list)
    limit: int = Field(default=50, ge=1, le=500)


class AssignmentOutcome(BaseModel):
    ticket_id: int
    status: str
    assigned_to: int | None
    error: str | None = None


class BulkAssignResult(BaseModel):
    total: int
    assigned: int
    waitlisted: int
    errors: int
    results: list[AssignmentOutcome]
    # tickets this run moved into assigned
    newly_assigned: list[int] = Field(default_factory=list)
