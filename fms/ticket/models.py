# fms/ticket/models.py
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from fms.core.clock import utcnow
from fms.core.database import Base


class TicketStatus(str, Enum):
    OPEN = "open"
    WAITLIST = "waitlist"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ImportStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    ticket_number = Column(String, unique=True, nullable=False, index=True)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False)
    category_code = Column(String, nullable=True)
    skill_group_id = Column(Integer, ForeignKey("skill_groups.id"), nullable=True)
    priority = Column(String, default="medium", nullable=False)
    status = Column(String, default=TicketStatus.OPEN.value, index=True, nullable=False)
    raised_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    assigned_at = Column(DateTime, nullable=True)
    sla_hours = Column(Integer, default=24, nullable=False)
    sla_deadline = Column(DateTime, nullable=True)
    sla_started = Column(Boolean, default=False, nullable=False)
    work_paused = Column(Boolean, default=False, nullable=False)
    work_paused_at = Column(DateTime, nullable=True)
    total_paused_minutes = Column(Integer, default=0, nullable=False)
    is_vague = Column(Boolean, default=False, nullable=False)
    is_internal = Column(Boolean, default=False, nullable=False)
    confidence = Column(Integer, default=0, nullable=False)
    floor_number = Column(Integer, nullable=True)
    location = Column(String, nullable=True)
    issue_date = Column(DateTime, nullable=True)
    import_batch_id = Column(Integer, ForeignKey("import_batches.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class ImportBatch(Base):
    __tablename__ = "import_batches"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False)
    imported_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    filename = Column(String, nullable=False)
    total_rows = Column(Integer, default=0, nullable=False)
    valid_rows = Column(Integer, default=0, nullable=False)
    error_rows = Column(Integer, default=0, nullable=False)
    status = Column(String, default=ImportStatus.PROCESSING.value, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
