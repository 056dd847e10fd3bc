# fms/ticket/sla.py
"""SLA clock. Pure functions of stored ticket fields; nothing ticks in the background."""

from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass(frozen=True)
class SlaProgress:
    progress: float
    remaining_minutes: int | None
    remaining_text: str
    breached: bool
    paused: bool


def deadline(assigned_at: datetime, sla_hours: int) -> datetime:
    return assigned_at + timedelta(hours=sla_hours)


def remaining(now: datetime, assigned_at: datetime, sla_deadline: datetime, paused_minutes: int) -> timedelta:
    return sla_deadline - now - timedelta(minutes=paused_minutes)


def progress(now: datetime, assigned_at: datetime, sla_deadline: datetime, paused_minutes: int) -> float:
    total = (sla_deadline - assigned_at).total_seconds()
    if total <= 0:
        return 1.0
    elapsed = (now - assigned_at - timedelta(minutes=paused_minutes)).total_seconds()
    return min(1.0, max(0.0, elapsed / total))


def remaining_text(minutes: int) -> str:
    if minutes < 0:
        return "SLA Breached"
    if minutes < 60:
        return f"{minutes}m left"
    return f"{minutes // 60}h left"


def compute_sla_progress(ticket, now: datetime) -> SlaProgress:
    """
    Progress and remaining time for a ticket at ``now``.

    While work is paused the clock is read at ``work_paused_at`` so the
    numbers stay frozen until the ticket resumes.
    """
    paused = bool(ticket.work_paused)
    if ticket.assigned_at is None or ticket.sla_deadline is None:
        return SlaProgress(0.0, None, "SLA not started", False, paused)

    if paused and ticket.work_paused_at is not None:
        now = ticket.work_paused_at

    paused_minutes = ticket.total_paused_minutes or 0
    left = remaining(now, ticket.assigned_at, ticket.sla_deadline, paused_minutes)
    minutes = int(left.total_seconds() // 60)
    return SlaProgress(
        progress=progress(now, ticket.assigned_at, ticket.sla_deadline, paused_minutes),
        remaining_minutes=minutes,
        remaining_text=remaining_text(minutes),
        breached=minutes < 0,
        paused=paused,
    )
