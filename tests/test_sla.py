# tests/test_sla.py
from datetime import datetime, timedelta
from types import SimpleNamespace

from fms.ticket import sla

T0 = datetime(2026, 10, 19, 9, 0, 0)


def make_ticket(**overrides):
    fields = dict(
        assigned_at=T0,
        sla_deadline=sla.deadline(T0, 4),
        work_paused=False,
        work_paused_at=None,
        total_paused_minutes=0,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_deadline_adds_hours():
    assert sla.deadline(T0, 24) == datetime(2026, 10, 20, 9, 0, 0)


def test_progress_at_assignment_is_zero():
    result = sla.compute_sla_progress(make_ticket(), T0)
    assert result.progress == 0.0
    assert result.remaining_minutes == 240
    assert result.remaining_text == "4h left"


def test_progress_at_deadline_is_one_with_nothing_left():
    ticket = make_ticket()
    result = sla.compute_sla_progress(ticket, ticket.sla_deadline)
    assert result.progress == 1.0
    assert result.remaining_minutes == 0
    assert result.breached is False


def test_progress_is_clamped():
    ticket = make_ticket()
    assert sla.compute_sla_progress(ticket, T0 - timedelta(hours=1)).progress == 0.0
    late = sla.compute_sla_progress(ticket, T0 + timedelta(hours=9))
    assert late.progress == 1.0
    assert late.breached is True
    assert late.remaining_text == "SLA Breached"


def test_paused_minutes_reduce_elapsed_and_remaining():
    ticket = make_ticket(total_paused_minutes=60)
    now = T0 + timedelta(hours=2)
    assert sla.progress(now, T0, ticket.sla_deadline, 60) == 0.25
    assert sla.remaining(now, T0, ticket.sla_deadline, 60) == timedelta(hours=1)


def test_paused_ticket_is_frozen():
    paused_at = T0 + timedelta(hours=1)
    ticket = make_ticket(work_paused=True, work_paused_at=paused_at)
    frozen = sla.compute_sla_progress(ticket, paused_at)
    later = sla.compute_sla_progress(ticket, paused_at + timedelta(hours=10))
    assert later == frozen
    assert later.paused is True
    assert later.progress == 0.25


def test_not_started():
    result = sla.compute_sla_progress(make_ticket(assigned_at=None, sla_deadline=None), T0)
    assert result.progress == 0.0
    assert result.remaining_minutes is None
    assert result.remaining_text == "SLA not started"


def test_remaining_text_minutes():
    assert sla.remaining_text(45) == "45m left"
    assert sla.remaining_text(0) == "0m left"
    assert sla.remaining_text(-1) == "SLA Breached"
