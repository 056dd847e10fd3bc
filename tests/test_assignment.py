# tests/test_assignment.py
from datetime import datetime, timedelta

from fms.directory.models import ResolverAvailability, Role
from fms.directory.resolver import ResolverLocator
from fms.directory.stores import SqlAvailabilityStore, SqlMembershipStore
from fms.ticket.assignment import AssignmentEngine, TicketDraft
from fms.ticket.models import TicketStatus
from fms.ticket.services import build_assignment_engine
from tests.fakes import (
    PLUMBING,
    SOFT_SERVICES,
    TECHNICAL,
    BrokenAvailability,
    FakeAvailability,
    FakeMembership,
    standard_reference,
)

NOW = datetime(2026, 10, 19, 9, 0, 0)
SITE = 10


def make_engine(availability, membership, reference=None):
    return AssignmentEngine(
        reference or standard_reference(),
        ResolverLocator(availability, membership),
        clock=lambda: NOW,
    )


def draft(description, title=None):
    return TicketDraft(site_id=SITE, raised_by=1, description=description, title=title)


def test_locator_returns_member_with_availability():
    availability = FakeAvailability({(7, TECHNICAL, SITE): True})
    membership = FakeMembership({(7, SITE): Role.MST})
    assert ResolverLocator(availability, membership).locate(TECHNICAL, SITE) == 7
    assert availability.rows[(7, TECHNICAL, SITE)] is False


def test_locator_skips_stale_availability():
    availability = FakeAvailability({(7, TECHNICAL, SITE): True, (8, TECHNICAL, SITE): True})
    membership = FakeMembership({(8, SITE): Role.MST})
    assert ResolverLocator(availability, membership).locate(TECHNICAL, SITE) == 8
    # the stale row is left alone
    assert availability.rows[(7, TECHNICAL, SITE)] is True


def test_locator_none_when_only_stale_rows():
    availability = FakeAvailability({(7, TECHNICAL, SITE): True})
    assert ResolverLocator(availability, FakeMembership()).locate(TECHNICAL, SITE) is None


def test_locator_membership_must_be_at_same_site():
    availability = FakeAvailability({(7, TECHNICAL, SITE): True})
    membership = FakeMembership({(7, SITE + 1): Role.MST})
    assert ResolverLocator(availability, membership).locate(TECHNICAL, SITE) is None


def test_locator_store_failure_falls_back_to_none():
    locator = ResolverLocator(BrokenAvailability(), FakeMembership())
    assert locator.locate(TECHNICAL, SITE) is None


def test_assigned_ticket_gets_deadline():
    engine = make_engine(
        FakeAvailability({(7, TECHNICAL, SITE): True}),
        FakeMembership({(7, SITE): Role.MST}),
    )
    state = engine.classify_and_assign(draft("AC not working 3rd floor cafeteria"))
    assert state.status == TicketStatus.ASSIGNED
    assert state.category_code == "ac_breakdown"
    assert state.skill_group_id == TECHNICAL
    assert state.priority == "high"
    assert state.sla_hours == 4
    assert state.assigned_to == 7
    assert state.assigned_at == NOW
    assert state.sla_deadline == NOW + timedelta(hours=4)
    assert state.sla_started is True
    assert state.floor_number == 3
    assert state.location == "Cafeteria"


def test_no_resolver_means_waitlist():
    engine = make_engine(FakeAvailability(), FakeMembership())
    state = engine.classify_and_assign(draft("AC not working 3rd floor cafeteria"))
    assert state.status == TicketStatus.WAITLIST
    assert state.assigned_to is None
    assert state.assigned_at is None
    assert state.sla_deadline is None
    assert state.sla_started is False
    # location metadata is attached either way
    assert state.floor_number == 3


def test_inactive_membership_means_waitlist():
    engine = make_engine(FakeAvailability({(7, TECHNICAL, SITE): True}), FakeMembership())
    state = engine.classify_and_assign(draft("AC not working 3rd floor cafeteria"))
    assert state.status == TicketStatus.WAITLIST
    assert state.assigned_to is None


def test_vague_text_uses_department_fallback():
    engine = make_engine(
        FakeAvailability({(5, SOFT_SERVICES, SITE): True}),
        FakeMembership({(5, SITE): Role.STAFF}),
    )
    state = engine.classify_and_assign(draft("mop pls"))
    assert state.is_vague
    assert state.category_code is None
    assert state.skill_group_id == SOFT_SERVICES
    assert state.priority == "medium"
    assert state.sla_hours == 24
    assert state.status == TicketStatus.ASSIGNED
    assert state.sla_deadline == NOW + timedelta(hours=24)


def test_unknown_category_code_uses_department_fallback():
    # lift_issue is not in the fake reference data
    engine = make_engine(FakeAvailability(), FakeMembership())
    state = engine.classify_and_assign(draft("Lift stuck near the east wing, lift stuck again"))
    assert state.category_code is None
    assert state.skill_group_id == TECHNICAL
    assert state.priority == "medium"
    assert state.sla_hours == 24
    assert state.status == TicketStatus.WAITLIST


def test_no_skill_group_at_all_is_waitlist():
    reference = standard_reference()
    reference.skill_groups = {}
    engine = make_engine(FakeAvailability(), FakeMembership(), reference)
    state = engine.classify_and_assign(draft("something odd"))
    assert state.skill_group_id is None
    assert state.status == TicketStatus.WAITLIST


def test_title_takes_precedence_over_description():
    engine = make_engine(FakeAvailability(), FakeMembership())
    state = engine.classify_and_assign(draft("see title", title="Water leak near the pantry sink"))
    assert state.category_code == "water_leakage"
    assert state.skill_group_id == PLUMBING


def test_ticket_numbers_are_unique():
    engine = make_engine(FakeAvailability(), FakeMembership())
    numbers = {engine.classify_and_assign(draft("AC not working")).ticket_number for _ in range(50)}
    assert len(numbers) == 50


def test_batch_exhausts_scarce_resolver_in_order():
    engine = make_engine(
        FakeAvailability({(7, TECHNICAL, SITE): True}),
        FakeMembership({(7, SITE): Role.MST}),
    )
    states = engine.classify_and_assign_batch([
        draft("AC not working in the 2nd floor cabin"),
        draft("AC not working in the 4th floor cabin"),
    ])
    assert [s.status for s in states] == [TicketStatus.ASSIGNED, TicketStatus.WAITLIST]
    assert states[0].assigned_to == 7
    assert states[1].assigned_to is None


def test_batch_skill_groups_are_independent():
    # the same person can be claimed once per skill group
    engine = make_engine(
        FakeAvailability({(7, TECHNICAL, SITE): True, (7, PLUMBING, SITE): True}),
        FakeMembership({(7, SITE): Role.MST}),
    )
    states = engine.classify_and_assign_batch([
        draft("AC not working in the 2nd floor cabin"),
        draft("Water leak near the pantry sink"),
    ])
    assert [s.assigned_to for s in states] == [7, 7]


def test_sql_stores_claim_once(db, factory):
    site = factory.site()
    mst = factory.user("Ravi", site, Role.MST)
    factory.available(mst, "technical", site)
    technical = factory.skill_group("technical")

    locator = ResolverLocator(SqlAvailabilityStore(db), SqlMembershipStore(db))
    assert locator.locate(technical, site) == mst
    assert locator.locate(technical, site) is None
    db.rollback()
    # rolled back with the transaction it belonged to
    row = db.query(ResolverAvailability).filter(ResolverAvailability.user_id == mst).one()
    assert row.is_available is True


def test_sql_stores_skip_inactive_membership(db, factory):
    site = factory.site()
    mst = factory.user("Ravi", site, Role.MST, active=False)
    factory.available(mst, "technical", site)

    engine = build_assignment_engine(db)
    state = engine.classify_and_assign(
        TicketDraft(site_id=site, raised_by=mst, description="AC not working 3rd floor cafeteria")
    )
    assert state.status == TicketStatus.WAITLIST
    assert state.assigned_to is None
    assert state.sla_deadline is None
