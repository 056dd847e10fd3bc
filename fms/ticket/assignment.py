# fms/ticket/assignment.py
"""
Intake decision: classify a draft, resolve its skill group, pick a resolver
and work out the initial status and SLA deadline.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Sequence

from fms.classification.classifier import TicketClassifier
from fms.classification.department import DepartmentClassifier
from fms.classification.location import LocationExtractor
from fms.core.clock import utcnow
from fms.core.logging import build_log_context
from fms.directory.resolver import ResolverLocator
from fms.directory.stores import ReferenceDataStore
from fms.ticket import sla
from fms.ticket.models import TicketStatus
from fms.ticket.numbering import generate_ticket_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TicketDraft:
    site_id: int
    raised_by: int
    description: str
    title: str | None = None
    is_internal: bool = False

    @property
    def text(self) -> str:
        return self.title or self.description


@dataclass(frozen=True)
class TicketInitialState:
    ticket_number: str
    status: TicketStatus
    category_code: str | None
    skill_group_id: int | None
    priority: str
    sla_hours: int
    assigned_to: int | None
    assigned_at: datetime | None
    sla_deadline: datetime | None
    sla_started: bool
    is_vague: bool
    confidence: int
    floor_number: int | None
    location: str | None


@dataclass(frozen=True)
class Assignment:
    status: TicketStatus
    assigned_to: int | None
    assigned_at: datetime | None
    sla_deadline: datetime | None


class AssignmentEngine:
    def __init__(
        self,
        reference: ReferenceDataStore,
        locator: ResolverLocator,
        classifier: TicketClassifier | None = None,
        departments: DepartmentClassifier | None = None,
        locations: LocationExtractor | None = None,
        clock: Callable[[], datetime] = utcnow,
        default_priority: str = "medium",
        default_sla_hours: int = 24,
    ):
        self.reference = reference
        self.locator = locator
        self.classifier = classifier or TicketClassifier()
        self.departments = departments or DepartmentClassifier()
        self.locations = locations or LocationExtractor()
        self.clock = clock
        self.default_priority = default_priority
        self.default_sla_hours = default_sla_hours

    def assign(self, skill_group_id: int | None, site_id: int, sla_hours: int) -> Assignment:
        """Try to hand the work to a resolver; waitlist when nobody qualifies."""
        if skill_group_id is None:
            return Assignment(TicketStatus.WAITLIST, None, None, None)

        resolver = self.locator.locate(skill_group_id, site_id)
        if resolver is None:
            return Assignment(TicketStatus.WAITLIST, None, None, None)

        now = self.clock()
        return Assignment(TicketStatus.ASSIGNED, resolver, now, sla.deadline(now, sla_hours))

    def classify_and_assign(self, draft: TicketDraft) -> TicketInitialState:
        text = draft.text
        result = self.classifier.classify(text)

        category_code = None
        skill_group_id = None
        priority = self.default_priority
        sla_hours = self.default_sla_hours

        if result.category_code and not result.is_vague:
            category = self.reference.category_by_code(result.category_code)
            if category:
                category_code = category.code
                skill_group_id = category.skill_group_id
                priority = category.priority or self.default_priority
                sla_hours = category.sla_hours or self.default_sla_hours
            else:
                logger.warning(
                    "Category code %s not in reference data, using department fallback",
                    result.category_code,
                    extra=build_log_context(site_id=draft.site_id),
                )

        if skill_group_id is None:
            department = self.departments.classify(text).department
            skill_group_id = self.reference.skill_group_by_code(department.value)
            if skill_group_id is None:
                logger.error(
                    "No skill group found for department %s",
                    department.value,
                    extra=build_log_context(site_id=draft.site_id),
                )

        assignment = self.assign(skill_group_id, draft.site_id, sla_hours)
        where = self.locations.extract(text)

        return TicketInitialState(
            ticket_number=generate_ticket_number(),
            status=assignment.status,
            category_code=category_code,
            skill_group_id=skill_group_id,
            priority=priority,
            sla_hours=sla_hours,
            assigned_to=assignment.assigned_to,
            assigned_at=assignment.assigned_at,
            sla_deadline=assignment.sla_deadline,
            sla_started=assignment.assigned_to is not None,
            is_vague=result.is_vague,
            confidence=result.confidence,
            floor_number=where.floor_number,
            location=where.location,
        )

    def classify_and_assign_batch(self, drafts: Sequence[TicketDraft]) -> list[TicketInitialState]:
        # Array order matters: earlier rows get first claim on scarce resolvers
        return [self.classify_and_assign(draft) for draft in drafts]
