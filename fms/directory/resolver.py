# fms/directory/resolver.py
import logging

from fms.core.logging import build_log_context
from fms.directory.stores import AvailabilityStore, MembershipStore

logger = logging.getLogger(__name__)


class ResolverLocator:
    """
    Finds an available resolver for a skill group at a site.

    A candidate must have an available row AND an active membership at the
    same site; availability rows without one are stale and skipped. When
    ``claim`` is set the winner's availability is consumed, so a later call
    in the same transaction can't pick the same resolver again.
    """

    def __init__(self, availability: AvailabilityStore, membership: MembershipStore):
        self.availability = availability
        self.membership = membership

    def locate(self, skill_group_id: int, site_id: int, claim: bool = True) -> int | None:
        skipped: set[int] = set()
        try:
            while True:
                candidate = self.availability.find_available(skill_group_id, site_id, exclude=skipped)
                if candidate is None:
                    return None

                if self.membership.active_member(candidate, site_id) is None:
                    logger.warning(
                        "Skipping stale availability row without active membership",
                        extra=build_log_context(site_id=site_id, user_id=candidate),
                    )
                    skipped.add(candidate)
                    continue

                if claim and not self.availability.claim(candidate, skill_group_id, site_id):
                    # taken between lookup and claim
                    skipped.add(candidate)
                    continue

                return candidate
        except Exception:
            logger.exception(
                "Resolver lookup failed, falling back to waitlist",
                extra=build_log_context(site_id=site_id),
            )
            return None
