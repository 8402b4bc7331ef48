"""Enrollment aggregate — a learner's access grant to one course.

At most one Enrollment exists per (user_id, course_id), however many paths
(purchase, promotion, admin grant) lead to it. ``grant_once`` is the only
way fulfillment creates one.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from purchasing.domain import purchasing

logger = structlog.get_logger(__name__)


class GrantedVia(Enum):
    PURCHASE = "purchase"
    FREE = "free"
    ADMIN = "admin"
    PROMOTION = "promotion"
    GIFT = "gift"


@purchasing.aggregate
class Enrollment:
    user_id = Identifier(required=True)
    course_id = Identifier(required=True)
    granted_via = String(choices=GrantedVia, default=GrantedVia.FREE.value)
    source_transaction_id = Identifier()
    granted_at = DateTime()


def find_enrollment(user_id, course_id) -> Enrollment | None:
    repo = current_domain.repository_for(Enrollment)
    matches = repo._dao.query.filter(user_id=str(user_id), course_id=str(course_id)).all().items
    return matches[0] if matches else None


def grant_once(user_id, course_id, granted_via: GrantedVia, source_transaction_id=None) -> tuple[Enrollment, bool]:
    """Create the enrollment unless one already exists.

    Returns the enrollment and whether it was created by this call.
    """
    existing = find_enrollment(user_id, course_id)
    if existing:
        logger.info(
            "Learner already enrolled",
            user_id=str(user_id),
            course_id=str(course_id),
            granted_via=existing.granted_via,
        )
        return existing, False

    enrollment = Enrollment(
        user_id=user_id,
        course_id=course_id,
        granted_via=granted_via.value,
        source_transaction_id=source_transaction_id,
        granted_at=datetime.now(UTC),
    )
    current_domain.repository_for(Enrollment).add(enrollment)
    return enrollment, True
