"""Course sales aggregate: purchase count and revenue per course.

Each sale is counted once per source transaction. The ids already counted
are stored on the aggregate itself, so the counters and the record of what
they include are saved together.
"""

from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, Integer, List, String
from protean.utils.globals import current_domain

from purchasing.domain import purchasing


@purchasing.aggregate
class CourseStats:
    course_id = Identifier(identifier=True, required=True)
    purchase_count = Integer(default=0, min_value=0)
    revenue_generated = Float(default=0.0, min_value=0.0)
    counted_transactions = List(content_type=String, default=list)

    def has_counted(self, transaction_id) -> bool:
        return str(transaction_id) in (self.counted_transactions or [])

    def record_purchase(self, amount: float, transaction_id) -> bool:
        """Add one sale. Returns False when the transaction was already counted."""
        if self.has_counted(transaction_id):
            return False

        self.purchase_count = (self.purchase_count or 0) + 1
        self.revenue_generated = (self.revenue_generated or 0.0) + amount
        self.counted_transactions = [*(self.counted_transactions or []), str(transaction_id)]
        return True


def record_course_purchase(course_id, amount: float, transaction_id) -> tuple[CourseStats, bool]:
    repo = current_domain.repository_for(CourseStats)
    try:
        stats = repo.get(str(course_id))
    except ObjectNotFoundError:
        stats = CourseStats(course_id=str(course_id), purchase_count=0, revenue_generated=0.0)

    counted = stats.record_purchase(amount, transaction_id)
    if counted:
        repo.add(stats)
    return stats, counted
