"""Fulfillment orchestrator — side effects of a completed purchase.

Runs after a transaction has been durably marked ``completed``:

    1. grant course access (Enrollment, at most one per user and course)
    2. add the sale to the course's purchase count and revenue
    3. create the instructor's pending RevenuePayout

Each step is attempted independently. A failing step is logged and reported
but never undoes an earlier one, and never reverts the transaction. The
transaction's step markers make a later retry skip what already succeeded.
A missing enrollment is the one gap that must not stay silent: it is logged
at error level so it gets alerted on and retried.
"""

from dataclasses import dataclass, field

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from purchasing.fulfillment.course_stats import record_course_purchase
from purchasing.fulfillment.enrollment import GrantedVia, grant_once
from purchasing.fulfillment.payout import create_payout, find_payout, instructor_share, platform_fee_percent
from purchasing.transaction.lifecycle import load_transaction
from purchasing.transaction.transaction import FulfillmentStep, Transaction, TransactionState
from shared.errors import PartialFulfillmentError

logger = structlog.get_logger(__name__)

# Inputs each step cannot do without
_STEP_INPUTS = {
    FulfillmentStep.ENROLLMENT: ("user_id", "course_id"),
    FulfillmentStep.COURSE_STATS: ("course_id",),
    FulfillmentStep.PAYOUT: ("instructor_id",),
}

# Metadata keys consulted when the transaction itself lacks a reference
_METADATA_KEYS = {
    "user_id": ("userId", "user_id"),
    "course_id": ("courseId", "course_id"),
    "instructor_id": ("instructorId", "instructor_id"),
}


@dataclass
class FulfillmentReport:
    transaction_id: str
    recorded: list[str] = field(default_factory=list)
    already_recorded: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    enrollment_created: bool = False
    payout_amount: float | None = None

    @property
    def complete(self) -> bool:
        return not self.failed and not self.skipped


def _resolve_references(transaction: Transaction, metadata: dict) -> dict[str, str | None]:
    refs = {}
    for name, keys in _METADATA_KEYS.items():
        value = getattr(transaction, name)
        if not value:
            value = next((metadata[k] for k in keys if metadata.get(k)), None)
        refs[name] = str(value) if value else None
    return refs


class FulfillmentOrchestrator:
    def __init__(self, fee_percent: float | None = None, payout_method: str = "stripe") -> None:
        self.fee_percent = platform_fee_percent() if fee_percent is None else fee_percent
        self.payout_method = payout_method

    def fulfill(self, transaction_id, metadata: dict | None = None) -> FulfillmentReport:
        """Run every fulfillment step not yet recorded on the transaction.

        Raises ``PartialFulfillmentError`` (carrying the report) when any step
        failed. Skipped steps, whose inputs are missing, do not raise.
        """
        transaction = load_transaction(transaction_id)
        if transaction.state != TransactionState.COMPLETED.value:
            raise ValidationError({"state": [f"Cannot fulfill a {transaction.state} transaction"]})

        refs = _resolve_references(transaction, metadata or {})
        report = FulfillmentReport(transaction_id=str(transaction.id))
        log = logger.bind(transaction_id=report.transaction_id, **refs)

        steps = [
            (FulfillmentStep.ENROLLMENT, self._grant_access),
            (FulfillmentStep.COURSE_STATS, self._record_sale),
            (FulfillmentStep.PAYOUT, self._record_payout),
        ]
        for step, run in steps:
            if transaction.is_step_recorded(step):
                report.already_recorded.append(step.value)
                continue

            missing = [name for name in _STEP_INPUTS[step] if not refs[name]]
            if missing:
                reason = f"missing {', '.join(missing)}"
                report.skipped[step.value] = reason
                if step is FulfillmentStep.ENROLLMENT:
                    log.error("Course access not granted", step=step.value, reason=reason)
                else:
                    log.warning("Fulfillment step skipped", step=step.value, reason=reason)
                continue

            try:
                run(transaction, refs, report)
            except Exception as exc:
                report.failed[step.value] = str(exc)
                log.error("Fulfillment step failed", step=step.value, error=str(exc), exc_info=True)
                continue

            transaction.mark_step_recorded(step)
            report.recorded.append(step.value)

        if report.recorded:
            try:
                current_domain.repository_for(Transaction).add(transaction)
            except Exception as exc:
                report.failed["markers"] = str(exc)
                log.error("Fulfillment markers not saved", error=str(exc))

        log.info(
            "Fulfillment finished",
            recorded=report.recorded,
            skipped=sorted(report.skipped),
            failed=sorted(report.failed),
        )
        if report.failed:
            raise PartialFulfillmentError(report.transaction_id, report.failed, report=report)
        return report

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _grant_access(self, transaction, refs, report):
        _, created = grant_once(
            user_id=refs["user_id"],
            course_id=refs["course_id"],
            granted_via=GrantedVia.PURCHASE,
            source_transaction_id=str(transaction.id),
        )
        report.enrollment_created = created

    def _record_sale(self, transaction, refs, report):
        _, counted = record_course_purchase(refs["course_id"], transaction.amount, transaction.id)
        if not counted:
            logger.info("Sale already counted", transaction_id=str(transaction.id), course_id=refs["course_id"])

    def _record_payout(self, transaction, refs, report):
        existing = find_payout(transaction.id)
        if existing:
            report.payout_amount = existing.amount
            return

        amount = instructor_share(transaction.amount, self.fee_percent)
        create_payout(
            instructor_id=refs["instructor_id"],
            amount=amount,
            currency=transaction.currency,
            source_transaction_id=str(transaction.id),
            payout_method=self.payout_method,
            note=f"Course: {refs['course_id'] or 'unknown'} - Transaction: {transaction.id}",
        )
        report.payout_amount = amount
