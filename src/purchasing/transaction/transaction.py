"""Transaction aggregate — the durable record of one course purchase attempt.

State Machine:
    PENDING → COMPLETED → REFUNDED
    PENDING → FAILED

Provider notifications are delivered at least once and in any order, so a
transition that is not listed above is never an error: the transition
methods report it as a no-op (return False) and change nothing. Only an
applied transition raises an event, and only ``pending → completed`` is
followed by fulfillment.

The ``*_recorded`` markers remember which optional fulfillment steps have
already succeeded, so an operator retry only re-runs the missing ones.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String

from purchasing.domain import purchasing
from purchasing.transaction.events import (
    TransactionCompleted,
    TransactionCreated,
    TransactionFailed,
    TransactionRefunded,
)


class TransactionState(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class FulfillmentStep(Enum):
    ENROLLMENT = "enrollment"
    COURSE_STATS = "course_stats"
    PAYOUT = "payout"


_VALID_TRANSITIONS = {
    TransactionState.PENDING: {TransactionState.COMPLETED, TransactionState.FAILED},
    TransactionState.COMPLETED: {TransactionState.REFUNDED},
    TransactionState.FAILED: set(),  # Terminal
    TransactionState.REFUNDED: set(),  # Terminal
}

_STEP_MARKERS = {
    FulfillmentStep.ENROLLMENT: "enrollment_recorded",
    FulfillmentStep.COURSE_STATS: "stats_recorded",
    FulfillmentStep.PAYOUT: "payout_recorded",
}


@purchasing.aggregate
class Transaction:
    user_id = Identifier()
    course_id = Identifier()
    instructor_id = Identifier()
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="USD")
    state = String(
        choices=TransactionState,
        default=TransactionState.PENDING.value,
    )
    provider_charge_ref = String(max_length=255)
    failure_reason = String(max_length=500)
    created_at = DateTime()
    completed_at = DateTime()
    failed_at = DateTime()
    refunded_at = DateTime()
    enrollment_recorded = Boolean(default=False)
    stats_recorded = Boolean(default=False)
    payout_recorded = Boolean(default=False)

    @invariant.post
    def amount_must_be_positive(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError({"amount": ["Transaction amount must be greater than zero"]})

    @invariant.post
    def terminal_states_must_be_timestamped(self):
        if self.state == TransactionState.COMPLETED.value and self.completed_at is None:
            raise ValidationError({"completed_at": ["Completed transactions must record a completion time"]})
        if self.state == TransactionState.REFUNDED.value and self.refunded_at is None:
            raise ValidationError({"refunded_at": ["Refunded transactions must record a refund time"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, amount, currency="USD", user_id=None, course_id=None, instructor_id=None):
        now = datetime.now(UTC)
        transaction = cls(
            user_id=user_id,
            course_id=course_id,
            instructor_id=instructor_id,
            amount=amount,
            currency=(currency or "USD").upper(),
            state=TransactionState.PENDING.value,
            created_at=now,
        )
        transaction.raise_(
            TransactionCreated(
                transaction_id=str(transaction.id),
                user_id=transaction.user_id,
                course_id=transaction.course_id,
                instructor_id=transaction.instructor_id,
                amount=transaction.amount,
                currency=transaction.currency,
                created_at=now,
            )
        )
        return transaction

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def can_transition_to(self, target: TransactionState) -> bool:
        return target in _VALID_TRANSITIONS.get(TransactionState(self.state), set())

    def record_charge_succeeded(self, provider_charge_ref: str | None = None) -> bool:
        """Apply ``pending → completed``. Returns False for any other starting state."""
        if not self.can_transition_to(TransactionState.COMPLETED):
            return False

        now = datetime.now(UTC)
        if provider_charge_ref:
            self.provider_charge_ref = provider_charge_ref
        self.completed_at = now
        self.state = TransactionState.COMPLETED.value

        self.raise_(
            TransactionCompleted(
                transaction_id=str(self.id),
                user_id=self.user_id,
                course_id=self.course_id,
                instructor_id=self.instructor_id,
                amount=self.amount,
                currency=self.currency,
                provider_charge_ref=self.provider_charge_ref,
                completed_at=now,
            )
        )
        return True

    def record_charge_failed(self, reason: str | None = None) -> bool:
        """Apply ``pending → failed``."""
        if not self.can_transition_to(TransactionState.FAILED):
            return False

        now = datetime.now(UTC)
        self.failure_reason = reason
        self.failed_at = now
        self.state = TransactionState.FAILED.value

        self.raise_(
            TransactionFailed(
                transaction_id=str(self.id),
                reason=reason,
                failed_at=now,
            )
        )
        return True

    def record_refund(self) -> bool:
        """Apply ``completed → refunded``. Enrollment is deliberately left in place."""
        if not self.can_transition_to(TransactionState.REFUNDED):
            return False

        now = datetime.now(UTC)
        self.refunded_at = now
        self.state = TransactionState.REFUNDED.value

        self.raise_(
            TransactionRefunded(
                transaction_id=str(self.id),
                amount=self.amount,
                refunded_at=now,
            )
        )
        return True

    # -------------------------------------------------------------------
    # Fulfillment bookkeeping
    # -------------------------------------------------------------------
    def is_step_recorded(self, step: FulfillmentStep) -> bool:
        return bool(getattr(self, _STEP_MARKERS[step]))

    def mark_step_recorded(self, step: FulfillmentStep) -> None:
        setattr(self, _STEP_MARKERS[step], True)

    @property
    def pending_steps(self) -> list[FulfillmentStep]:
        return [step for step in FulfillmentStep if not self.is_step_recorded(step)]
