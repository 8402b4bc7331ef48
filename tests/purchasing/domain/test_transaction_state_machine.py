"""Tests for the Transaction state machine."""

import pytest
from protean.exceptions import ValidationError
from purchasing.transaction.events import (
    TransactionCompleted,
    TransactionCreated,
    TransactionFailed,
    TransactionRefunded,
)
from purchasing.transaction.transaction import FulfillmentStep, Transaction, TransactionState


def _make_transaction(**overrides):
    defaults = {
        "amount": 49.99,
        "currency": "usd",
        "user_id": "user-1",
        "course_id": "course-7",
        "instructor_id": "instructor-3",
    }
    defaults.update(overrides)
    transaction = Transaction.create(**defaults)
    transaction._events.clear()
    return transaction


class TestCreation:
    def test_create_starts_pending(self):
        transaction = _make_transaction()
        assert transaction.state == TransactionState.PENDING.value
        assert transaction.created_at is not None

    def test_create_normalises_currency(self):
        assert _make_transaction(currency="eur").currency == "EUR"

    def test_create_raises_created_event(self):
        transaction = Transaction.create(amount=10.0, user_id="u", course_id="c", instructor_id="i")
        assert isinstance(transaction._events[-1], TransactionCreated)

    def test_negative_amount_is_rejected(self):
        with pytest.raises(ValidationError):
            Transaction.create(amount=-5.0)


class TestTransitions:
    def test_pending_to_completed(self):
        transaction = _make_transaction()
        assert transaction.record_charge_succeeded("ch_123") is True
        assert transaction.state == TransactionState.COMPLETED.value
        assert transaction.provider_charge_ref == "ch_123"
        assert transaction.completed_at is not None
        assert isinstance(transaction._events[-1], TransactionCompleted)

    def test_pending_to_failed(self):
        transaction = _make_transaction()
        assert transaction.record_charge_failed("Card declined") is True
        assert transaction.state == TransactionState.FAILED.value
        assert transaction.failure_reason == "Card declined"
        assert isinstance(transaction._events[-1], TransactionFailed)

    def test_completed_to_refunded(self):
        transaction = _make_transaction()
        transaction.record_charge_succeeded("ch_123")
        assert transaction.record_refund() is True
        assert transaction.state == TransactionState.REFUNDED.value
        assert transaction.refunded_at is not None
        assert isinstance(transaction._events[-1], TransactionRefunded)


class TestNoOpTransitions:
    def test_second_success_is_noop(self):
        transaction = _make_transaction()
        transaction.record_charge_succeeded("ch_1")
        completed_at = transaction.completed_at
        transaction._events.clear()

        assert transaction.record_charge_succeeded("ch_2") is False
        assert transaction.provider_charge_ref == "ch_1"
        assert transaction.completed_at == completed_at
        assert transaction._events == []

    def test_refund_of_pending_is_noop(self):
        transaction = _make_transaction()
        assert transaction.record_refund() is False
        assert transaction.state == TransactionState.PENDING.value
        assert transaction.refunded_at is None

    def test_success_after_refund_is_noop(self):
        transaction = _make_transaction()
        transaction.record_charge_succeeded("ch_1")
        transaction.record_refund()
        assert transaction.record_charge_succeeded("ch_1") is False
        assert transaction.state == TransactionState.REFUNDED.value

    def test_failed_is_terminal(self):
        transaction = _make_transaction()
        transaction.record_charge_failed("declined")
        assert transaction.record_charge_succeeded("ch_1") is False
        assert transaction.record_refund() is False
        assert transaction.state == TransactionState.FAILED.value

    def test_failure_after_completion_is_noop(self):
        transaction = _make_transaction()
        transaction.record_charge_succeeded("ch_1")
        assert transaction.record_charge_failed("late failure") is False
        assert transaction.state == TransactionState.COMPLETED.value


class TestCanTransitionTo:
    @pytest.mark.parametrize(
        "target, expected",
        [
            (TransactionState.COMPLETED, True),
            (TransactionState.FAILED, True),
            (TransactionState.REFUNDED, False),
            (TransactionState.PENDING, False),
        ],
    )
    def test_from_pending(self, target, expected):
        assert _make_transaction().can_transition_to(target) is expected


class TestFulfillmentMarkers:
    def test_new_transaction_has_every_step_pending(self):
        assert _make_transaction().pending_steps == list(FulfillmentStep)

    def test_marking_a_step_removes_it_from_pending(self):
        transaction = _make_transaction()
        transaction.mark_step_recorded(FulfillmentStep.ENROLLMENT)
        assert transaction.is_step_recorded(FulfillmentStep.ENROLLMENT)
        assert FulfillmentStep.ENROLLMENT not in transaction.pending_steps
