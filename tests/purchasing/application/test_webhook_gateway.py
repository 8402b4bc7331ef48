"""Application tests for applying provider notifications through the gateway."""

import json

import pytest
from protean import current_domain
from purchasing.fulfillment.enrollment import Enrollment
from purchasing.fulfillment.orchestrator import FulfillmentOrchestrator
from purchasing.fulfillment.payout import RevenuePayout
from purchasing.provider.fake_adapter import TEST_SIGNATURE, FakeProvider
from purchasing.transaction.transaction import Transaction, TransactionState
from purchasing.webhook.gateway import WebhookGateway, WebhookStatus
from shared.errors import AuthenticationError


def _open_transaction():
    transaction = Transaction.create(
        amount=49.99,
        user_id="user-1",
        course_id="course-7",
        instructor_id="instructor-3",
    )
    current_domain.repository_for(Transaction).add(transaction)
    return str(transaction.id)


def _body(event_type, transaction_id=None, event_id="evt_001", obj=None):
    obj = dict(obj or {"id": "pi_001", "object": "payment_intent", "latest_charge": "ch_001"})
    obj["metadata"] = {"purchaseTransactionId": transaction_id} if transaction_id else {}
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode()


def _count(aggregate):
    return len(current_domain.repository_for(aggregate)._dao.query.all().items)


def _state(transaction_id):
    return current_domain.repository_for(Transaction).get(transaction_id).state


@pytest.fixture()
def gateway():
    return WebhookGateway(provider=FakeProvider(), orchestrator=FulfillmentOrchestrator(fee_percent=10))


class TestAuthentication:
    def test_missing_signature(self, gateway):
        with pytest.raises(AuthenticationError):
            gateway.handle(_body("payment_intent.succeeded", "tx"), None)

    def test_missing_body(self, gateway):
        with pytest.raises(AuthenticationError):
            gateway.handle(b"", TEST_SIGNATURE)

    def test_bad_signature(self, gateway):
        with pytest.raises(AuthenticationError):
            gateway.handle(_body("payment_intent.succeeded", "tx"), "forged")


class TestChargeSucceeded:
    def test_completes_and_fulfills(self, gateway):
        transaction_id = _open_transaction()
        receipt = gateway.handle(_body("payment_intent.succeeded", transaction_id), TEST_SIGNATURE)

        assert receipt.status is WebhookStatus.PROCESSED
        assert receipt.transaction_id == transaction_id
        assert receipt.fulfillment["complete"] is True
        transaction = current_domain.repository_for(Transaction).get(transaction_id)
        assert transaction.state == TransactionState.COMPLETED.value
        assert transaction.provider_charge_ref == "ch_001"

    def test_replayed_delivery_fulfills_once(self, gateway):
        transaction_id = _open_transaction()
        body = _body("payment_intent.succeeded", transaction_id)

        receipts = [gateway.handle(body, TEST_SIGNATURE) for _ in range(3)]

        assert [r.status for r in receipts] == [WebhookStatus.PROCESSED, WebhookStatus.IGNORED, WebhookStatus.IGNORED]
        assert _count(Enrollment) == 1
        assert _count(RevenuePayout) == 1
        payout = current_domain.repository_for(RevenuePayout)._dao.query.all().items[0]
        assert payout.amount == pytest.approx(44.991)

    def test_success_after_refund_does_not_reopen(self, gateway):
        transaction_id = _open_transaction()
        gateway.handle(_body("payment_intent.succeeded", transaction_id), TEST_SIGNATURE)
        gateway.handle(
            _body("charge.refunded", transaction_id, obj={"id": "ch_001", "object": "charge"}),
            TEST_SIGNATURE,
        )

        receipt = gateway.handle(_body("payment_intent.succeeded", transaction_id), TEST_SIGNATURE)

        assert receipt.status is WebhookStatus.IGNORED
        assert _state(transaction_id) == TransactionState.REFUNDED.value
        assert _count(Enrollment) == 1

    def test_fulfillment_failure_still_acknowledged(self, gateway, monkeypatch):
        def broken_payout(**kwargs):
            raise RuntimeError("payout store unavailable")

        monkeypatch.setattr("purchasing.fulfillment.orchestrator.create_payout", broken_payout)
        transaction_id = _open_transaction()

        receipt = gateway.handle(_body("payment_intent.succeeded", transaction_id), TEST_SIGNATURE)

        assert receipt.status is WebhookStatus.PROCESSED
        assert receipt.fulfillment["complete"] is False
        assert "payout" in receipt.fulfillment["failed"]
        assert _state(transaction_id) == TransactionState.COMPLETED.value
        assert _count(Enrollment) == 1


class TestChargeFailed:
    def test_marks_transaction_failed(self, gateway):
        transaction_id = _open_transaction()
        obj = {"id": "pi_001", "last_payment_error": {"message": "Your card was declined."}}

        receipt = gateway.handle(_body("payment_intent.payment_failed", transaction_id, obj=obj), TEST_SIGNATURE)

        assert receipt.status is WebhookStatus.PROCESSED
        transaction = current_domain.repository_for(Transaction).get(transaction_id)
        assert transaction.state == TransactionState.FAILED.value
        assert transaction.failure_reason == "Your card was declined."
        assert _count(Enrollment) == 0


class TestChargeRefunded:
    def test_refund_of_pending_is_ignored(self, gateway):
        transaction_id = _open_transaction()
        receipt = gateway.handle(
            _body("charge.refunded", transaction_id, obj={"id": "ch_001", "object": "charge"}),
            TEST_SIGNATURE,
        )

        assert receipt.status is WebhookStatus.IGNORED
        transaction = current_domain.repository_for(Transaction).get(transaction_id)
        assert transaction.state == TransactionState.PENDING.value
        assert transaction.refunded_at is None
        assert _count(Enrollment) == 0

    def test_refund_keeps_enrollment(self, gateway):
        transaction_id = _open_transaction()
        gateway.handle(_body("payment_intent.succeeded", transaction_id), TEST_SIGNATURE)
        receipt = gateway.handle(
            _body("charge.refunded", transaction_id, obj={"id": "ch_001", "object": "charge"}),
            TEST_SIGNATURE,
        )

        assert receipt.status is WebhookStatus.PROCESSED
        assert _state(transaction_id) == TransactionState.REFUNDED.value
        assert _count(Enrollment) == 1


class TestUnprocessable:
    def test_missing_transaction_id(self, gateway):
        receipt = gateway.handle(_body("payment_intent.succeeded"), TEST_SIGNATURE)
        assert receipt.status is WebhookStatus.UNPROCESSABLE

    def test_unknown_event_type(self, gateway):
        transaction_id = _open_transaction()
        receipt = gateway.handle(_body("customer.created", transaction_id), TEST_SIGNATURE)
        assert receipt.status is WebhookStatus.UNPROCESSABLE
        assert _state(transaction_id) == TransactionState.PENDING.value

    def test_malformed_body(self, gateway):
        receipt = gateway.handle(b"{broken", TEST_SIGNATURE)
        assert receipt.status is WebhookStatus.UNPROCESSABLE

    def test_unknown_transaction(self, gateway):
        receipt = gateway.handle(_body("payment_intent.succeeded", "no-such-transaction"), TEST_SIGNATURE)
        assert receipt.status is WebhookStatus.NOT_FOUND
