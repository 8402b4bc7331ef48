"""Shared BDD fixtures and step definitions for the Purchasing domain."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from purchasing.fulfillment.enrollment import Enrollment
from purchasing.fulfillment.payout import RevenuePayout
from purchasing.transaction.transaction import Transaction


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def fee_percent():
    return {"value": 10.0}


@pytest.fixture()
def receipts():
    return []


def _reload(transaction):
    return current_domain.repository_for(Transaction).get(str(transaction.id))


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("the platform fee is {fee:f} percent"))
def _platform_fee(fee_percent, fee):
    fee_percent["value"] = fee


@given(
    parsers.cfparse(
        'a pending transaction of {amount:f} for course "{course_id}" by instructor "{instructor_id}" bought by "{user_id}"'
    ),
    target_fixture="transaction",
)
def _pending_transaction(amount, course_id, instructor_id, user_id):
    transaction = Transaction.create(
        amount=amount,
        user_id=user_id,
        course_id=course_id,
        instructor_id=instructor_id,
    )
    current_domain.repository_for(Transaction).add(transaction)
    return transaction


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the transaction is "{state}"'))
def _transaction_state(transaction, state):
    assert _reload(transaction).state == state


@then("the transaction has no refund time")
def _no_refund_time(transaction):
    assert _reload(transaction).refunded_at is None


@then(parsers.cfparse('there is {count:d} enrollment for "{user_id}" in course "{course_id}"'))
def _enrollment_count(count, user_id, course_id):
    matches = (
        current_domain.repository_for(Enrollment)._dao.query.filter(user_id=user_id, course_id=course_id).all().items
    )
    assert len(matches) == count


@then(parsers.cfparse('there is {count:d} payout for instructor "{instructor_id}" of {amount:f}'))
def _payout(count, instructor_id, amount):
    payouts = current_domain.repository_for(RevenuePayout)._dao.query.filter(instructor_id=instructor_id).all().items
    assert len(payouts) == count
    assert payouts[0].amount == pytest.approx(amount)


@then("there are no payouts")
def _no_payouts():
    assert current_domain.repository_for(RevenuePayout)._dao.query.all().items == []
