"""Domain events for the Transaction aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from purchasing.domain import purchasing


@purchasing.event(part_of="Transaction")
class TransactionCreated:
    """Checkout opened a purchase attempt, before any charge."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    user_id = Identifier()
    course_id = Identifier()
    instructor_id = Identifier()
    amount = Float(required=True)
    currency = String(required=True)
    created_at = DateTime(required=True)


@purchasing.event(part_of="Transaction")
class TransactionCompleted:
    """The provider confirmed the charge. Fulfillment follows."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    user_id = Identifier()
    course_id = Identifier()
    instructor_id = Identifier()
    amount = Float(required=True)
    currency = String(required=True)
    provider_charge_ref = String()
    completed_at = DateTime(required=True)


@purchasing.event(part_of="Transaction")
class TransactionFailed:
    __version__ = 1

    transaction_id = Identifier(required=True)
    reason = String()
    failed_at = DateTime(required=True)


@purchasing.event(part_of="Transaction")
class TransactionRefunded:
    """The charge was refunded. Course access is left to administrators."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    amount = Float(required=True)
    refunded_at = DateTime(required=True)
