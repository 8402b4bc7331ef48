"""Checkout — command and handler that open a pending transaction.

The checkout flow records the purchase attempt before the provider is asked
to charge; the transaction id travels to the provider in the charge metadata
and comes back on every webhook notification.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from purchasing.domain import purchasing
from purchasing.transaction.transaction import Transaction

logger = structlog.get_logger(__name__)

MAX_TRANSACTION_AMOUNT = 10000.0


@purchasing.command(part_of="Transaction")
class CreateTransaction:
    user_id = Identifier(required=True)
    course_id = Identifier(required=True)
    instructor_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(max_length=3, default="USD")


@purchasing.command_handler(part_of=Transaction)
class CheckoutHandler:
    @handle(CreateTransaction)
    def create_transaction(self, command):
        if command.amount > MAX_TRANSACTION_AMOUNT:
            raise ValidationError({"amount": [f"Amount exceeds maximum allowed ({MAX_TRANSACTION_AMOUNT:g})"]})

        transaction = Transaction.create(
            amount=command.amount,
            currency=command.currency or "USD",
            user_id=command.user_id,
            course_id=command.course_id,
            instructor_id=command.instructor_id,
        )
        current_domain.repository_for(Transaction).add(transaction)

        logger.info(
            "Transaction opened",
            transaction_id=str(transaction.id),
            course_id=str(command.course_id),
            amount=command.amount,
        )
        return str(transaction.id)
