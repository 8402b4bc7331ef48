"""Transaction lifecycle — commands applying provider outcomes to a transaction.

Each handler returns True when the transition was applied and False when the
notification was a no-op re-entry (duplicate, out of order, or after a
terminal state).
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from purchasing.domain import purchasing
from purchasing.transaction.transaction import Transaction
from shared.errors import NotFoundError

logger = structlog.get_logger(__name__)


@purchasing.command(part_of="Transaction")
class RecordChargeSucceeded:
    transaction_id = Identifier(required=True)
    provider_charge_ref = String(max_length=255)


@purchasing.command(part_of="Transaction")
class RecordChargeFailed:
    transaction_id = Identifier(required=True)
    failure_reason = String(max_length=500)


@purchasing.command(part_of="Transaction")
class RecordChargeRefunded:
    transaction_id = Identifier(required=True)


def load_transaction(transaction_id) -> Transaction:
    try:
        return current_domain.repository_for(Transaction).get(str(transaction_id))
    except ObjectNotFoundError as exc:
        raise NotFoundError(f"Transaction {transaction_id} not found", transaction_id=str(transaction_id)) from exc


@purchasing.command_handler(part_of=Transaction)
class TransactionLifecycleHandler:
    @handle(RecordChargeSucceeded)
    def record_charge_succeeded(self, command):
        transaction = load_transaction(command.transaction_id)
        applied = transaction.record_charge_succeeded(command.provider_charge_ref)
        return self._save(transaction, applied, "completed")

    @handle(RecordChargeFailed)
    def record_charge_failed(self, command):
        transaction = load_transaction(command.transaction_id)
        applied = transaction.record_charge_failed(command.failure_reason)
        return self._save(transaction, applied, "failed")

    @handle(RecordChargeRefunded)
    def record_charge_refunded(self, command):
        transaction = load_transaction(command.transaction_id)
        applied = transaction.record_refund()
        return self._save(transaction, applied, "refunded")

    def _save(self, transaction, applied, target):
        if not applied:
            logger.info(
                "Transition ignored",
                transaction_id=str(transaction.id),
                state=transaction.state,
                target=target,
            )
            return False

        current_domain.repository_for(Transaction).add(transaction)
        logger.info("Transaction transitioned", transaction_id=str(transaction.id), state=transaction.state)
        return True
