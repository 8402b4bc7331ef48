"""Operator retry of incomplete fulfillment.

Re-runs the fulfillment steps a completed transaction has not recorded yet,
typically after an alert about a missing enrollment or payout.
"""

import structlog
from protean import handle
from protean.fields import Identifier

from purchasing.domain import purchasing
from purchasing.fulfillment.orchestrator import FulfillmentOrchestrator
from purchasing.transaction.transaction import Transaction
from shared.errors import PartialFulfillmentError

logger = structlog.get_logger(__name__)


@purchasing.command(part_of="Transaction")
class RetryFulfillment:
    transaction_id = Identifier(required=True)


@purchasing.command_handler(part_of=Transaction)
class RetryFulfillmentHandler:
    @handle(RetryFulfillment)
    def retry_fulfillment(self, command):
        orchestrator = FulfillmentOrchestrator()
        try:
            return orchestrator.fulfill(command.transaction_id)
        except PartialFulfillmentError as exc:
            # Keep what succeeded; the report says what is still missing
            logger.error(
                "Fulfillment retry incomplete",
                transaction_id=exc.transaction_id,
                failed=sorted(exc.failed_steps),
            )
            return exc.report
