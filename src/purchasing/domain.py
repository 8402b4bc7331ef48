"""Purchasing bounded context — transactions, provider webhooks and fulfillment.

Tracks each purchase attempt through its state machine, reacts to payment
provider notifications, and grants course access and instructor revenue
exactly once per completed transaction.
"""

import structlog
from protean.domain import Domain

purchasing = Domain(name="purchasing")

logger = structlog.get_logger(__name__)
