"""Revenue payout aggregate — an instructor's share of one completed sale.

Payouts are created ``pending`` by fulfillment and disbursed later by a
separate payout process. One payout exists per source transaction.
"""

import os
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from purchasing.domain import purchasing

DEFAULT_PLATFORM_FEE_PERCENT = 10.0


class PayoutState(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


@purchasing.aggregate
class RevenuePayout:
    instructor_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default="USD")
    state = String(choices=PayoutState, default=PayoutState.PENDING.value)
    payout_method = String(max_length=50, default="stripe")
    source_transaction_id = Identifier(required=True)
    note = String(max_length=500)
    created_at = DateTime()


def platform_fee_percent() -> float:
    """Platform fee from ``PLATFORM_FEE_PERCENT`` (default 10)."""
    raw = os.environ.get("PLATFORM_FEE_PERCENT", str(DEFAULT_PLATFORM_FEE_PERCENT))
    fee = float(raw)
    if not 0 <= fee <= 100:
        raise ValueError(f"PLATFORM_FEE_PERCENT must be between 0 and 100, got {raw}")
    return fee


def instructor_share(amount: float, fee_percent: float) -> float:
    return amount * (1 - fee_percent / 100)


def find_payout(source_transaction_id) -> RevenuePayout | None:
    repo = current_domain.repository_for(RevenuePayout)
    matches = repo._dao.query.filter(source_transaction_id=str(source_transaction_id)).all().items
    return matches[0] if matches else None


def create_payout(
    instructor_id,
    amount: float,
    currency: str,
    source_transaction_id,
    payout_method: str = "stripe",
    note: str | None = None,
) -> RevenuePayout:
    if amount < 0:
        raise ValidationError({"amount": ["Payout amount cannot be negative"]})

    payout = RevenuePayout(
        instructor_id=instructor_id,
        amount=amount,
        currency=currency,
        state=PayoutState.PENDING.value,
        payout_method=payout_method,
        source_transaction_id=source_transaction_id,
        note=note,
        created_at=datetime.now(UTC),
    )
    current_domain.repository_for(RevenuePayout).add(payout)
    return payout
