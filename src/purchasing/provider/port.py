"""Payment provider port (abstract interface).

The webhook gateway only needs one thing from a provider: turn a raw signed
notification into a ``ProviderEvent``, or refuse it. Adapters raise
``AuthenticationError`` for a bad signature and ``UnprocessableEvent`` for a
correctly signed body that is not a readable event.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from shared.errors import UnprocessableEvent


class ProviderEventKind(Enum):
    CHARGE_SUCCEEDED = "payment_intent.succeeded"
    CHARGE_FAILED = "payment_intent.payment_failed"
    CHARGE_REFUNDED = "charge.refunded"

    @classmethod
    def from_type(cls, event_type: str) -> "ProviderEventKind":
        try:
            return cls(event_type)
        except ValueError as exc:
            raise UnprocessableEvent(f"Unhandled event type: {event_type}", event_type=event_type) from exc


# Keys under which checkout stores the transaction id in charge metadata
TRANSACTION_ID_KEYS = ("transaction_id", "purchaseTransactionId", "purchaseTransactionDocumentId")


@dataclass(frozen=True)
class ProviderEvent:
    """A verified provider notification, reduced to what fulfillment needs."""

    event_id: str
    type: str
    charge_ref: str | None = None
    metadata: dict = field(default_factory=dict)
    failure_reason: str | None = None

    @property
    def kind(self) -> ProviderEventKind:
        return ProviderEventKind.from_type(self.type)

    @property
    def transaction_id(self) -> str | None:
        return next((str(self.metadata[k]) for k in TRANSACTION_ID_KEYS if self.metadata.get(k)), None)


def event_from_payload(payload: dict) -> ProviderEvent:
    """Read the provider's ``{id, type, data: {object: {...}}}`` envelope."""
    if not isinstance(payload, dict) or not payload.get("type"):
        raise UnprocessableEvent("Webhook payload has no event type")

    obj = (payload.get("data") or {}).get("object") or {}
    if obj.get("object") == "charge":
        charge_ref = obj.get("id")
    else:
        charge_ref = obj.get("latest_charge") or obj.get("id")

    return ProviderEvent(
        event_id=str(payload.get("id") or ""),
        type=str(payload["type"]),
        charge_ref=charge_ref,
        metadata=dict(obj.get("metadata") or {}),
        failure_reason=(obj.get("last_payment_error") or {}).get("message"),
    )


class PaymentProvider(ABC):
    """Abstract payment provider interface."""

    name: str = "provider"

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> ProviderEvent:
        """Verify a webhook signature and parse the notification."""
        ...
