"""Stripe payment provider adapter.

Verifies the ``Stripe-Signature`` header with the endpoint's signing secret
through the stripe SDK. Refund notifications arrive as ``charge`` objects;
Stripe copies the payment intent metadata onto its charges, so the
transaction id is read from the charge as well.
"""

import json

import stripe

from purchasing.provider.port import PaymentProvider, ProviderEvent, event_from_payload
from shared.errors import AuthenticationError, UnprocessableEvent


class StripeProvider(PaymentProvider):
    name = "stripe"

    def __init__(self, webhook_secret: str, api_key: str | None = None) -> None:
        if not webhook_secret:
            raise ValueError("Stripe webhook signing secret is not configured")
        self.webhook_secret = webhook_secret
        self.api_key = api_key

    def construct_event(self, payload: bytes, signature: str) -> ProviderEvent:
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret, api_key=self.api_key)
        except stripe.SignatureVerificationError as exc:
            raise AuthenticationError("Invalid webhook signature") from exc
        except ValueError as exc:
            raise UnprocessableEvent("Webhook payload is not valid JSON") from exc

        return event_from_payload(json.loads(payload))
