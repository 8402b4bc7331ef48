"""Fake payment provider for development and testing.

Accepts the fixed signature ``test-signature`` and reads the same event
envelope the real provider sends, so tests can post realistic payloads
without signing secrets.
"""

import json

from purchasing.provider.port import PaymentProvider, ProviderEvent, event_from_payload
from shared.errors import AuthenticationError, UnprocessableEvent

TEST_SIGNATURE = "test-signature"


class FakeProvider(PaymentProvider):
    name = "fake"

    def __init__(self) -> None:
        self.received: list[ProviderEvent] = []

    def construct_event(self, payload: bytes, signature: str) -> ProviderEvent:
        if signature != TEST_SIGNATURE:
            raise AuthenticationError("Invalid webhook signature")
        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise UnprocessableEvent("Webhook payload is not valid JSON") from exc

        event = event_from_payload(data)
        self.received.append(event)
        return event
