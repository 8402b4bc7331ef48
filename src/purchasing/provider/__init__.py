"""Payment provider factory.

Provides get_provider() / set_provider() to swap implementations:
- FakeProvider for development and testing (PAYMENT_PROVIDER=fake, default)
- StripeProvider for production (PAYMENT_PROVIDER=stripe)
"""

import os

from purchasing.provider.fake_adapter import FakeProvider
from purchasing.provider.port import PaymentProvider

_current_provider: PaymentProvider | None = None


def get_provider() -> PaymentProvider:
    """Return the configured payment provider (singleton)."""
    global _current_provider
    if _current_provider is None:
        adapter = os.environ.get("PAYMENT_PROVIDER", "fake")
        if adapter == "fake":
            _current_provider = FakeProvider()
        elif adapter == "stripe":
            from purchasing.provider.stripe_adapter import StripeProvider

            _current_provider = StripeProvider(
                webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET", ""),
                api_key=os.environ.get("STRIPE_SECRET_KEY"),
            )
        else:
            raise ValueError(f"Unknown payment provider: {adapter}")
    return _current_provider


def set_provider(provider: PaymentProvider) -> None:
    """Override the active payment provider (useful for tests)."""
    global _current_provider
    _current_provider = provider


def reset_provider() -> None:
    """Reset to the configured provider."""
    global _current_provider
    _current_provider = None
