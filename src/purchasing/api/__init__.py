"""Purchasing domain API package."""

from purchasing.api.routes import transaction_router, webhook_router

__all__ = ["transaction_router", "webhook_router"]
