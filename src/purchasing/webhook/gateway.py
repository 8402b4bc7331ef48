"""Webhook gateway — applies verified payment notifications to transactions.

Provider notifications are delivered at least once, concurrently and in any
order. The gateway never locks: the transaction state machine decides
whether a notification changes anything, and only an applied
``pending → completed`` triggers fulfillment.

Outcome of ``handle``:

    AuthenticationError  raised   (route answers 401)
    PersistenceError     raised   (route answers 503, provider redelivers)
    everything else      a WebhookReceipt (route answers 200)
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from purchasing.fulfillment.orchestrator import FulfillmentOrchestrator
from purchasing.provider import get_provider
from purchasing.provider.port import PaymentProvider, ProviderEvent, ProviderEventKind
from purchasing.transaction.lifecycle import RecordChargeFailed, RecordChargeRefunded, RecordChargeSucceeded
from shared.errors import (
    AuthenticationError,
    NotFoundError,
    PartialFulfillmentError,
    PersistenceError,
    UnprocessableEvent,
)

logger = structlog.get_logger(__name__)


class WebhookStatus(Enum):
    PROCESSED = "processed"
    IGNORED = "ignored"
    UNPROCESSABLE = "unprocessable"
    NOT_FOUND = "not_found"


@dataclass
class WebhookReceipt:
    status: WebhookStatus
    event_id: str | None = None
    event_type: str | None = None
    transaction_id: str | None = None
    detail: str | None = None
    fulfillment: dict = field(default_factory=dict)


class WebhookGateway:
    def __init__(
        self,
        provider: PaymentProvider | None = None,
        orchestrator: FulfillmentOrchestrator | None = None,
    ) -> None:
        self._provider = provider
        self._orchestrator = orchestrator
        self._handlers: dict[ProviderEventKind, Callable[[ProviderEvent, WebhookReceipt], WebhookReceipt]] = {
            ProviderEventKind.CHARGE_SUCCEEDED: self._charge_succeeded,
            ProviderEventKind.CHARGE_FAILED: self._charge_failed,
            ProviderEventKind.CHARGE_REFUNDED: self._charge_refunded,
        }

    @property
    def provider(self) -> PaymentProvider:
        return self._provider or get_provider()

    @property
    def orchestrator(self) -> FulfillmentOrchestrator:
        if self._orchestrator is None:
            self._orchestrator = FulfillmentOrchestrator()
        return self._orchestrator

    def handle(self, raw_body: bytes | None, signature: str | None) -> WebhookReceipt:
        if not raw_body or not signature:
            logger.warning("Webhook rejected", reason="missing body or signature")
            raise AuthenticationError("Missing webhook body or signature")

        try:
            event = self.provider.construct_event(raw_body, signature)
        except AuthenticationError:
            logger.warning("Webhook rejected", reason="signature verification failed")
            raise
        except UnprocessableEvent as exc:
            logger.warning("Webhook payload unreadable", error=exc.message)
            return WebhookReceipt(status=WebhookStatus.UNPROCESSABLE, detail=exc.message)

        log = logger.bind(event_id=event.event_id, event_type=event.type)
        receipt = WebhookReceipt(
            status=WebhookStatus.UNPROCESSABLE,
            event_id=event.event_id,
            event_type=event.type,
            transaction_id=event.transaction_id,
        )

        try:
            kind = event.kind
            if not event.transaction_id:
                raise UnprocessableEvent("Event metadata carries no transaction id", event_id=event.event_id)
            handler = self._handlers[kind]
            return handler(event, receipt)
        except UnprocessableEvent as exc:
            log.warning("Webhook event not applicable", error=exc.message)
            receipt.status = WebhookStatus.UNPROCESSABLE
            receipt.detail = exc.message
        except NotFoundError as exc:
            log.error("Webhook event for unknown transaction", transaction_id=event.transaction_id)
            receipt.status = WebhookStatus.NOT_FOUND
            receipt.detail = exc.message
        return receipt

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------
    def _apply(self, command) -> bool:
        try:
            return bool(current_domain.process(command, asynchronous=False))
        except (NotFoundError, PersistenceError):
            raise
        except ValidationError as exc:
            raise UnprocessableEvent(f"Invalid transition request: {exc.messages}") from exc
        except Exception as exc:
            raise PersistenceError(
                f"Could not record transaction {command.transaction_id}: {exc}",
                transaction_id=str(command.transaction_id),
            ) from exc

    def _settle(self, receipt: WebhookReceipt, applied: bool) -> WebhookReceipt:
        receipt.status = WebhookStatus.PROCESSED if applied else WebhookStatus.IGNORED
        logger.info(
            "Webhook event applied" if applied else "Webhook event ignored",
            event_id=receipt.event_id,
            event_type=receipt.event_type,
            transaction_id=receipt.transaction_id,
        )
        return receipt

    def _charge_succeeded(self, event: ProviderEvent, receipt: WebhookReceipt) -> WebhookReceipt:
        applied = self._apply(
            RecordChargeSucceeded(
                transaction_id=event.transaction_id,
                provider_charge_ref=event.charge_ref,
            )
        )
        self._settle(receipt, applied)
        if applied:
            receipt.fulfillment = self._fulfill(event)
        return receipt

    def _charge_failed(self, event: ProviderEvent, receipt: WebhookReceipt) -> WebhookReceipt:
        applied = self._apply(
            RecordChargeFailed(
                transaction_id=event.transaction_id,
                failure_reason=event.failure_reason or "Payment failed",
            )
        )
        return self._settle(receipt, applied)

    def _charge_refunded(self, event: ProviderEvent, receipt: WebhookReceipt) -> WebhookReceipt:
        applied = self._apply(RecordChargeRefunded(transaction_id=event.transaction_id))
        return self._settle(receipt, applied)

    def _fulfill(self, event: ProviderEvent) -> dict:
        # The transaction is durably completed here; nothing below may fail the delivery
        try:
            report = self.orchestrator.fulfill(event.transaction_id, metadata=event.metadata)
        except PartialFulfillmentError as exc:
            logger.error(
                "Purchase fulfilled partially",
                transaction_id=exc.transaction_id,
                failed=sorted(exc.failed_steps),
            )
            report = exc.report
        except Exception:
            logger.exception("Fulfillment aborted", transaction_id=event.transaction_id)
            return {"complete": False}

        return {
            "complete": report.complete,
            "recorded": list(report.recorded),
            "skipped": dict(report.skipped),
            "failed": dict(report.failed),
        }
