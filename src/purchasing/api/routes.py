"""FastAPI routes for the Purchasing domain — checkout, transactions and provider webhooks."""

import structlog
from fastapi import APIRouter, Header, HTTPException, Request
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from purchasing.api.schemas import (
    CreateTransactionRequest,
    FulfillmentReportResponse,
    TransactionIdResponse,
    TransactionResponse,
    WebhookReceiptResponse,
)
from purchasing.fulfillment.retry import RetryFulfillment
from purchasing.transaction.checkout import CreateTransaction
from purchasing.transaction.lifecycle import load_transaction
from purchasing.webhook.gateway import WebhookGateway
from shared.errors import AuthenticationError, NotFoundError, PersistenceError

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Transaction Router
# ---------------------------------------------------------------------------
transaction_router = APIRouter(prefix="/transactions", tags=["transactions"])


@transaction_router.post("", status_code=201, response_model=TransactionIdResponse)
async def create_transaction(body: CreateTransactionRequest) -> TransactionIdResponse:
    """Open a pending transaction before the provider is asked to charge."""
    command = CreateTransaction(
        user_id=body.user_id,
        course_id=body.course_id,
        instructor_id=body.instructor_id,
        amount=body.amount,
        currency=body.currency,
    )
    try:
        result = current_domain.process(command, asynchronous=False)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc
    return TransactionIdResponse(transaction_id=result)


@transaction_router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(transaction_id: str) -> TransactionResponse:
    try:
        transaction = load_transaction(transaction_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc

    return TransactionResponse(
        transaction_id=str(transaction.id),
        state=transaction.state,
        amount=transaction.amount,
        currency=transaction.currency,
        user_id=transaction.user_id,
        course_id=transaction.course_id,
        instructor_id=transaction.instructor_id,
        provider_charge_ref=transaction.provider_charge_ref,
        failure_reason=transaction.failure_reason,
        created_at=transaction.created_at,
        completed_at=transaction.completed_at,
        failed_at=transaction.failed_at,
        refunded_at=transaction.refunded_at,
        pending_steps=[step.value for step in transaction.pending_steps],
    )


@transaction_router.post("/{transaction_id}/fulfillment/retry", response_model=FulfillmentReportResponse)
async def retry_fulfillment(transaction_id: str) -> FulfillmentReportResponse:
    """Re-run the fulfillment steps a completed transaction has not recorded yet."""
    try:
        report = current_domain.process(RetryFulfillment(transaction_id=transaction_id), asynchronous=False)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc

    return FulfillmentReportResponse(
        transaction_id=report.transaction_id,
        complete=report.complete,
        recorded=report.recorded,
        already_recorded=report.already_recorded,
        skipped=report.skipped,
        failed=report.failed,
    )


# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/payments", response_model=WebhookReceiptResponse)
async def payment_webhook(
    request: Request,
    stripe_signature: str = Header(default=""),
) -> WebhookReceiptResponse:
    """Receive a payment provider notification.

    The body is read raw because the signature covers the exact bytes sent.
    """
    raw_body = await request.body()
    try:
        receipt = WebhookGateway().handle(raw_body, stripe_signature)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=exc.message) from exc
    except PersistenceError as exc:
        logger.error("Webhook not recorded, asking for redelivery", error=exc.message)
        raise HTTPException(status_code=503, detail=exc.message) from exc

    return WebhookReceiptResponse(
        status=receipt.status.value,
        event_id=receipt.event_id,
        event_type=receipt.event_type,
        transaction_id=receipt.transaction_id,
        detail=receipt.detail,
        fulfillment=receipt.fulfillment,
    )
