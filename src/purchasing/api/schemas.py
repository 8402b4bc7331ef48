"""Pydantic request/response schemas for the Purchasing API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Transaction Request Schemas
# ---------------------------------------------------------------------------
class CreateTransactionRequest(BaseModel):
    user_id: str
    course_id: str
    instructor_id: str
    amount: float = Field(gt=0)
    currency: str = "USD"

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "user-001",
                    "course_id": "course-007",
                    "instructor_id": "instructor-003",
                    "amount": 49.99,
                    "currency": "USD",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class TransactionIdResponse(BaseModel):
    transaction_id: str


class TransactionResponse(BaseModel):
    transaction_id: str
    state: str
    amount: float
    currency: str
    user_id: str | None = None
    course_id: str | None = None
    instructor_id: str | None = None
    provider_charge_ref: str | None = None
    failure_reason: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None
    failed_at: datetime | None = None
    refunded_at: datetime | None = None
    pending_steps: list[str] = []


class FulfillmentReportResponse(BaseModel):
    transaction_id: str
    complete: bool
    recorded: list[str] = []
    already_recorded: list[str] = []
    skipped: dict[str, str] = {}
    failed: dict[str, str] = {}


class WebhookReceiptResponse(BaseModel):
    status: str
    event_id: str | None = None
    event_type: str | None = None
    transaction_id: str | None = None
    detail: str | None = None
    fulfillment: dict = {}
