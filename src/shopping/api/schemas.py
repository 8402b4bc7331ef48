"""Pydantic request/response schemas for the Cart API.

These are external contracts (anti-corruption layer) — separate from the
cart store and its storage adapters.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class CartItemSchema(BaseModel):
    cart_entry_id: str
    course_id: str
    course_stable_id: str
    unit_price: float
    added_at: datetime


class LocalCartItemSchema(BaseModel):
    course_id: str
    course_stable_id: str
    unit_price: float = Field(ge=0)
    added_at: datetime | None = None


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    course_stable_id: str

    model_config = {"json_schema_extra": {"examples": [{"course_stable_id": "crs-python-101"}]}}


class SyncCartRequest(BaseModel):
    items: list[LocalCartItemSchema]


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartResponse(BaseModel):
    user_id: str
    items: list[CartItemSchema]
    total: float


class AddCartItemResponse(BaseModel):
    item: CartItemSchema
    duplicate: bool = False
    total: float


class SyncCartResponse(BaseModel):
    merged: list[str]
    skipped: list[str]
    pending: list[str]


class StatusResponse(BaseModel):
    status: str = "ok"
