"""FastAPI routes for the account cart.

The signed-in user is identified by the ``X-User-Id`` header set by the
authentication layer in front of this service.
"""

from datetime import UTC, datetime
from uuid import uuid4

import structlog
from fastapi import APIRouter, Header, HTTPException

from shared.errors import DuplicateItem, PersistenceError, SyncInProgress
from shopping.api.schemas import (
    AddCartItemRequest,
    AddCartItemResponse,
    CartItemSchema,
    CartResponse,
    StatusResponse,
    SyncCartRequest,
    SyncCartResponse,
)
from shopping.cart.item import CartItem
from shopping.cart.store import CartStore
from shopping.cart.sync import CartSyncEngine
from shopping.catalog import get_catalog
from shopping.storage.local_adapter import LocalCartStorage
from shopping.storage.remote_adapter import RemoteCartStorage

logger = structlog.get_logger(__name__)

cart_router = APIRouter(prefix="/cart", tags=["cart"])

# Engines for merges still running, keyed by user
_sync_engines: dict[str, CartSyncEngine] = {}


def _require_user(x_user_id: str) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Sign in to use the account cart")
    return x_user_id


def _item_schema(item: CartItem) -> CartItemSchema:
    return CartItemSchema(
        cart_entry_id=item.cart_entry_id,
        course_id=item.course_id,
        course_stable_id=item.course_stable_id,
        unit_price=item.unit_price,
        added_at=item.added_at,
    )


def _load_store(user_id: str) -> CartStore:
    try:
        return CartStore.load(RemoteCartStorage(user_id))
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=exc.message) from exc


@cart_router.get("", response_model=CartResponse)
async def get_cart(x_user_id: str = Header(default="")) -> CartResponse:
    user_id = _require_user(x_user_id)
    store = _load_store(user_id)
    return CartResponse(user_id=user_id, items=[_item_schema(i) for i in store.items], total=store.total())


@cart_router.post("/items", response_model=AddCartItemResponse)
async def add_cart_item(body: AddCartItemRequest, x_user_id: str = Header(default="")) -> AddCartItemResponse:
    user_id = _require_user(x_user_id)
    listing = get_catalog().lookup(body.course_stable_id)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Course {body.course_stable_id} not found")

    store = _load_store(user_id)
    try:
        item = store.add(listing, strict=True)
        duplicate = False
    except DuplicateItem:
        item = next(i for i in store.items if i.course_stable_id == listing.stable_id)
        duplicate = True
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=exc.message) from exc

    return AddCartItemResponse(item=_item_schema(item), duplicate=duplicate, total=store.total())


@cart_router.delete("/items/{course_stable_id}", response_model=StatusResponse)
async def remove_cart_item(course_stable_id: str, x_user_id: str = Header(default="")) -> StatusResponse:
    user_id = _require_user(x_user_id)
    store = _load_store(user_id)
    try:
        store.remove(course_stable_id)
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=exc.message) from exc
    return StatusResponse()


@cart_router.delete("", response_model=StatusResponse)
async def clear_cart(x_user_id: str = Header(default="")) -> StatusResponse:
    user_id = _require_user(x_user_id)
    store = _load_store(user_id)
    try:
        store.clear()
    except PersistenceError as exc:
        raise HTTPException(status_code=503, detail=exc.message) from exc
    return StatusResponse()


@cart_router.post("/sync", response_model=SyncCartResponse)
async def sync_cart(body: SyncCartRequest, x_user_id: str = Header(default="")) -> SyncCartResponse:
    """Merge a guest cart posted by the client into the account cart."""
    user_id = _require_user(x_user_id)

    local = LocalCartStorage()
    for entry in body.items:
        local.add(
            CartItem(
                cart_entry_id=uuid4().hex,
                course_id=entry.course_id,
                course_stable_id=entry.course_stable_id,
                unit_price=entry.unit_price,
                added_at=entry.added_at or datetime.now(UTC),
            )
        )

    engine = _sync_engines.setdefault(user_id, CartSyncEngine())
    try:
        report = engine.sync(local, RemoteCartStorage(user_id))
    except SyncInProgress as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    except PersistenceError as exc:
        _sync_engines.pop(user_id, None)
        raise HTTPException(status_code=503, detail=exc.message) from exc
    _sync_engines.pop(user_id, None)

    if report.pending:
        logger.warning("Posted guest cart only partially merged", user_id=user_id, pending=report.pending)
    return SyncCartResponse(merged=report.merged, skipped=report.skipped, pending=report.pending)
