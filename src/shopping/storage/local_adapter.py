"""Device-bound cart storage for guests.

The whole cart is serialised as one JSON document under a fixed key of a
device key/value store (anything shaped like a ``MutableMapping[str, str]``,
a plain dict by default). There is no identity: clearing the device store
loses the cart.
"""

import json
from collections.abc import MutableMapping

import structlog

from shared.errors import PersistenceError
from shopping.cart.item import CartItem
from shopping.storage.port import CartStorage

logger = structlog.get_logger(__name__)

STORAGE_KEY = "course-cart-items"


class LocalCartStorage(CartStorage):
    def __init__(self, device: MutableMapping[str, str] | None = None) -> None:
        self.device = device if device is not None else {}

    def _read(self) -> list[CartItem]:
        raw = self.device.get(STORAGE_KEY)
        if not raw:
            return []
        try:
            return [CartItem.from_dict(entry) for entry in json.loads(raw)]
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding unreadable local cart", error=str(exc))
            return []

    def _write(self, items: list[CartItem]) -> None:
        try:
            self.device[STORAGE_KEY] = json.dumps([item.to_dict() for item in items])
        except Exception as exc:
            logger.error("Failed to persist local cart", error=str(exc), item_count=len(items))
            raise PersistenceError("Local cart could not be saved") from exc

    def add(self, item: CartItem) -> CartItem:
        items = self._read()
        existing = next((i for i in items if i.course_stable_id == item.course_stable_id), None)
        if existing:
            return existing
        items.append(item)
        self._write(items)
        return item

    def remove(self, course_stable_id: str) -> None:
        items = self._read()
        remaining = [i for i in items if i.course_stable_id != course_stable_id]
        if len(remaining) != len(items):
            self._write(remaining)

    def list_items(self) -> list[CartItem]:
        return self._read()

    def clear(self) -> None:
        try:
            self.device.pop(STORAGE_KEY, None)
        except Exception as exc:
            raise PersistenceError("Local cart could not be cleared") from exc

    def is_empty(self) -> bool:
        return not self._read()
