"""Cart store — the authoritative in-memory cart for one session.

The store is an explicit object handed to whoever drives the cart; it never
exposes its internal list. Every mutation is applied in memory, written
through the active ``CartStorage``, and undone in memory if the write fails.
A failed clear may have removed some stored items, so memory is reloaded
from storage instead.

Courses are binary-ownable, so there are no quantities: a cart holds at most
one item per ``course_stable_id``. The price of an item is captured when it
is added and never re-read from the catalog.
"""

import structlog

from shared.errors import DuplicateItem
from shopping.cart.item import CartItem
from shopping.storage.port import CartStorage

logger = structlog.get_logger(__name__)


class CartStore:
    def __init__(self, storage: CartStorage, items: list[CartItem] | None = None) -> None:
        self.storage = storage
        self._items: list[CartItem] = list(items or [])

    @classmethod
    def load(cls, storage: CartStorage) -> "CartStore":
        """Restore the in-memory view from a storage backend."""
        return cls(storage, storage.list_items())

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def items(self) -> tuple[CartItem, ...]:
        return tuple(self._items)

    def contains(self, course_stable_id: str) -> bool:
        return self._find(course_stable_id) is not None

    def total(self) -> float:
        return sum((item.unit_price for item in self._items), 0.0)

    def __len__(self) -> int:
        return len(self._items)

    def _find(self, course_stable_id: str) -> CartItem | None:
        return next((i for i in self._items if i.course_stable_id == str(course_stable_id)), None)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add(self, course, strict: bool = False) -> CartItem:
        """Add a course at its current catalog price.

        A course already in the cart is left untouched. By default that is
        logged as a warning and the existing item is returned; with
        ``strict=True`` it raises ``DuplicateItem`` instead.
        """
        existing = self._find(course.stable_id)
        if existing:
            logger.warning("Course already in cart", course_stable_id=existing.course_stable_id)
            if strict:
                raise DuplicateItem(existing.course_stable_id)
            return existing

        item = CartItem.capture(course)
        self._items.append(item)
        try:
            stored = self.storage.add(item)
        except Exception:
            self._items.remove(item)
            raise

        # Backends may assign their own entry id
        self._items[self._items.index(item)] = stored
        logger.info("Course added to cart", course_stable_id=stored.course_stable_id, unit_price=stored.unit_price)
        return stored

    def remove(self, course_stable_id: str) -> None:
        item = self._find(course_stable_id)
        if item is None:
            return

        position = self._items.index(item)
        self._items.pop(position)
        try:
            self.storage.remove(item.course_stable_id)
        except Exception:
            self._items.insert(position, item)
            raise
        logger.info("Course removed from cart", course_stable_id=item.course_stable_id)

    def clear(self) -> None:
        snapshot = list(self._items)
        self._items.clear()
        try:
            self.storage.clear()
        except Exception:
            self._reload(fallback=snapshot)
            raise
        logger.info("Cart cleared", removed=len(snapshot))

    def _reload(self, fallback: list[CartItem]) -> None:
        """Resync memory with storage after a write that may have partly applied."""
        try:
            self._items[:] = self.storage.list_items()
        except Exception as exc:
            logger.error("Cart could not be reloaded after failed write", error=str(exc))
            self._items[:] = fallback
