"""Cart storage port (abstract interface).

Both the device-bound guest cart and the account-bound remote cart implement
this contract, so the cart store never knows which backend is active.
Implementations raise ``PersistenceError`` when a write does not stick.
"""

from abc import ABC, abstractmethod

from shopping.cart.item import CartItem


class CartStorage(ABC):
    """Abstract cart persistence interface."""

    @abstractmethod
    def add(self, item: CartItem) -> CartItem:
        """Persist an item and return the stored version.

        Adding a course that is already stored returns the stored item
        unchanged.
        """
        ...

    @abstractmethod
    def remove(self, course_stable_id: str) -> None:
        """Delete the item for a course. No-op if absent."""
        ...

    @abstractmethod
    def list_items(self) -> list[CartItem]:
        """Return all stored items in the order they were added."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Delete every stored item."""
        ...
