"""Course catalog port (abstract interface).

The cart reads the catalog for display and for the price to capture when a
course is first added. It never uses the catalog to re-price an item that is
already in a cart.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CourseListing:
    """Current catalog view of a purchasable course."""

    course_id: str
    stable_id: str
    title: str
    price: float


class CourseCatalog(ABC):
    """Abstract course catalog interface."""

    @abstractmethod
    def lookup(self, stable_id: str) -> CourseListing | None:
        """Return the current listing for a course, or None if unknown."""
        ...
