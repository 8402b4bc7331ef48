"""One course in a cart, priced at the moment it was added."""

from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from uuid import uuid4


@dataclass(frozen=True)
class CartItem:
    cart_entry_id: str
    course_id: str
    course_stable_id: str
    unit_price: float
    added_at: datetime

    @classmethod
    def capture(cls, listing, added_at: datetime | None = None) -> "CartItem":
        """Build an item from a catalog listing, freezing its current price."""
        return cls(
            cart_entry_id=uuid4().hex,
            course_id=str(listing.course_id),
            course_stable_id=str(listing.stable_id),
            unit_price=float(listing.price),
            added_at=added_at or datetime.now(UTC),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["added_at"] = self.added_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CartItem":
        return cls(
            cart_entry_id=str(data["cart_entry_id"]),
            course_id=str(data["course_id"]),
            course_stable_id=str(data["course_stable_id"]),
            unit_price=float(data["unit_price"]),
            added_at=datetime.fromisoformat(data["added_at"]),
        )
