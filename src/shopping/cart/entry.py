"""Remote cart row — one course in a signed-in learner's server-side cart.

Rows are scoped by ``user_id`` so the same cart is visible from every device
the learner signs in on. At most one row exists per (user, course_stable_id);
the remote storage adapter checks presence before creating a row.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, Identifier, String

from shopping.cart.item import CartItem
from shopping.domain import shopping


@shopping.aggregate
class CartEntry:
    user_id = Identifier(required=True)
    course_id = Identifier(required=True)
    course_stable_id = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    added_at = DateTime()

    @classmethod
    def create(cls, user_id: str, item: CartItem) -> "CartEntry":
        return cls(
            user_id=user_id,
            course_id=item.course_id,
            course_stable_id=item.course_stable_id,
            unit_price=item.unit_price,
            added_at=item.added_at or datetime.now(UTC),
        )

    def to_item(self) -> CartItem:
        added_at = self.added_at
        if added_at is not None and added_at.tzinfo is None:
            added_at = added_at.replace(tzinfo=UTC)
        return CartItem(
            cart_entry_id=str(self.id),
            course_id=str(self.course_id),
            course_stable_id=self.course_stable_id,
            unit_price=self.unit_price,
            added_at=added_at,
        )
