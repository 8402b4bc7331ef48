"""Account-bound cart storage backed by the CartEntry repository."""

import structlog
from protean.utils.globals import current_domain

from shared.errors import PersistenceError
from shopping.cart.entry import CartEntry
from shopping.cart.item import CartItem
from shopping.storage.port import CartStorage

logger = structlog.get_logger(__name__)


class RemoteCartStorage(CartStorage):
    def __init__(self, user_id: str) -> None:
        self.user_id = str(user_id)

    @property
    def _repo(self):
        return current_domain.repository_for(CartEntry)

    def _entries(self) -> list[CartEntry]:
        try:
            entries = self._repo._dao.query.filter(user_id=self.user_id).all().items
        except Exception as exc:
            raise PersistenceError("Remote cart could not be read", user_id=self.user_id) from exc
        return sorted(entries, key=lambda e: e.added_at.isoformat() if e.added_at else "")

    def add(self, item: CartItem) -> CartItem:
        existing = next((e for e in self._entries() if e.course_stable_id == item.course_stable_id), None)
        if existing:
            return existing.to_item()

        try:
            entry = CartEntry.create(user_id=self.user_id, item=item)
            self._repo.add(entry)
        except Exception as exc:
            logger.error(
                "Failed to persist remote cart entry",
                user_id=self.user_id,
                course_stable_id=item.course_stable_id,
                error=str(exc),
            )
            raise PersistenceError("Remote cart entry could not be saved", user_id=self.user_id) from exc
        return entry.to_item()

    def remove(self, course_stable_id: str) -> None:
        for entry in self._entries():
            if entry.course_stable_id == course_stable_id:
                try:
                    self._repo._dao.delete(entry)
                except Exception as exc:
                    raise PersistenceError("Remote cart entry could not be deleted", user_id=self.user_id) from exc

    def list_items(self) -> list[CartItem]:
        return [entry.to_item() for entry in self._entries()]

    def clear(self) -> None:
        for entry in self._entries():
            try:
                self._repo._dao.delete(entry)
            except Exception as exc:
                raise PersistenceError("Remote cart could not be cleared", user_id=self.user_id) from exc
