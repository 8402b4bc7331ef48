"""Cart session — binds a cart store to either the device or the account.

A session starts Local for guests and becomes Remote exactly once, when the
authentication collaborator reports a signed-in identity. It never goes back
to Local.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog

from shopping.cart.item import CartItem
from shopping.cart.store import CartStore
from shopping.cart.sync import CartSyncEngine, SyncReport
from shopping.catalog.port import CourseCatalog
from shopping.storage.local_adapter import LocalCartStorage
from shopping.storage.port import CartStorage
from shopping.storage.remote_adapter import RemoteCartStorage

logger = structlog.get_logger(__name__)


class SessionVariant(Enum):
    LOCAL = "Local"
    REMOTE = "Remote"


class IdentityProvider(ABC):
    """Yields the signed-in user for the current browser session, if any."""

    @abstractmethod
    def current_user_id(self) -> str | None: ...


@dataclass(frozen=True)
class CartLine:
    """Display row: captured cart price next to the catalog's current view."""

    item: CartItem
    title: str | None
    current_price: float


class CartSession:
    def __init__(
        self,
        identity: IdentityProvider,
        catalog: CourseCatalog,
        local: LocalCartStorage | None = None,
        remote_factory: Callable[[str], CartStorage] = RemoteCartStorage,
        sync_engine: CartSyncEngine | None = None,
    ) -> None:
        self.identity = identity
        self.catalog = catalog
        self.local = local or LocalCartStorage()
        self.remote_factory = remote_factory
        self.sync_engine = sync_engine or CartSyncEngine()

        self.user_id: str | None = None
        self.remote: CartStorage | None = None
        self.variant = SessionVariant.LOCAL
        self.last_sync: SyncReport | None = None

        user_id = identity.current_user_id()
        if user_id:
            self._become_remote(user_id)
        else:
            self.store = CartStore.load(self.local)

    def on_authenticated(self) -> SyncReport | None:
        """Move a guest session onto the signed-in user's account cart.

        Runs the merge when the guest cart has items. Returns the merge
        report, or None when there was nothing to do.
        """
        if self.variant is SessionVariant.REMOTE:
            return None

        user_id = self.identity.current_user_id()
        if not user_id:
            return None

        report = None
        remote = self.remote_factory(user_id)
        if not self.local.is_empty():
            report = self.sync_engine.sync(self.local, remote)
            self.last_sync = report

        self._become_remote(user_id, remote)
        logger.info("Cart session authenticated", user_id=user_id, merged=bool(report))
        return report

    def retry_sync(self) -> SyncReport | None:
        """Re-run the merge for guest items still pending after sign-in."""
        if self.variant is not SessionVariant.REMOTE or self.local.is_empty():
            return None
        report = self.sync_engine.sync(self.local, self.remote)
        self.last_sync = report
        self.store = CartStore.load(self.remote)
        return report

    def _become_remote(self, user_id: str, remote: CartStorage | None = None) -> None:
        self.user_id = user_id
        self.remote = remote or self.remote_factory(user_id)
        self.store = CartStore.load(self.remote)
        self.variant = SessionVariant.REMOTE

    def lines(self) -> list[CartLine]:
        lines = []
        for item in self.store.items:
            listing = self.catalog.lookup(item.course_stable_id)
            lines.append(
                CartLine(
                    item=item,
                    title=listing.title if listing else None,
                    current_price=listing.price if listing else item.unit_price,
                )
            )
        return lines
