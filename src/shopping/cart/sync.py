"""Cart sync engine — merges a guest cart into the account cart at sign-in.

Merging is keyed purely on course identity. A course already in the remote
cart is skipped (its remote price stays as it was); everything else is
submitted as a new remote entry. The local cart is discarded only when every
item made it across, so a partially failed run can simply be invoked again:
each run re-reads the remote cart before submitting anything.
"""

import threading
from dataclasses import dataclass, field

import structlog

from shared.errors import PersistenceError, SyncInProgress
from shopping.storage.port import CartStorage

logger = structlog.get_logger(__name__)


@dataclass
class SyncReport:
    merged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    local_discarded: bool = False

    @property
    def complete(self) -> bool:
        return not self.pending


class CartSyncEngine:
    def __init__(self) -> None:
        self._in_flight = threading.Lock()

    def sync(self, local: CartStorage, remote: CartStorage) -> SyncReport:
        """Merge ``local`` into ``remote``.

        Raises ``SyncInProgress`` if another merge is running on this engine,
        and ``PersistenceError`` if the remote cart cannot even be read.
        """
        if not self._in_flight.acquire(blocking=False):
            raise SyncInProgress("A cart merge is already running")
        try:
            return self._merge(local, remote)
        finally:
            self._in_flight.release()

    def _merge(self, local: CartStorage, remote: CartStorage) -> SyncReport:
        report = SyncReport()
        local_items = local.list_items()
        if not local_items:
            return report

        remote_ids = {item.course_stable_id for item in remote.list_items()}

        for item in local_items:
            if item.course_stable_id in remote_ids:
                report.skipped.append(item.course_stable_id)
                continue
            try:
                remote.add(item)
            except PersistenceError as exc:
                logger.warning(
                    "Cart item left pending during merge",
                    course_stable_id=item.course_stable_id,
                    error=str(exc),
                )
                report.pending.append(item.course_stable_id)
                continue
            remote_ids.add(item.course_stable_id)
            report.merged.append(item.course_stable_id)

        if report.complete:
            local.clear()
            report.local_discarded = True

        logger.info(
            "Guest cart merged",
            merged=len(report.merged),
            skipped=len(report.skipped),
            pending=len(report.pending),
        )
        return report
