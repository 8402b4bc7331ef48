"""Cart storage backends: device-bound for guests, repository-backed for accounts."""

from shopping.storage.local_adapter import LocalCartStorage
from shopping.storage.port import CartStorage
from shopping.storage.remote_adapter import RemoteCartStorage

__all__ = ["CartStorage", "LocalCartStorage", "RemoteCartStorage"]
