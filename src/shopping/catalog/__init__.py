"""Course catalog factory.

Provides get_catalog() / set_catalog() so the HTTP layer and tests can swap
the catalog implementation. Defaults to an empty InMemoryCatalog.
"""

from shopping.catalog.fake_adapter import InMemoryCatalog
from shopping.catalog.port import CourseCatalog

_current_catalog: CourseCatalog | None = None


def get_catalog() -> CourseCatalog:
    """Return the current course catalog. Defaults to InMemoryCatalog."""
    global _current_catalog
    if _current_catalog is None:
        _current_catalog = InMemoryCatalog()
    return _current_catalog


def set_catalog(catalog: CourseCatalog) -> None:
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    global _current_catalog
    _current_catalog = None
