"""In-memory course catalog for development and testing."""

from shopping.catalog.port import CourseCatalog, CourseListing


class InMemoryCatalog(CourseCatalog):
    def __init__(self, listings: list[CourseListing] | None = None) -> None:
        self._listings: dict[str, CourseListing] = {}
        for listing in listings or []:
            self.publish(listing)

    def publish(self, listing: CourseListing) -> None:
        """Add a course, or replace its listing (e.g. after a price change)."""
        self._listings[listing.stable_id] = listing

    def withdraw(self, stable_id: str) -> None:
        self._listings.pop(stable_id, None)

    def lookup(self, stable_id: str) -> CourseListing | None:
        return self._listings.get(stable_id)
