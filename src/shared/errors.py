"""Error taxonomy shared by the cart and fulfillment pipelines.

Protean's own ``ValidationError`` still covers malformed commands and field
values; these classes name the failure modes callers must react to.
"""


class CommerceError(Exception):
    """Base class for cart and fulfillment failures."""

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class AuthenticationError(CommerceError):
    """Webhook signature missing or invalid, or no identity for a remote cart."""


class UnprocessableEvent(CommerceError):
    """A well-signed provider event that cannot be applied. Never retried."""


class NotFoundError(CommerceError):
    """A referenced transaction, course or user does not exist."""


class DuplicateItem(CommerceError):
    """The course is already in the cart. Non-fatal."""

    def __init__(self, course_stable_id: str) -> None:
        super().__init__(f"Course {course_stable_id} is already in the cart", course_stable_id=course_stable_id)
        self.course_stable_id = course_stable_id


class PersistenceError(CommerceError):
    """A storage backend rejected a write."""


class SyncInProgress(CommerceError):
    """A cart merge is already running for this session."""


class PartialFulfillmentError(CommerceError):
    """One or more optional fulfillment steps failed after the transaction completed."""

    def __init__(self, transaction_id: str, failed_steps: dict[str, str], report=None) -> None:
        steps = ", ".join(sorted(failed_steps))
        super().__init__(
            f"Fulfillment of transaction {transaction_id} incomplete: {steps}",
            transaction_id=transaction_id,
        )
        self.transaction_id = transaction_id
        self.failed_steps = failed_steps
        self.report = report
