"""Shopping bounded context — course cart for guests and signed-in learners.

Holds the cart store, its local and remote persistence adapters, and the
sync engine that merges a guest cart into the account cart at sign-in.
"""

import structlog
from protean.domain import Domain

shopping = Domain(name="shopping")

logger = structlog.get_logger(__name__)
