"""
Storefront Error Taxonomy

Every failure a caller may need to render carries a stable ``kind`` and a
``context`` dict with the structured details (shortfall, ids, keys).
"""

from typing import Any, Dict, Optional


class StorefrontError(Exception):
    """Base class for all storefront failures"""

    kind = "storefront_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for rendering"""
        return {"kind": self.kind, "message": self.message, **self.context}


# =============================================================================
# REMOTE CATALOG
# =============================================================================

class NetworkTimeout(StorefrontError):
    """The remote round-trip exceeded the fixed timeout"""

    kind = "network_timeout"


class RemoteUnavailable(StorefrontError):
    """Non-2xx status or transport error from the remote catalog"""

    kind = "remote_unavailable"

    def __init__(self, message: str, status_code: Optional[int] = None, **context: Any):
        super().__init__(message, status_code=status_code, **context)
        self.status_code = status_code


class MalformedResponse(StorefrontError):
    """The remote catalog answered with an unexpected shape"""

    kind = "malformed_response"


class NotFound(StorefrontError):
    """Single-product lookup found nothing"""

    kind = "not_found"


class InvalidPage(StorefrontError):
    """Page number or page size below 1"""

    kind = "invalid_page"


# =============================================================================
# LEDGER / CART
# =============================================================================

class InsufficientFunds(StorefrontError):
    """A debit would drive the balance negative"""

    kind = "insufficient_funds"

    def __init__(self, message: str, shortfall: int, **context: Any):
        super().__init__(message, shortfall=shortfall, **context)
        self.shortfall = shortfall


class CartNotFound(StorefrontError):
    kind = "cart_not_found"


class CartItemNotFound(StorefrontError):
    kind = "cart_item_not_found"


class InvalidQuantity(StorefrontError):
    kind = "invalid_quantity"


# =============================================================================
# IDENTITY
# =============================================================================

class DuplicateUsername(StorefrontError):
    kind = "duplicate_username"


class InvalidCredentials(StorefrontError):
    kind = "invalid_credentials"


# =============================================================================
# PERSISTENCE
# =============================================================================

class StorageFailure(StorefrontError):
    """A key-value backend read or write failed, or a record did not parse"""

    kind = "storage_failure"

    def __init__(self, message: str, operation: str, key: Optional[str] = None, **context: Any):
        super().__init__(message, operation=operation, key=key, **context)
        self.operation = operation
        self.key = key
