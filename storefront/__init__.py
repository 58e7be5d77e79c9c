"""
Storefront Core

Client-local transactional store for balances, per-user prices, carts and
user identities over a key-value persistence backend.
"""
from .app import Storefront

__version__ = "1.0.0"

__all__ = ["Storefront", "__version__"]
