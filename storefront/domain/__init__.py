"""
Domain Module
"""
from .models import Cart, CartItem, Product, ProductPage, RemoteProduct, UserIdentity
from .parsing import ParseResult, ParseStatus

__all__ = [
    "Cart",
    "CartItem",
    "Product",
    "ProductPage",
    "RemoteProduct",
    "UserIdentity",
    "ParseResult",
    "ParseStatus",
]
