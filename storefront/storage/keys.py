"""
Persisted record key layout.
"""

IDENTITY_REGISTRY = "identity-registry"

BALANCE_PREFIX = "balance:"
PRICE_PREFIX = "price:"
CART_PREFIX = "cart:"


def balance_key(user_id: int) -> str:
    return f"{BALANCE_PREFIX}{user_id}"


def price_key(user_id: int, product_id: int) -> str:
    return f"{PRICE_PREFIX}{user_id}:{product_id}"


def cart_key(user_id: int) -> str:
    return f"{CART_PREFIX}{user_id}"
