"""
Cart Store

CRUD over one cart record per user. The persistence layer has no field-level
update, so every mutation stamps `last_modified` and writes the whole cart
snapshot back under a single key.

Empty carts are not persisted: removing the last item deletes the record.
"""

import time
from typing import Optional

import structlog

from storefront.domain.models import Cart, CartItem, utcnow
from storefront.domain.parsing import parse_cart
from storefront.errors import (
    CartItemNotFound,
    CartNotFound,
    InvalidQuantity,
    StorageFailure,
)
from storefront.storage import keys
from storefront.storage.base import KeyValueStore

logger = structlog.get_logger(__name__)


class CartIdGenerator:
    """Process-unique, strictly increasing cart ids seeded from the clock"""

    def __init__(self):
        self._last = 0

    def __call__(self) -> int:
        candidate = int(time.time() * 1000)
        self._last = max(candidate, self._last + 1)
        return self._last


def _check_quantity(quantity: int) -> None:
    if quantity < 1:
        raise InvalidQuantity(
            f"Quantity must be at least 1, got {quantity}",
            quantity=quantity,
        )


class CartStore:
    """
    Per-user cart persistence.

    Example:
        carts = CartStore(store)
        cart = await carts.add(1000, product_id=3, quantity=2)
        cart = await carts.set_quantity(1000, product_id=3, quantity=5)
        await carts.clear(1000)
    """

    def __init__(self, store: KeyValueStore, id_generator: Optional[CartIdGenerator] = None):
        self.store = store
        self.next_id = id_generator or CartIdGenerator()

    async def get(self, user_id: int) -> Optional[Cart]:
        """Load a user's cart; None if the user has none"""
        key = keys.cart_key(user_id)
        raw = await self.store.get(key)
        if raw is None:
            return None

        result = parse_cart(raw)
        if not result.ok:
            logger.error("Cart record unreadable", user_id=user_id, reason=result.reason)
            raise StorageFailure(
                f"Cart record for user {user_id} is unreadable: {result.reason}",
                operation="parse",
                key=key,
            )
        return result.value

    async def _require(self, user_id: int) -> Cart:
        cart = await self.get(user_id)
        if cart is None:
            raise CartNotFound(f"No cart for user {user_id}", user_id=user_id)
        return cart

    async def _save(self, cart: Cart) -> Cart:
        cart.last_modified = utcnow()
        await self.store.set(keys.cart_key(cart.user_id), cart.to_json())
        return cart

    async def add(self, user_id: int, product_id: int, quantity: int) -> Cart:
        """Merge quantity into an existing item or append a new one"""
        _check_quantity(quantity)
        cart = await self.get(user_id)

        if cart is None:
            cart = Cart(id=self.next_id(), user_id=user_id, items=[])
            logger.info("Cart created", user_id=user_id, cart_id=cart.id)

        item = cart.find(product_id)
        if item is not None:
            item.quantity += quantity
        else:
            cart.items.append(CartItem(product_id=product_id, quantity=quantity))

        logger.debug("Cart item added", user_id=user_id, product_id=product_id, quantity=quantity)
        return await self._save(cart)

    async def set_quantity(self, user_id: int, product_id: int, quantity: int) -> Cart:
        """Replace an item's quantity"""
        _check_quantity(quantity)
        cart = await self._require(user_id)

        item = cart.find(product_id)
        if item is None:
            raise CartItemNotFound(
                f"Product {product_id} is not in the cart",
                user_id=user_id,
                product_id=product_id,
            )
        item.quantity = quantity
        return await self._save(cart)

    async def remove(self, user_id: int, product_id: int) -> Optional[Cart]:
        """
        Drop an item. Removing an absent product is not an error.

        Returns:
            The updated cart, or None when the last item was removed and
            the record deleted.
        """
        cart = await self._require(user_id)

        remaining = [item for item in cart.items if item.product_id != product_id]
        if not remaining:
            await self.store.delete(keys.cart_key(user_id))
            logger.info("Cart emptied and deleted", user_id=user_id)
            return None

        cart.items = remaining
        return await self._save(cart)

    async def replace(self, user_id: int, product_id: int, quantity: int) -> Cart:
        """Overwrite the cart with a single item, keeping its id if any"""
        _check_quantity(quantity)
        existing = await self.get(user_id)
        cart_id = existing.id if existing is not None else self.next_id()

        cart = Cart(
            id=cart_id,
            user_id=user_id,
            items=[CartItem(product_id=product_id, quantity=quantity)],
        )
        return await self._save(cart)

    async def clear(self, user_id: int) -> None:
        """Delete the cart record"""
        await self.store.delete(keys.cart_key(user_id))
        logger.info("Cart cleared", user_id=user_id)

    async def item_count(self, user_id: int) -> int:
        """Sum of quantities in the user's cart"""
        cart = await self.get(user_id)
        return cart.item_count if cart is not None else 0
