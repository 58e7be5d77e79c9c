"""
Optimistic Cart Session

Holds one user's in-memory cart view and applies interactive edits with the
Snapshot / Commit / Rollback protocol:

1. Snapshot: deep copy of the current view.
2. Apply the edit to the view immediately.
3. Commit: await the Cart Store call.
4. On failure restore the snapshot verbatim and re-raise. On success the
   view becomes the snapshot the store wrote.

The view is never merged with a failed state.
"""

from typing import Awaitable, Callable, List, Optional

import structlog

from storefront.cart.store import CartStore
from storefront.domain.models import Cart, CartItem, utcnow
from storefront.errors import StorefrontError

logger = structlog.get_logger(__name__)

LocalEdit = Callable[[Optional[Cart]], Optional[Cart]]


class CartSession:
    """
    Optimistic view over one user's cart.

    Example:
        session = CartSession(carts, user_id=1000)
        await session.load()
        await session.set_quantity(3, 4)   # view updated before the write
    """

    def __init__(self, carts: CartStore, user_id: int):
        self.carts = carts
        self.user_id = user_id
        self.view: Optional[Cart] = None
        self.last_error: Optional[StorefrontError] = None

    @property
    def items(self) -> List[CartItem]:
        return list(self.view.items) if self.view is not None else []

    @property
    def item_count(self) -> int:
        return self.view.item_count if self.view is not None else 0

    async def load(self) -> Optional[Cart]:
        """Replace the view with the persisted cart"""
        self.view = await self.carts.get(self.user_id)
        return self.view

    def snapshot(self) -> Optional[Cart]:
        return self.view.model_copy(deep=True) if self.view is not None else None

    async def _run(
        self,
        action: str,
        edit: LocalEdit,
        commit: Callable[[], Awaitable[Optional[Cart]]],
    ) -> Optional[Cart]:
        saved = self.snapshot()
        self.view = edit(self.snapshot())
        try:
            committed = await commit()
        except StorefrontError as e:
            self.view = saved
            self.last_error = e
            logger.warning(
                "Cart edit rolled back",
                action=action,
                user_id=self.user_id,
                error_kind=e.kind,
                error=e.message,
            )
            raise
        self.view = committed
        self.last_error = None
        return committed

    # -------------------------------------------------------------------------
    # Local edits, mirroring the store semantics on the in-memory view
    # -------------------------------------------------------------------------

    def _local_add(self, product_id: int, quantity: int) -> LocalEdit:
        def edit(cart: Optional[Cart]) -> Optional[Cart]:
            if cart is None:
                cart = Cart(id=0, user_id=self.user_id, items=[])
            item = cart.find(product_id)
            if item is not None:
                item.quantity += quantity
            elif quantity >= 1:
                cart.items.append(CartItem(product_id=product_id, quantity=quantity))
            cart.last_modified = utcnow()
            return cart
        return edit

    def _local_set_quantity(self, product_id: int, quantity: int) -> LocalEdit:
        def edit(cart: Optional[Cart]) -> Optional[Cart]:
            if cart is None:
                return None
            item = cart.find(product_id)
            if item is not None and quantity >= 1:
                item.quantity = quantity
                cart.last_modified = utcnow()
            return cart
        return edit

    def _local_remove(self, product_id: int) -> LocalEdit:
        def edit(cart: Optional[Cart]) -> Optional[Cart]:
            if cart is None:
                return None
            cart.items = [item for item in cart.items if item.product_id != product_id]
            if not cart.items:
                return None
            cart.last_modified = utcnow()
            return cart
        return edit

    # -------------------------------------------------------------------------
    # Public edits
    # -------------------------------------------------------------------------

    async def add(self, product_id: int, quantity: int = 1) -> Optional[Cart]:
        return await self._run(
            "add",
            self._local_add(product_id, quantity),
            lambda: self.carts.add(self.user_id, product_id, quantity),
        )

    async def set_quantity(self, product_id: int, quantity: int) -> Optional[Cart]:
        return await self._run(
            "set_quantity",
            self._local_set_quantity(product_id, quantity),
            lambda: self.carts.set_quantity(self.user_id, product_id, quantity),
        )

    async def remove(self, product_id: int) -> Optional[Cart]:
        return await self._run(
            "remove",
            self._local_remove(product_id),
            lambda: self.carts.remove(self.user_id, product_id),
        )

    async def replace(self, product_id: int, quantity: int = 1) -> Optional[Cart]:
        def edit(cart: Optional[Cart]) -> Optional[Cart]:
            cart_id = cart.id if cart is not None else 0
            return Cart(
                id=cart_id,
                user_id=self.user_id,
                items=[CartItem(product_id=product_id, quantity=max(quantity, 1))],
            )

        return await self._run(
            "replace",
            edit,
            lambda: self.carts.replace(self.user_id, product_id, quantity),
        )

    async def clear(self) -> None:
        async def commit() -> None:
            await self.carts.clear(self.user_id)
            return None

        await self._run("clear", lambda cart: None, commit)
