"""
Purchase Transactions

Single-item purchase and whole-cart checkout over the Pricing Store, the
Balance Ledger and the Cart Store. The key-value store has no multi-key
transaction, so checkout prices every line and checks the aggregate total
against the balance before any write: either one aggregate debit followed by
clearing the cart happens, or nothing is written.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from storefront.cart.store import CartStore
from storefront.catalog.client import CatalogClient
from storefront.domain.money import format_amount
from storefront.errors import (
    CartNotFound,
    InsufficientFunds,
    InvalidQuantity,
    NotFound,
    StorefrontError,
)
from storefront.ledger.balance import BalanceLedger

logger = structlog.get_logger(__name__)


@dataclass
class LineTotal:
    """Priced cart line"""
    product_id: int
    quantity: int
    unit_price: int

    @property
    def total(self) -> int:
        return self.unit_price * self.quantity


@dataclass
class PurchaseResult:
    """Outcome reported to the caller of a purchase or checkout"""
    success: bool
    message: str
    new_balance: int
    total: int = 0
    lines: List[LineTotal] = field(default_factory=list)
    error: Optional[StorefrontError] = None

    @property
    def shortfall(self) -> int:
        if isinstance(self.error, InsufficientFunds):
            return self.error.shortfall
        return 0


class PurchaseService:
    """
    Purchase and checkout flows.

    Example:
        purchases = PurchaseService(catalog, ledger, carts)
        result = await purchases.purchase(1000, product_id=5, quantity=2)
        result = await purchases.checkout(1000)
    """

    def __init__(
        self,
        catalog: CatalogClient,
        ledger: BalanceLedger,
        carts: CartStore,
        currency: str = "won",
    ):
        self.catalog = catalog
        self.ledger = ledger
        self.carts = carts
        self.currency = currency

    def _insufficient(self, shortfall: int, total: int, balance: int) -> InsufficientFunds:
        return InsufficientFunds(
            f"Insufficient balance (short by {format_amount(shortfall, self.currency)})",
            shortfall=shortfall,
            total=total,
            balance=balance,
        )

    async def purchase(self, user_id: int, product_id: int, quantity: int) -> PurchaseResult:
        """
        Buy one product at the user's price.

        Remote timeouts and outages propagate as typed errors; a missing
        product or a short balance is reported in the result.
        """
        if quantity < 1:
            raise InvalidQuantity(
                f"Quantity must be at least 1, got {quantity}",
                quantity=quantity,
            )

        try:
            product = await self.catalog.fetch_one(product_id, user_id=user_id)
        except NotFound as e:
            balance = await self.ledger.get_balance(user_id)
            return PurchaseResult(
                success=False,
                message="Product not found",
                new_balance=balance,
                error=e,
            )

        line = LineTotal(product_id=product.id, quantity=quantity, unit_price=product.price)
        result = await self.ledger.debit(user_id, line.total)

        if not result.success:
            error = self._insufficient(result.shortfall, line.total, result.balance)
            logger.info(
                "Purchase rejected",
                user_id=user_id,
                product_id=product_id,
                total=line.total,
                shortfall=result.shortfall,
            )
            return PurchaseResult(
                success=False,
                message=error.message,
                new_balance=result.balance,
                total=line.total,
                lines=[line],
                error=error,
            )

        logger.info(
            "Purchase complete",
            user_id=user_id,
            product_id=product_id,
            quantity=quantity,
            total=line.total,
            balance=result.balance,
        )
        return PurchaseResult(
            success=True,
            message="Purchase complete",
            new_balance=result.balance,
            total=line.total,
            lines=[line],
        )

    async def price_cart(self, user_id: int) -> List[LineTotal]:
        """Resolve the user price of every cart line; raises CartNotFound"""
        cart = await self.carts.get(user_id)
        if cart is None or not cart.items:
            raise CartNotFound(f"No cart for user {user_id}", user_id=user_id)

        lines = []
        for item in cart.items:
            product = await self.catalog.fetch_one(item.product_id, user_id=user_id)
            lines.append(
                LineTotal(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=product.price,
                )
            )
        return lines

    async def checkout(self, user_id: int) -> PurchaseResult:
        """
        Buy every cart line as one transaction.

        Every line is priced first; if the balance does not cover the
        aggregate total nothing is written and the cart stays as it is.
        If the cart cannot be cleared after the debit, the total is
        credited back and the storage error propagates.
        """
        lines = await self.price_cart(user_id)
        total = sum(line.total for line in lines)

        balance = await self.ledger.get_balance(user_id)
        if balance < total:
            error = self._insufficient(total - balance, total, balance)
            logger.info(
                "Checkout rejected",
                user_id=user_id,
                total=total,
                balance=balance,
                shortfall=error.shortfall,
            )
            return PurchaseResult(
                success=False,
                message=error.message,
                new_balance=balance,
                total=total,
                lines=lines,
                error=error,
            )

        result = await self.ledger.debit(user_id, total)
        if not result.success:
            error = self._insufficient(result.shortfall, total, result.balance)
            return PurchaseResult(
                success=False,
                message=error.message,
                new_balance=result.balance,
                total=total,
                lines=lines,
                error=error,
            )

        try:
            await self.carts.clear(user_id)
        except StorefrontError as e:
            # The cart is still in place, so the debit must not stand
            logger.error(
                "Checkout cart clear failed, refunding",
                user_id=user_id,
                total=total,
                error_kind=e.kind,
                error=e.message,
            )
            await self.ledger.credit(user_id, total)
            raise

        logger.info(
            "Checkout complete",
            user_id=user_id,
            lines=len(lines),
            total=total,
            balance=result.balance,
        )
        return PurchaseResult(
            success=True,
            message="Purchase complete",
            new_balance=result.balance,
            total=total,
            lines=lines,
        )
