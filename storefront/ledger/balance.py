"""
Balance Ledger

Per-user monetary balance under a single key. Reads lazily default to the
funding amount; debits are all-or-nothing and never drive a balance below
zero.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from storefront.domain.parsing import parse_amount
from storefront.errors import StorageFailure
from storefront.storage import keys
from storefront.storage.base import KeyValueStore

logger = structlog.get_logger(__name__)

DEFAULT_BALANCE = 500_000


@dataclass
class DebitResult:
    """Outcome of a debit attempt"""
    success: bool
    balance: int
    shortfall: int = 0

    @property
    def new_balance(self) -> Optional[int]:
        return self.balance if self.success else None


class BalanceLedger:
    """
    Per-user balances.

    Example:
        ledger = BalanceLedger(store)
        result = await ledger.debit(1000, 25_000)
        if not result.success:
            print(result.shortfall)
    """

    def __init__(self, store: KeyValueStore, default_balance: int = DEFAULT_BALANCE):
        self.store = store
        self.default_balance = default_balance

    async def get_balance(self, user_id: int) -> int:
        """Stored amount, or the default funding amount on first access"""
        key = keys.balance_key(user_id)
        raw = await self.store.get(key)
        if raw is None:
            return self.default_balance

        parsed = parse_amount(raw)
        if not parsed.ok or parsed.value < 0:
            raise StorageFailure(
                f"Balance record for user {user_id} is unreadable: {raw!r}",
                operation="parse",
                key=key,
            )
        return parsed.value

    async def debit(self, user_id: int, amount: int) -> DebitResult:
        """Subtract amount if covered; otherwise report the shortfall"""
        if amount < 0:
            raise ValueError("Debit amount must not be negative")

        balance = await self.get_balance(user_id)
        if balance < amount:
            shortfall = amount - balance
            logger.info(
                "Debit rejected",
                user_id=user_id,
                amount=amount,
                balance=balance,
                shortfall=shortfall,
            )
            return DebitResult(success=False, balance=balance, shortfall=shortfall)

        new_balance = balance - amount
        await self.store.set(keys.balance_key(user_id), str(new_balance))
        logger.info("Debit applied", user_id=user_id, amount=amount, balance=new_balance)
        return DebitResult(success=True, balance=new_balance)

    async def credit(self, user_id: int, amount: int) -> int:
        """Add amount and return the new balance"""
        if amount < 0:
            raise ValueError("Credit amount must not be negative")

        new_balance = await self.get_balance(user_id) + amount
        await self.store.set(keys.balance_key(user_id), str(new_balance))
        logger.info("Credit applied", user_id=user_id, amount=amount, balance=new_balance)
        return new_balance

    async def reset_all(self, default_amount: Optional[int] = None) -> int:
        """Set every existing balance record to default_amount"""
        amount = self.default_balance if default_amount is None else default_amount
        if amount < 0:
            raise ValueError("Reset amount must not be negative")

        updated = 0
        for key in await self.store.keys(keys.BALANCE_PREFIX):
            await self.store.set(key, str(amount))
            updated += 1
        logger.info("Balances reset", updated=updated, amount=amount)
        return updated
