"""
Per-User Pricing Store

Derives and caches a stable price per (user, product). The remote catalog's
base price drifts between calls; a cached price is kept while it sits inside
the staleness band around the current base price and recomputed otherwise.
"""

import structlog

from storefront.domain.money import round_half_up
from storefront.domain.parsing import parse_amount
from storefront.storage import keys
from storefront.storage.base import KeyValueStore

logger = structlog.get_logger(__name__)

# Staleness band relative to the current base price
BAND_LOW = 0.5
BAND_HIGH = 2.0


def within_band(price: int, base_price: int) -> bool:
    """True if a cached price still reflects the current base price"""
    return base_price * BAND_LOW <= price <= base_price * BAND_HIGH


class PricingStore:
    """
    Cached user-scoped prices.

    Example:
        pricing = PricingStore(store)
        price = await pricing.get_price(1000, 5, base_price=109950)
    """

    def __init__(self, store: KeyValueStore, discount_rate: float = 0.0):
        self.store = store
        self.discount_rate = discount_rate

    def derive(self, base_price: int) -> int:
        """Fresh user-scoped price for a base price"""
        return round_half_up(base_price * (1 - self.discount_rate))

    async def get_price(self, user_id: int, product_id: int, base_price: int) -> int:
        """Return the cached price if still in band, else derive and persist"""
        key = keys.price_key(user_id, product_id)
        raw = await self.store.get(key)

        if raw is not None:
            cached = parse_amount(raw)
            if cached.ok and within_band(cached.value, base_price):
                return cached.value
            logger.debug(
                "Cached price stale",
                user_id=user_id,
                product_id=product_id,
                cached=raw,
                base_price=base_price,
            )

        price = self.derive(base_price)
        await self.store.set(key, str(price))
        return price

    async def reset_all(self) -> int:
        """Delete every cached price; returns the number removed"""
        removed = 0
        for key in await self.store.keys(keys.PRICE_PREFIX):
            if await self.store.delete(key):
                removed += 1
        logger.info("Price cache reset", removed=removed)
        return removed
