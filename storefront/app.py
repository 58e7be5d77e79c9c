"""
Storefront Application

Composition root: builds every component on one injected key-value store,
runs the startup passes, and exposes the components to the presentation
layer.
"""

from typing import Optional

import httpx
import structlog

from storefront.cart.session import CartSession
from storefront.cart.store import CartStore
from storefront.catalog.client import CatalogClient
from storefront.config import Settings, configure_logging, get_settings
from storefront.identity.migrator import IdentityMigrator, MigrationReport
from storefront.identity.registry import IdentityRegistry
from storefront.ledger.balance import BalanceLedger
from storefront.ledger.purchases import PurchaseService
from storefront.pricing.store import PricingStore
from storefront.storage import create_store
from storefront.storage.base import KeyValueStore
from storefront.storage.redis_store import RedisStore

logger = structlog.get_logger(__name__)


class Storefront:
    """
    All storefront components wired to one store.

    Example:
        shop = Storefront(MemoryStore())
        await shop.startup()
        user = await shop.registry.sign_up("alice", "pw", "a@example.com")
        page = await shop.catalog.fetch_page(user_id=user.id)
        await shop.shutdown()
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store

        self.registry = IdentityRegistry(store)
        self.migrator = IdentityMigrator(store, self.registry)
        self.pricing = PricingStore(store, discount_rate=self.settings.pricing.discount_rate)
        self.carts = CartStore(store)
        self.ledger = BalanceLedger(store, default_balance=self.settings.ledger.default_balance)
        self.catalog = CatalogClient(self.settings.catalog, self.pricing, http_client=http_client)
        self.purchases = PurchaseService(
            self.catalog,
            self.ledger,
            self.carts,
            currency=self.settings.ledger.currency_label,
        )
        self.migration_report: Optional[MigrationReport] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Storefront":
        settings = settings or get_settings()
        configure_logging(settings)
        return cls(create_store(settings), settings)

    async def startup(self) -> None:
        """
        Run the once-per-process passes in order.

        The identity migration must finish before anything else touches
        storage. Each pass is best-effort: failures are logged, never raised.
        """
        logger.info("Starting storefront", environment=self.settings.app_env)

        # A failed ping keeps the pooled client; later calls reconnect or raise StorageFailure
        if isinstance(self.store, RedisStore):
            try:
                await self.store.init()
            except Exception as e:
                logger.warning("Storage backend unavailable at startup", error=str(e))

        try:
            self.migration_report = await self.migrator.run()
        except Exception as e:
            logger.warning("Identity migration aborted", error=str(e))

        if self.settings.ledger.reset_balances_on_startup:
            try:
                await self.ledger.reset_all(self.settings.ledger.default_balance)
            except Exception as e:
                logger.warning("Balance reset failed", error=str(e))

        if self.settings.pricing.reset_prices_on_startup:
            try:
                await self.pricing.reset_all()
            except Exception as e:
                logger.warning("Price reset failed", error=str(e))

    async def shutdown(self) -> None:
        logger.info("Shutting down...")
        await self.catalog.aclose()
        await self.store.close()

    def cart_session(self, user_id: int) -> CartSession:
        return CartSession(self.carts, user_id)

    async def refresh_cart_count(self, user_id: int) -> int:
        """Badge count for the user's cart; 0 when it cannot be read"""
        try:
            return await self.carts.item_count(user_id)
        except Exception as e:
            logger.warning("Cart count refresh failed", user_id=user_id, error=str(e))
            return 0
