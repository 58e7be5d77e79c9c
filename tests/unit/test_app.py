"""
Unit Tests - Storefront Composition Root
"""
import json

import pytest
from fakeredis import FakeAsyncRedis

from storefront.app import Storefront
from storefront.cart.session import CartSession
from storefront.config.settings import LedgerSettings, PricingSettings
from storefront.errors import StorageFailure
from storefront.identity.registry import hash_password
from storefront.storage.memory import MemoryStore
from storefront.storage.redis_store import RedisStore


def duplicate_registry():
    return json.dumps([
        {"id": 5, "username": "alice", "passwordDigest": hash_password("pw", "s"), "email": ""},
        {"id": 5, "username": "bob", "passwordDigest": hash_password("pw", "s"), "email": ""},
    ])


@pytest.fixture
def shop_store():
    return MemoryStore({
        "identity-registry": duplicate_registry(),
        "cart:5": json.dumps({
            "id": 1700000000000,
            "userId": 5,
            "lastModified": "2025-01-01T00:00:00+00:00",
            "items": [{"productId": 1, "quantity": 1}],
        }),
        "balance:5": "120",
        "price:5:1": "1400",
    })


@pytest.fixture
def shop(shop_store, test_settings, http_client):
    return Storefront(shop_store, test_settings, http_client=http_client)


class TestStartup:
    """Tests for the startup passes"""

    @pytest.mark.asyncio
    async def test_migration_runs_before_resets(self, shop):
        """Test the migrator finishes before balances and prices are reset"""
        calls = []

        def record(name, func):
            async def wrapper(*args, **kwargs):
                calls.append(name)
                return await func(*args, **kwargs)
            return wrapper

        shop.migrator.run = record("migrate", shop.migrator.run)
        shop.ledger.reset_all = record("balances", shop.ledger.reset_all)
        shop.pricing.reset_all = record("prices", shop.pricing.reset_all)

        await shop.startup()

        assert calls == ["migrate", "balances", "prices"]

    @pytest.mark.asyncio
    async def test_startup_effects(self, shop, shop_store):
        await shop.startup()

        assert shop.migration_report.carts_moved == 1
        assert json.loads(await shop_store.get("cart:1000"))["userId"] == 1000
        assert await shop_store.get("balance:5") == "500000"
        assert await shop_store.keys("price:") == []

    @pytest.mark.asyncio
    async def test_resets_can_be_disabled(self, shop_store, test_settings, http_client):
        settings = test_settings.model_copy(update={
            "ledger": LedgerSettings(reset_balances_on_startup=False),
            "pricing": PricingSettings(reset_prices_on_startup=False),
        })
        shop = Storefront(shop_store, settings, http_client=http_client)

        await shop.startup()

        assert await shop_store.get("balance:5") == "120"
        assert await shop_store.get("price:5:1") == "1400"

    @pytest.mark.asyncio
    async def test_corrupted_registry_does_not_block_startup(self, test_settings, http_client):
        """Test a failed migration is logged and later passes still run"""
        store = MemoryStore({"identity-registry": "not json", "balance:1000": "1"})
        shop = Storefront(store, test_settings, http_client=http_client)

        await shop.startup()

        assert shop.migration_report.error is not None
        assert await store.get("balance:1000") == "500000"

    @pytest.mark.asyncio
    async def test_unreachable_redis_does_not_block_startup(self, test_settings, http_client):
        """Test a failed backend ping is logged and the passes still run"""
        client = FakeAsyncRedis(decode_responses=True)
        await client.set("identity-registry", duplicate_registry())
        store = RedisStore(test_settings.redis, client=client)

        async def failing_init():
            raise StorageFailure("Redis connection failed", operation="ping")

        store.init = failing_init
        shop = Storefront(store, test_settings, http_client=http_client)

        await shop.startup()

        assert shop.migration_report.error is None
        assert [u["id"] for u in json.loads(await client.get("identity-registry"))] == [5, 1000]

    @pytest.mark.asyncio
    async def test_reset_failure_is_contained(self, shop, shop_store):
        shop_store.fail_on("keys", "balance:")

        await shop.startup()

        assert await shop_store.keys("price:") == []


class TestStorefront:
    """Tests for the wired components"""

    @pytest.mark.asyncio
    async def test_sign_up_then_browse(self, test_settings, http_client):
        shop = Storefront(MemoryStore(), test_settings, http_client=http_client)
        await shop.startup()

        user = await shop.registry.sign_up("carol", "pw", "carol@example.com")
        page = await shop.catalog.fetch_page(user_id=user.id)

        assert user.id == 1000
        assert page.total == 21
        assert await shop.ledger.get_balance(user.id) == 500_000

    @pytest.mark.asyncio
    async def test_cart_session(self, shop):
        session = shop.cart_session(1000)

        assert isinstance(session, CartSession)
        await session.add(2, 3)
        assert await shop.refresh_cart_count(1000) == 3

    @pytest.mark.asyncio
    async def test_refresh_cart_count_failure(self, shop, shop_store):
        """Test an unreadable cart shows a zero badge instead of raising"""
        shop_store.fail_on("get", "cart:")

        assert await shop.refresh_cart_count(5) == 0

    @pytest.mark.asyncio
    async def test_shutdown_closes_client(self, shop, http_client):
        await shop.shutdown()

        assert http_client.is_closed

    @pytest.mark.asyncio
    async def test_from_settings_uses_memory_backend(self, test_settings):
        shop = Storefront.from_settings(test_settings)

        assert isinstance(shop.store, MemoryStore)
        assert shop.catalog.settings.base_url == test_settings.catalog.base_url
        await shop.shutdown()
