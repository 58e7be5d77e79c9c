"""
Test Suite Configuration
"""
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from storefront.cart.store import CartStore
from storefront.catalog.client import CatalogClient
from storefront.config import Settings
from storefront.config.settings import CatalogSettings
from storefront.ledger.balance import BalanceLedger
from storefront.ledger.purchases import PurchaseService
from storefront.pricing.store import PricingStore
from storefront.storage.memory import MemoryStore

CATALOG_URL = "https://catalog.test"


def make_remote_products(count: int) -> List[Dict[str, Any]]:
    """Remote catalog records with ids 1..count, listed in reverse order"""
    categories = ["electronics", "jewelery", "men's clothing", "women's clothing"]
    return [
        {
            "id": i,
            "title": f"Product {i}" if i % 5 else f"Cotton Shirt {i}",
            "price": round(1.5 * i, 2),
            "image": f"https://img.test/{i}.jpg",
            "description": "Soft fabric" if i % 7 == 0 else f"Item number {i}",
            "category": categories[i % len(categories)],
        }
        for i in range(count, 0, -1)
    ]


class FakeCatalog:
    """In-process stand-in for the remote catalog behind httpx.MockTransport"""

    def __init__(self, products: List[Dict[str, Any]]):
        self.products = products
        self.requests: List[str] = []
        self.fail_with: Optional[Callable[[httpx.Request], httpx.Response]] = None

    def timeout(self) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)
        self.fail_with = respond

    def unavailable(self, status_code: int = 503) -> None:
        self.fail_with = lambda request: httpx.Response(status_code, text="Service Unavailable")

    def disconnected(self) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)
        self.fail_with = respond

    def garbage(self, body: Any) -> None:
        self.fail_with = lambda request: httpx.Response(200, content=json.dumps(body).encode())

    def set_price(self, product_id: int, price: float) -> None:
        for product in self.products:
            if product["id"] == product_id:
                product["price"] = price

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        if self.fail_with is not None:
            return self.fail_with(request)

        if path == "/products":
            return httpx.Response(200, json=self.products)
        if path == "/products/categories":
            return httpx.Response(200, json=sorted({p["category"] for p in self.products}))
        if path.startswith("/products/category/"):
            category = path[len("/products/category/"):]
            return httpx.Response(200, json=[p for p in self.products if p["category"] == category])
        if path.startswith("/products/"):
            product_id = int(path.rsplit("/", 1)[1])
            for product in self.products:
                if product["id"] == product_id:
                    return httpx.Response(200, json=product)
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(404)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
        catalog=CatalogSettings(base_url=CATALOG_URL),
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog(make_remote_products(21))


@pytest.fixture
def http_client(fake_catalog) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=CATALOG_URL,
        transport=httpx.MockTransport(fake_catalog),
    )


@pytest.fixture
def pricing(store) -> PricingStore:
    return PricingStore(store)


@pytest.fixture
def catalog(test_settings, pricing, http_client) -> CatalogClient:
    return CatalogClient(test_settings.catalog, pricing, http_client=http_client)


@pytest.fixture
def carts(store) -> CartStore:
    return CartStore(store)


@pytest.fixture
def ledger(store) -> BalanceLedger:
    return BalanceLedger(store, default_balance=500_000)


@pytest.fixture
def purchases(catalog, ledger, carts) -> PurchaseService:
    return PurchaseService(catalog, ledger, carts)
