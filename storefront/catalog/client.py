"""
Remote Catalog Client

Reads the remote product catalog and serves local-currency, user-priced,
filterable and paginated views. The remote service has no server-side
pagination or search, so every listing is fetched whole and sliced here.

Failure policy:
- listings (products, category products) degrade to an empty page;
- single-product lookups raise NotFound, NetworkTimeout, RemoteUnavailable
  or MalformedResponse so "missing" is distinguishable from "unreachable";
- category names degrade to [] on a bad body and raise on transport errors.
"""

import math
from typing import Any, List, Optional
from urllib.parse import quote

import httpx
import structlog

from storefront.config.settings import CatalogSettings
from storefront.domain.models import Product, ProductPage, RemoteProduct
from storefront.domain.money import to_local
from storefront.domain.parsing import (
    parse_categories,
    parse_remote_product,
    parse_remote_products,
)
from storefront.errors import (
    InvalidPage,
    MalformedResponse,
    NetworkTimeout,
    NotFound,
    RemoteUnavailable,
    StorefrontError,
)
from storefront.pricing.store import PricingStore

logger = structlog.get_logger(__name__)


def check_page(page: int, limit: int) -> None:
    if page < 1:
        raise InvalidPage(f"Page must be at least 1, got {page}", page=page)
    if limit < 1:
        raise InvalidPage(f"Page size must be at least 1, got {limit}", limit=limit)


def paginate(products: List[Product], page: int, limit: int) -> ProductPage:
    """Client-side pagination: slice [(page-1)*limit, page*limit)"""
    check_page(page, limit)

    total = len(products)
    start = (page - 1) * limit
    return ProductPage(
        items=products[start:start + limit],
        total=total,
        total_pages=math.ceil(total / limit),
    )


def matches(product: Product, search: str) -> bool:
    """Case-insensitive substring match over name and description"""
    needle = search.lower()
    return needle in product.name.lower() or needle in product.description.lower()


class CatalogClient:
    """
    Catalog access with per-user pricing.

    Example:
        async with CatalogClient(settings.catalog, pricing) as catalog:
            page = await catalog.fetch_page(page=2, search="shirt", user_id=1000)
            product = await catalog.fetch_one(5, user_id=1000)
    """

    def __init__(
        self,
        settings: CatalogSettings,
        pricing: Optional[PricingStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings
        self.pricing = pricing
        self._client = http_client or httpx.AsyncClient(
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
        )

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _get_json(self, path: str) -> Any:
        """GET path and decode JSON, mapping every failure to a typed error"""
        try:
            response = await self._client.get(path, timeout=self.settings.timeout_seconds)
        except httpx.TimeoutException as e:
            raise NetworkTimeout(
                f"Catalog request timed out after {self.settings.timeout_seconds}s",
                path=path,
            ) from e
        except httpx.HTTPError as e:
            raise RemoteUnavailable(f"Catalog request failed: {e}", path=path) from e

        if response.status_code == 404:
            raise NotFound(f"Catalog has nothing at {path}", path=path)
        if not response.is_success:
            raise RemoteUnavailable(
                f"Catalog returned {response.status_code}",
                status_code=response.status_code,
                path=path,
            )

        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponse(f"Catalog body is not JSON: {e}", path=path) from e

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def base_price(self, remote: RemoteProduct) -> int:
        """Remote source-currency price converted to local units"""
        return to_local(remote.price, self.settings.currency_multiplier)

    async def _to_product(self, remote: RemoteProduct, user_id: Optional[int]) -> Product:
        price = self.base_price(remote)
        if user_id and self.pricing is not None:
            price = await self.pricing.get_price(user_id, remote.id, price)
        return Product(
            id=remote.id,
            name=remote.title,
            price=price,
            image=remote.image,
            description=remote.description,
            category=remote.category,
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def fetch_page(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        user_id: Optional[int] = None,
        category: Optional[str] = None,
    ) -> ProductPage:
        """
        Fetch one page of the catalog, or of one category.

        Args:
            page: 1-based page number
            limit: Page size (defaults to the configured page size)
            search: Case-insensitive filter over name and description
            user_id: Apply that user's cached prices when given
            category: Restrict to one category listing

        Returns:
            ProductPage; an empty page when the remote call fails

        Raises:
            InvalidPage: page or limit below 1 (checked before any request)
        """
        limit = self.settings.page_size if limit is None else limit
        check_page(page, limit)
        path = f"/products/category/{quote(category, safe='')}" if category else "/products"

        try:
            body = await self._get_json(path)
            parsed = parse_remote_products(body)
            if not parsed.ok:
                raise MalformedResponse(
                    f"Unexpected product listing: {parsed.reason}",
                    path=path,
                )
            products = [await self._to_product(remote, user_id) for remote in parsed.value]
        except StorefrontError as e:
            logger.error(
                "Product listing failed",
                path=path,
                error_kind=e.kind,
                error=e.message,
            )
            return ProductPage.empty()

        products.sort(key=lambda product: product.id)
        if search:
            products = [product for product in products if matches(product, search)]

        result = paginate(products, page, limit)
        logger.debug(
            "Product listing served",
            path=path,
            page=page,
            returned=len(result.items),
            total=result.total,
            total_pages=result.total_pages,
        )
        return result

    async def fetch_one(self, product_id: int, user_id: Optional[int] = None) -> Product:
        """
        Fetch a single product.

        Raises:
            NotFound: the catalog has no such product
            NetworkTimeout: the round-trip exceeded the timeout
            RemoteUnavailable: non-2xx status or transport error
            MalformedResponse: the body did not match the product schema
        """
        path = f"/products/{product_id}"
        try:
            body = await self._get_json(path)
        except StorefrontError as e:
            logger.warning("Product lookup failed", product_id=product_id, error_kind=e.kind)
            raise

        # The public catalog answers unknown ids with 200 and an empty body
        if body is None:
            raise NotFound(f"Product {product_id} not found", product_id=product_id)

        parsed = parse_remote_product(body)
        if not parsed.ok:
            logger.error("Malformed product body", product_id=product_id, reason=parsed.reason)
            raise MalformedResponse(
                f"Unexpected product shape: {parsed.reason}",
                product_id=product_id,
            )
        return await self._to_product(parsed.value, user_id)

    async def fetch_categories(self) -> List[str]:
        """List category names; [] on an unexpected body"""
        body = await self._get_json("/products/categories")
        parsed = parse_categories(body)
        if not parsed.ok:
            logger.error("Malformed category listing", reason=parsed.reason)
            return []
        return parsed.value
