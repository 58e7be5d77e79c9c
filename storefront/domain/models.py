"""
Storefront Domain Models

Pydantic models for every persisted record and every remote catalog record.
Persisted records keep camelCase field names on the wire; Python code uses
the snake_case attribute names.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    """Base for records serialized with camelCase aliases"""

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

class UserIdentity(WireModel):
    """Registered user; `id` is unique once the migrator has run"""
    id: StrictInt
    username: str
    password_digest: str = Field(alias="passwordDigest")
    email: str = ""
    # Set by the migrator on the member of a colliding group that kept a
    # legacy-range id, so later runs leave that id in place
    legacy_id_retained: bool = Field(default=False, alias="legacyIdRetained")


class CartItem(WireModel):
    product_id: StrictInt = Field(alias="productId")
    quantity: StrictInt = Field(ge=1)


class Cart(WireModel):
    """Single cart record per user, at most one item per product"""
    id: StrictInt
    user_id: StrictInt = Field(alias="userId")
    last_modified: datetime = Field(default_factory=utcnow, alias="lastModified")
    items: List[CartItem] = Field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def find(self, product_id: int) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None


# =============================================================================
# CATALOG VALUES
# =============================================================================

class RemoteProduct(BaseModel):
    """Product record as served by the remote catalog (source currency)"""

    model_config = ConfigDict(extra="ignore")

    id: StrictInt
    title: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    image: str = ""
    description: str = ""
    category: Optional[str] = None


class Product(BaseModel):
    """Product view value; price is always in local currency units"""
    id: int
    name: str
    price: int
    image: str = ""
    description: str = ""
    category: Optional[str] = None


class ProductPage(BaseModel):
    """Client-side paginated product listing"""
    items: List[Product] = Field(default_factory=list)
    total: int = 0
    total_pages: int = 0

    @classmethod
    def empty(cls) -> "ProductPage":
        return cls(items=[], total=0, total_pages=0)
