"""
Record Parsing Module

Explicit schema validation for persisted and remote records. Every parser
returns a tagged ParseResult instead of raising or casting, so callers decide
per path whether a bad record degrades, is skipped, or becomes an error.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from storefront.domain.models import Cart, RemoteProduct, UserIdentity

T = TypeVar("T")

_INTEGER = re.compile(r"-?[0-9]+")


class ParseStatus(str, Enum):
    """Outcome of a parse"""
    OK = "ok"
    FAILED = "failed"


@dataclass
class ParseResult(Generic[T]):
    """Tagged parse outcome: either a value or a failure reason"""
    status: ParseStatus
    value: Optional[T] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ParseStatus.OK

    @classmethod
    def success(cls, value: T) -> "ParseResult[T]":
        return cls(status=ParseStatus.OK, value=value)

    @classmethod
    def failure(cls, reason: str) -> "ParseResult[T]":
        return cls(status=ParseStatus.FAILED, reason=reason)


_identity_list = TypeAdapter(List[UserIdentity])
_remote_product_list = TypeAdapter(List[RemoteProduct])
_category_list = TypeAdapter(List[str])


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def _validate(adapter: TypeAdapter, data: Any) -> ParseResult:
    try:
        return ParseResult.success(adapter.validate_python(data))
    except ValidationError as e:
        return ParseResult.failure(_describe(e))


def _load_json(raw: str) -> ParseResult:
    try:
        return ParseResult.success(json.loads(raw))
    except (TypeError, ValueError) as e:
        return ParseResult.failure(f"invalid JSON: {e}")


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

def parse_identities(raw: str) -> ParseResult[List[UserIdentity]]:
    """Parse the identity-registry value"""
    loaded = _load_json(raw)
    if not loaded.ok:
        return loaded
    if not isinstance(loaded.value, list):
        return ParseResult.failure("identity registry is not a list")
    return _validate(_identity_list, loaded.value)


def parse_cart(raw: str) -> ParseResult[Cart]:
    """Parse a cart:<userId> value"""
    loaded = _load_json(raw)
    if not loaded.ok:
        return loaded
    if not isinstance(loaded.value, dict):
        return ParseResult.failure("cart record is not an object")
    try:
        cart = Cart.model_validate(loaded.value)
    except ValidationError as e:
        return ParseResult.failure(_describe(e))
    product_ids = [item.product_id for item in cart.items]
    if len(product_ids) != len(set(product_ids)):
        return ParseResult.failure("cart holds duplicate product entries")
    return ParseResult.success(cart)


def parse_amount(raw: str) -> ParseResult[int]:
    """Parse an integer-as-text value (balances, prices)"""
    text = raw.strip() if isinstance(raw, str) else ""
    if not _INTEGER.fullmatch(text):
        return ParseResult.failure(f"not an integer: {raw!r}")
    return ParseResult.success(int(text))


# =============================================================================
# REMOTE RECORDS
# =============================================================================

def parse_remote_product(data: Any) -> ParseResult[RemoteProduct]:
    """Validate a single product body"""
    if not isinstance(data, dict):
        return ParseResult.failure("product body is not an object")
    try:
        return ParseResult.success(RemoteProduct.model_validate(data))
    except ValidationError as e:
        return ParseResult.failure(_describe(e))


def parse_remote_products(data: Any) -> ParseResult[List[RemoteProduct]]:
    """Validate a product listing body"""
    if not isinstance(data, list):
        return ParseResult.failure("product listing is not a list")
    return _validate(_remote_product_list, data)


def parse_categories(data: Any) -> ParseResult[List[str]]:
    """Validate a category listing body"""
    if not isinstance(data, list):
        return ParseResult.failure("category listing is not a list")
    return _validate(_category_list, data)
