"""
In-Memory Key-Value Store

Dict-backed store used when Redis is disabled and as the substitute backend
in tests. Supports fault injection so failure paths can be exercised.
"""

from typing import Dict, List, Optional, Set, Tuple

from storefront.errors import StorageFailure
from storefront.storage.base import KeyValueStore


class MemoryStore(KeyValueStore):
    """
    Process-local key-value store.

    Example:
        store = MemoryStore({"balance:1000": "500000"})
        store.fail_on("set", "cart:")
        await store.set("cart:1000", "{}")  # raises StorageFailure
    """

    def __init__(
        self,
        initial: Optional[Dict[str, str]] = None,
        namespace: Optional[str] = None,
    ):
        super().__init__(namespace)
        self._data: Dict[str, str] = {}
        self._faults: Set[Tuple[str, str]] = set()
        self.writes = 0
        for key, value in (initial or {}).items():
            self._data[self._key(key)] = value

    def fail_on(self, operation: str, prefix: str = "") -> None:
        """Make every `operation` on keys starting with `prefix` raise"""
        self._faults.add((operation, prefix))

    def heal(self) -> None:
        """Remove all injected faults"""
        self._faults.clear()

    def snapshot(self) -> Dict[str, str]:
        """Copy of the raw contents (namespace removed)"""
        return {self._strip(k): v for k, v in self._data.items()}

    def _check(self, operation: str, key: str) -> None:
        for op, prefix in self._faults:
            if op == operation and key.startswith(prefix):
                raise StorageFailure(
                    f"Injected {operation} failure for {key}",
                    operation=operation,
                    key=key,
                )

    async def get(self, key: str) -> Optional[str]:
        self._check("get", key)
        return self._data.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        self._check("set", key)
        self._data[self._key(key)] = value
        self.writes += 1

    async def delete(self, key: str) -> bool:
        self._check("delete", key)
        removed = self._data.pop(self._key(key), None) is not None
        if removed:
            self.writes += 1
        return removed

    async def keys(self, prefix: str = "") -> List[str]:
        self._check("keys", prefix)
        stripped = (self._strip(k) for k in self._data)
        return sorted(k for k in stripped if k.startswith(prefix))
