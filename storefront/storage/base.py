"""
Key-Value Store Interface

Durable string-keyed storage with single-key atomicity only. There is no
multi-key transaction; components that touch several keys must order their
writes so that an interruption leaves a recoverable state.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class KeyValueStore(ABC):
    """Abstract async key-value store injected into every component"""

    def __init__(self, namespace: Optional[str] = None):
        self.namespace = namespace

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        if self.namespace:
            return f"{self.namespace}:{key}"
        return key

    def _strip(self, key: str) -> str:
        """Remove the namespace from a backend key"""
        if self.namespace and key.startswith(f"{self.namespace}:"):
            return key[len(self.namespace) + 1:]
        return key

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None if the key is absent"""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value"""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key; True if something was removed"""

    @abstractmethod
    async def keys(self, prefix: str = "") -> List[str]:
        """Enumerate keys starting with prefix (namespace already removed)"""

    async def close(self) -> None:
        """Release backend resources"""
