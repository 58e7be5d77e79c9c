"""
Identity Registry

Sign-up and sign-in against the persisted identity-registry record. The
whole registry is one JSON list under one key, so every write replaces the
list in a single operation.
"""

import hashlib
import hmac
import secrets
from typing import List, Optional

import structlog

from storefront.domain.models import UserIdentity
from storefront.domain.parsing import parse_identities
from storefront.errors import DuplicateUsername, InvalidCredentials, StorageFailure
from storefront.storage import keys
from storefront.storage.base import KeyValueStore

logger = structlog.get_logger(__name__)

# Seed/test accounts of the remote catalog occupy ids below this
FIRST_LOCAL_ID = 1000

_DIGEST_SCHEME = "sha256"


def hash_password(password: str, salt: Optional[str] = None) -> str:
    """Salted digest in the form sha256$<salt>$<hex>"""
    salt = salt or secrets.token_hex(8)
    digest = hashlib.sha256(f"{salt}{password}".encode("utf-8")).hexdigest()
    return f"{_DIGEST_SCHEME}${salt}${digest}"


def verify_password(password: str, password_digest: str) -> bool:
    try:
        scheme, salt, _ = password_digest.split("$", 2)
    except ValueError:
        return False
    if scheme != _DIGEST_SCHEME:
        return False
    return hmac.compare_digest(hash_password(password, salt), password_digest)


class IdentityRegistry:
    """
    Registered users.

    Example:
        registry = IdentityRegistry(store)
        user = await registry.sign_up("alice", "s3cret", "alice@example.com")
        same = await registry.sign_in("alice", "s3cret")
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def load(self) -> List[UserIdentity]:
        """All identities in stored order; [] if none registered"""
        raw = await self.store.get(keys.IDENTITY_REGISTRY)
        if raw is None:
            return []

        result = parse_identities(raw)
        if not result.ok:
            raise StorageFailure(
                f"Identity registry is unreadable: {result.reason}",
                operation="parse",
                key=keys.IDENTITY_REGISTRY,
            )
        return result.value

    async def save(self, identities: List[UserIdentity]) -> None:
        payload = "[" + ",".join(identity.to_json() for identity in identities) + "]"
        await self.store.set(keys.IDENTITY_REGISTRY, payload)

    async def list_identities(self) -> List[UserIdentity]:
        return await self.load()

    async def sign_up(self, username: str, password: str, email: str = "") -> UserIdentity:
        """Register a user; ids continue from the highest existing id"""
        username = username.strip()
        if not username:
            raise InvalidCredentials("Username must not be empty")
        if not password:
            raise InvalidCredentials("Password must not be empty", username=username)

        identities = await self.load()
        if any(identity.username == username for identity in identities):
            raise DuplicateUsername(f"Username {username!r} is taken", username=username)

        if identities:
            new_id = max(max(identity.id for identity in identities) + 1, FIRST_LOCAL_ID)
        else:
            new_id = FIRST_LOCAL_ID

        identity = UserIdentity(
            id=new_id,
            username=username,
            password_digest=hash_password(password),
            email=email,
        )
        await self.save(identities + [identity])
        logger.info("User registered", user_id=new_id, username=username)
        return identity

    async def sign_in(self, username: str, password: str) -> UserIdentity:
        """Return the matching identity or raise InvalidCredentials"""
        for identity in await self.load():
            if identity.username == username and verify_password(password, identity.password_digest):
                logger.info("User signed in", user_id=identity.id)
                return identity

        logger.info("Sign-in rejected", username=username)
        raise InvalidCredentials("Unknown username or wrong password", username=username)
