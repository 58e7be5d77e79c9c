"""
Identity Migrator

Startup pass that makes user ids unique and moves legacy-range ids out of
the way of the remote catalog's seed accounts, carrying each reassigned
user's cart along.

Steps:
1. Load the identity registry; stop if it is empty.
2. Within every group of identities sharing an id, the first keeps it and
   the rest get new ids from a counter starting at max(1000, max id + 1).
3. Every other identity with an id in [1, 999] also gets a new id.
4. Each reassigned user's cart moves from cart:<old> to cart:<new> with its
   userId rewritten (write the new key, then delete the old one). A move
   whose target key already holds a cart is skipped, never overwritten.
5. The registry is written back only if something was reassigned.

The run is idempotent and never raises: failures are logged and the next
start retries from scratch. A crash between the two single-key writes of a
cart move can leave a copy under both keys; that limitation is accepted.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from storefront.domain.models import UserIdentity
from storefront.domain.parsing import parse_cart
from storefront.errors import StorefrontError
from storefront.identity.registry import FIRST_LOCAL_ID, IdentityRegistry
from storefront.storage import keys
from storefront.storage.base import KeyValueStore

logger = structlog.get_logger(__name__)

LEGACY_ID_MIN = 1
LEGACY_ID_MAX = FIRST_LOCAL_ID - 1


@dataclass
class IdReassignment:
    username: str
    old_id: int
    new_id: int


@dataclass
class MigrationReport:
    """What a migration run changed"""
    reassignments: List[IdReassignment] = field(default_factory=list)
    retained: List[int] = field(default_factory=list)
    carts_moved: int = 0
    carts_skipped: int = 0
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        return bool(self.reassignments or self.retained)


def is_legacy_id(user_id: int) -> bool:
    return LEGACY_ID_MIN <= user_id <= LEGACY_ID_MAX


class IdentityMigrator:
    """
    Dedup migration over the identity registry.

    Example:
        report = await IdentityMigrator(store).run()
        if report.error:
            ...  # logged already; next start retries
    """

    def __init__(self, store: KeyValueStore, registry: Optional[IdentityRegistry] = None):
        self.store = store
        self.registry = registry or IdentityRegistry(store)

    def plan(self, identities: List[UserIdentity], report: MigrationReport) -> List[UserIdentity]:
        """Compute the reassigned identity list without touching storage"""
        updated = [identity.model_copy() for identity in identities]

        groups: Dict[int, List[int]] = OrderedDict()
        for index, identity in enumerate(updated):
            groups.setdefault(identity.id, []).append(index)

        next_id = max(FIRST_LOCAL_ID, max(identity.id for identity in updated) + 1)

        for old_id, members in groups.items():
            if len(members) > 1:
                keeper = updated[members[0]]
                logger.info(
                    "Duplicate user id found",
                    user_id=old_id,
                    members=len(members),
                    kept_by=keeper.username,
                )
                if is_legacy_id(old_id) and not keeper.legacy_id_retained:
                    keeper.legacy_id_retained = True
                    report.retained.append(old_id)
                to_move = members[1:]
            elif is_legacy_id(old_id) and not updated[members[0]].legacy_id_retained:
                to_move = members
            else:
                continue

            for index in to_move:
                identity = updated[index]
                identity.id = next_id
                identity.legacy_id_retained = False
                report.reassignments.append(
                    IdReassignment(username=identity.username, old_id=old_id, new_id=next_id)
                )
                logger.info(
                    "User id reassigned",
                    username=identity.username,
                    old_id=old_id,
                    new_id=next_id,
                )
                next_id += 1

        return updated

    async def move_cart(self, old_id: int, new_id: int) -> bool:
        """Move cart:<old_id> to cart:<new_id>; False if skipped (absent, unreadable, or target taken)"""
        old_key = keys.cart_key(old_id)
        raw = await self.store.get(old_key)
        if raw is None:
            return False

        parsed = parse_cart(raw)
        if not parsed.ok:
            logger.error("Cart migration skipped", key=old_key, reason=parsed.reason)
            return False

        new_key = keys.cart_key(new_id)
        if await self.store.get(new_key) is not None:
            logger.warning("Cart migration skipped, target exists", old_key=old_key, new_key=new_key)
            return False

        cart = parsed.value
        cart.user_id = new_id
        await self.store.set(new_key, cart.to_json())
        await self.store.delete(old_key)
        logger.info("Cart migrated", old_key=old_key, new_key=new_key)
        return True

    async def run(self) -> MigrationReport:
        """Run the migration once; never raises"""
        report = MigrationReport()
        logger.info("Identity migration started")

        try:
            identities = await self.registry.load()
            if not identities:
                logger.info("Identity migration skipped, no users registered")
                return report

            updated = self.plan(identities, report)
            if not report.changed:
                logger.info("Identity migration not needed")
                return report

            for change in report.reassignments:
                if await self.move_cart(change.old_id, change.new_id):
                    report.carts_moved += 1
                else:
                    report.carts_skipped += 1

            await self.registry.save(updated)
        except StorefrontError as e:
            report.error = e.message
            logger.error("Identity migration failed", error_kind=e.kind, error=e.message)
            return report

        logger.info(
            "Identity migration complete",
            reassigned=len(report.reassignments),
            carts_moved=report.carts_moved,
        )
        return report
