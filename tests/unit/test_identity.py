"""
Unit Tests - Identity Registry and Migrator
"""
import json

import pytest

from storefront.errors import DuplicateUsername, InvalidCredentials, StorageFailure
from storefront.identity.migrator import IdentityMigrator
from storefront.identity.registry import IdentityRegistry, hash_password, verify_password
from storefront.storage.memory import MemoryStore


def registry_record(*users):
    """identity-registry value for (id, username) pairs"""
    return json.dumps([
        {"id": user_id, "username": name, "passwordDigest": hash_password("pw", "salt"), "email": ""}
        for user_id, name in users
    ])


def cart_record(user_id, *items):
    return json.dumps({
        "id": 1700000000000 + user_id,
        "userId": user_id,
        "lastModified": "2025-01-01T00:00:00+00:00",
        "items": [{"productId": p, "quantity": q} for p, q in items],
    })


async def stored_ids(store):
    return [(u["id"], u["username"]) for u in json.loads(await store.get("identity-registry"))]


class TestPasswords:
    """Tests for password digests"""

    def test_round_trip(self):
        digest = hash_password("s3cret")

        assert digest.startswith("sha256$")
        assert verify_password("s3cret", digest)
        assert not verify_password("wrong", digest)

    def test_salted(self):
        assert hash_password("pw") != hash_password("pw")

    def test_unknown_scheme(self):
        assert not verify_password("pw", "plaintext")


class TestIdentityRegistry:
    """Tests for sign-up and sign-in"""

    @pytest.mark.asyncio
    async def test_first_user_gets_1000(self):
        registry = IdentityRegistry(MemoryStore())

        user = await registry.sign_up("alice", "pw", "alice@example.com")

        assert user.id == 1000
        assert user.password_digest != "pw"

    @pytest.mark.asyncio
    async def test_ids_continue_from_max(self):
        store = MemoryStore({"identity-registry": registry_record((1000, "a"), (1004, "b"))})
        registry = IdentityRegistry(store)

        user = await registry.sign_up("carol", "pw")

        assert user.id == 1005
        assert [i.id for i in await registry.list_identities()] == [1000, 1004, 1005]

    @pytest.mark.asyncio
    async def test_duplicate_username(self):
        store = MemoryStore()
        registry = IdentityRegistry(store)
        await registry.sign_up("alice", "pw")
        before = await store.get("identity-registry")

        with pytest.raises(DuplicateUsername):
            await registry.sign_up("alice", "other")
        assert await store.get("identity-registry") == before

    @pytest.mark.asyncio
    async def test_empty_username_rejected(self):
        registry = IdentityRegistry(MemoryStore())

        with pytest.raises(InvalidCredentials):
            await registry.sign_up("  ", "pw")

    @pytest.mark.asyncio
    async def test_sign_in(self):
        registry = IdentityRegistry(MemoryStore())
        created = await registry.sign_up("alice", "pw")

        user = await registry.sign_in("alice", "pw")

        assert user.id == created.id

    @pytest.mark.asyncio
    async def test_sign_in_wrong_password(self):
        registry = IdentityRegistry(MemoryStore())
        await registry.sign_up("alice", "pw")

        with pytest.raises(InvalidCredentials) as exc_info:
            await registry.sign_in("alice", "nope")
        assert exc_info.value.to_dict()["kind"] == "invalid_credentials"

    @pytest.mark.asyncio
    async def test_unreadable_registry(self):
        registry = IdentityRegistry(MemoryStore({"identity-registry": "{}"}))

        with pytest.raises(StorageFailure):
            await registry.sign_in("alice", "pw")


class TestIdentityMigrator:
    """Tests for the dedup migration"""

    @pytest.mark.asyncio
    async def test_no_registry(self):
        store = MemoryStore()

        report = await IdentityMigrator(store).run()

        assert not report.changed
        assert report.error is None
        assert store.writes == 0

    @pytest.mark.asyncio
    async def test_empty_registry(self):
        store = MemoryStore({"identity-registry": "[]"})

        report = await IdentityMigrator(store).run()

        assert not report.changed
        assert store.writes == 0

    @pytest.mark.asyncio
    async def test_dedup_scenario(self):
        """Test two users with id 5: one keeps 5, the other gets 1000 with the cart"""
        store = MemoryStore({
            "identity-registry": registry_record((5, "alice"), (5, "bob")),
            "cart:5": cart_record(5, (3, 2)),
        })

        report = await IdentityMigrator(store).run()

        assert await stored_ids(store) == [(5, "alice"), (1000, "bob")]
        assert await store.get("cart:5") is None
        moved = json.loads(await store.get("cart:1000"))
        assert moved["userId"] == 1000
        assert moved["items"] == [{"productId": 3, "quantity": 2}]
        assert report.carts_moved == 1
        assert [(r.old_id, r.new_id) for r in report.reassignments] == [(5, 1000)]

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self):
        """Test running twice changes nothing on the second run"""
        store = MemoryStore({
            "identity-registry": registry_record((5, "alice"), (5, "bob"), (7, "carol"), (1200, "dave")),
            "cart:5": cart_record(5, (1, 1)),
            "cart:7": cart_record(7, (2, 1)),
        })
        migrator = IdentityMigrator(store)

        await migrator.run()
        after_first = store.snapshot()
        writes_after_first = store.writes

        report = await migrator.run()

        assert not report.changed
        assert store.snapshot() == after_first
        assert store.writes == writes_after_first

    @pytest.mark.asyncio
    async def test_counter_starts_above_max_id(self):
        """Test new ids continue after the highest existing id"""
        store = MemoryStore({
            "identity-registry": registry_record((1500, "x"), (1500, "y"), (3, "z")),
        })

        await IdentityMigrator(store).run()

        assert await stored_ids(store) == [(1500, "x"), (1501, "y"), (1502, "z")]

    @pytest.mark.asyncio
    async def test_legacy_range_reassigned(self):
        """Test unique ids in [1, 999] move to the local range with their carts"""
        store = MemoryStore({
            "identity-registry": registry_record((1, "a"), (999, "b"), (1000, "c"), (0, "d")),
            "cart:999": cart_record(999, (4, 4)),
        })

        report = await IdentityMigrator(store).run()

        assert await stored_ids(store) == [(1001, "a"), (1002, "b"), (1000, "c"), (0, "d")]
        assert json.loads(await store.get("cart:1002"))["userId"] == 1002
        assert await store.get("cart:999") is None
        assert report.carts_moved == 1
        assert report.carts_skipped == 1

    @pytest.mark.asyncio
    async def test_three_way_collision(self):
        store = MemoryStore({
            "identity-registry": registry_record((2000, "a"), (2000, "b"), (2000, "c")),
        })

        await IdentityMigrator(store).run()

        assert await stored_ids(store) == [(2000, "a"), (2001, "b"), (2002, "c")]

    @pytest.mark.asyncio
    async def test_nothing_to_do_writes_nothing(self):
        store = MemoryStore({"identity-registry": registry_record((1000, "a"), (1001, "b"))})

        report = await IdentityMigrator(store).run()

        assert not report.changed
        assert store.writes == 0

    @pytest.mark.asyncio
    async def test_unreadable_cart_is_skipped(self):
        store = MemoryStore({
            "identity-registry": registry_record((5, "a")),
            "cart:5": "not json",
        })

        report = await IdentityMigrator(store).run()

        assert report.error is None
        assert report.carts_skipped == 1
        assert await store.get("cart:5") == "not json"
        assert await stored_ids(store) == [(1000, "a")]

    @pytest.mark.asyncio
    async def test_storage_failure_is_contained_and_retried(self):
        """Test a write failure is logged, not raised, and the next run completes"""
        store = MemoryStore({
            "identity-registry": registry_record((5, "a"), (5, "b")),
            "cart:5": cart_record(5, (1, 1)),
        })
        store.fail_on("set", "identity-registry")
        migrator = IdentityMigrator(store)

        report = await migrator.run()

        assert report.error is not None
        assert await stored_ids(store) == [(5, "a"), (5, "b")]

        store.heal()
        report = await migrator.run()

        assert report.error is None
        assert await stored_ids(store) == [(5, "a"), (1000, "b")]
        assert json.loads(await store.get("cart:1000"))["userId"] == 1000

    @pytest.mark.asyncio
    async def test_unreadable_registry_is_contained(self):
        store = MemoryStore({"identity-registry": "garbage"})

        report = await IdentityMigrator(store).run()

        assert report.error is not None
        assert await store.get("identity-registry") == "garbage"

    @pytest.mark.asyncio
    async def test_existing_target_cart_is_not_overwritten(self):
        """Test a cart already at the new id survives and the old one is kept"""
        store = MemoryStore({
            "identity-registry": registry_record((5, "a"), (5, "b")),
            "cart:5": cart_record(5, (1, 1)),
            "cart:1000": cart_record(1000, (9, 9)),
        })

        report = await IdentityMigrator(store).run()

        assert report.error is None
        assert report.carts_moved == 0
        assert report.carts_skipped == 1
        assert json.loads(await store.get("cart:1000"))["items"] == [{"productId": 9, "quantity": 9}]
        assert await store.get("cart:5") is not None
        assert await stored_ids(store) == [(5, "a"), (1000, "b")]
