import uuid

import pytest

from downnote.domains.versioning.retention import RetentionManager


async def make_snapshots(store, document_id, count, same_time=False):
    created = []
    for i in range(count):
        if not same_time:
            store.tick(seconds=1)
        created.append(await store.create_snapshot(document_id, f"v{i}", f"body {i}", 6, 2))
    return created


class TestPruneWithFakeStore:
    async def test_no_snapshots_is_noop(self, fake_store):
        manager = RetentionManager(fake_store)
        assert await manager.prune(uuid.uuid4()) == 0
        assert "delete_snapshots_except" not in fake_store.calls

    async def test_under_limit_is_noop(self, fake_store):
        document_id = uuid.uuid4()
        await make_snapshots(fake_store, document_id, 20)

        assert await RetentionManager(fake_store).prune(document_id, 20) == 0
        assert len(fake_store.snapshots_of(document_id)) == 20
        assert "delete_snapshots_except" not in fake_store.calls

    async def test_keeps_newest(self, fake_store):
        document_id = uuid.uuid4()
        created = await make_snapshots(fake_store, document_id, 25)

        deleted = await RetentionManager(fake_store).prune(document_id, 20)

        assert deleted == 5
        survivors = {s.uuid for s in fake_store.snapshots_of(document_id)}
        assert survivors == {s.uuid for s in created[5:]}

    async def test_ties_broken_by_creation_order(self, fake_store):
        document_id = uuid.uuid4()
        created = await make_snapshots(fake_store, document_id, 5, same_time=True)

        await RetentionManager(fake_store).prune(document_id, 3)

        survivors = {s.uuid for s in fake_store.snapshots_of(document_id)}
        assert survivors == {s.uuid for s in created[2:]}

    async def test_idempotent(self, fake_store):
        document_id = uuid.uuid4()
        await make_snapshots(fake_store, document_id, 8)
        manager = RetentionManager(fake_store, default_retention_count=4)

        assert await manager.prune(document_id) == 4
        assert await manager.prune(document_id) == 0
        assert len(fake_store.snapshots_of(document_id)) == 4

    async def test_only_touches_given_document(self, fake_store):
        first, second = uuid.uuid4(), uuid.uuid4()
        await make_snapshots(fake_store, first, 6)
        await make_snapshots(fake_store, second, 6)

        await RetentionManager(fake_store).prune(first, 2)

        assert len(fake_store.snapshots_of(first)) == 2
        assert len(fake_store.snapshots_of(second)) == 6

    @pytest.mark.parametrize("failing", ["count_snapshots", "list_snapshot_ids_newest_first", "delete_snapshots_except"])
    async def test_store_failure_is_not_raised(self, fake_store, failing, caplog):
        document_id = uuid.uuid4()
        await make_snapshots(fake_store, document_id, 25)
        fake_store.fail_on.add(failing)

        assert await RetentionManager(fake_store).prune(document_id, 20) == 0
        assert "Failed to prune versions" in caplog.text

    async def test_invalid_retention_count(self, fake_store):
        with pytest.raises(ValueError):
            await RetentionManager(fake_store).prune(uuid.uuid4(), 0)


class TestPruneWithRepository:
    async def test_survivors_are_twenty_newest(self, repository, owner_id):
        document = await repository.create_document("Doc", "", owner_id)
        created = [
            await repository.create_snapshot(document.uuid, "Doc", f"body {i}", 6, 2)
            for i in range(23)
        ]

        deleted = await RetentionManager(repository).prune(document.uuid)

        assert deleted == 3
        assert await repository.count_snapshots(document.uuid) == 20
        remaining = await repository.list_snapshots(document.uuid)
        assert [s.uuid for s in remaining] == [s.uuid for s in reversed(created[3:])]
