import uuid

import pytest
from sqlalchemy import text

from downnote.domains.versioning.errors import (
    ConcurrentModificationError, NotFoundError, RestoreFailedError, StoreUnavailableError
)
from downnote.domains.versioning.restore import RestoreCoordinator, RestoreState
from downnote.domains.versioning.retention import RetentionManager


def coordinator_for(store, retention_count=20):
    return RestoreCoordinator(store, RetentionManager(store, retention_count))


@pytest.fixture
async def document_with_history(fake_store, owner_id):
    document = await fake_store.create_document("Draft", "first body", owner_id)
    fake_store.tick(minutes=1)
    old = await fake_store.create_snapshot(document.uuid, "Draft", "first body", 10, 2)
    fake_store.tick(minutes=10)
    document = await fake_store.update_document(document.uuid, title="Final", body="current body here")
    fake_store.calls.clear()
    return document, old


class TestRestoreWithFakeStore:
    async def test_restores_title_and_body(self, fake_store, owner_id, document_with_history):
        document, old = document_with_history

        restored = await coordinator_for(fake_store).restore(document.uuid, old.uuid, owner_id)

        assert restored.title == "Draft"
        assert restored.body == "first body"
        assert restored.version == document.version + 1
        assert restored.updated_at >= document.updated_at

    async def test_safety_snapshot_preserves_current_state(self, fake_store, owner_id, document_with_history):
        document, old = document_with_history
        before = len(fake_store.snapshots_of(document.uuid))

        await coordinator_for(fake_store).restore(document.uuid, old.uuid, owner_id)

        snapshots = fake_store.snapshots_of(document.uuid)
        assert len(snapshots) == before + 1
        safety = snapshots[0]
        assert safety.title == "Final"
        assert safety.body == "current body here"
        assert (safety.char_count, safety.word_count) == (17, 3)

    async def test_steps_run_in_order(self, fake_store, owner_id, document_with_history):
        document, old = document_with_history
        coordinator = coordinator_for(fake_store)

        await coordinator.restore(document.uuid, old.uuid, owner_id)

        assert coordinator.state is RestoreState.DONE
        assert coordinator.history == [
            RestoreState.IDLE,
            RestoreState.SNAPSHOTTING_CURRENT,
            RestoreState.OVERWRITING,
            RestoreState.PRUNING,
            RestoreState.DONE,
        ]
        write_calls = [c for c in fake_store.calls if c in ("create_snapshot", "update_document", "count_snapshots")]
        assert write_calls == ["create_snapshot", "update_document", "count_snapshots"]

    async def test_snapshot_of_another_document_is_not_found(self, fake_store, owner_id, document_with_history):
        document, _ = document_with_history
        other = await fake_store.create_document("Other", "other body", owner_id)
        foreign = await fake_store.create_snapshot(other.uuid, "Other", "other body", 10, 2)
        snapshots_before = len(fake_store.snapshots_of(document.uuid))
        coordinator = coordinator_for(fake_store)

        with pytest.raises(NotFoundError) as excinfo:
            await coordinator.restore(document.uuid, foreign.uuid, owner_id)

        assert fake_store.documents[document.uuid].body == "current body here"
        assert len(fake_store.snapshots_of(document.uuid)) == snapshots_before
        assert coordinator.state is RestoreState.FAILED
        assert str(excinfo.value) == str(NotFoundError())

    async def test_missing_document_and_foreign_owner_look_the_same(
        self, fake_store, owner_id, other_owner_id, document_with_history
    ):
        document, old = document_with_history

        with pytest.raises(NotFoundError) as missing:
            await coordinator_for(fake_store).restore(uuid.uuid4(), old.uuid, owner_id)
        with pytest.raises(NotFoundError) as foreign:
            await coordinator_for(fake_store).restore(document.uuid, old.uuid, other_owner_id)

        assert str(missing.value) == str(foreign.value)
        assert "create_snapshot" not in fake_store.calls

    async def test_safety_snapshot_failure_aborts(self, fake_store, owner_id, document_with_history):
        document, old = document_with_history
        fake_store.fail_on.add("create_snapshot")
        coordinator = coordinator_for(fake_store)

        with pytest.raises(RestoreFailedError) as excinfo:
            await coordinator.restore(document.uuid, old.uuid, owner_id)

        assert excinfo.value.step == RestoreState.SNAPSHOTTING_CURRENT.value
        assert isinstance(excinfo.value.__cause__, StoreUnavailableError)
        assert "update_document" not in fake_store.calls
        assert fake_store.documents[document.uuid].body == "current body here"
        assert coordinator.state is RestoreState.FAILED

    async def test_overwrite_failure_is_surfaced(self, fake_store, owner_id, document_with_history):
        document, old = document_with_history
        fake_store.fail_on.add("update_document")

        with pytest.raises(RestoreFailedError) as excinfo:
            await coordinator_for(fake_store).restore(document.uuid, old.uuid, owner_id)

        assert excinfo.value.step == RestoreState.OVERWRITING.value

    async def test_prune_failure_does_not_fail_restore(self, fake_store, owner_id, document_with_history):
        document, old = document_with_history
        fake_store.fail_on.add("count_snapshots")
        coordinator = coordinator_for(fake_store)

        restored = await coordinator.restore(document.uuid, old.uuid, owner_id)

        assert restored.body == "first body"
        assert coordinator.state is RestoreState.DONE

    async def test_restore_prunes_history(self, fake_store, owner_id, document_with_history):
        document, old = document_with_history
        for i in range(3):
            fake_store.tick(seconds=1)
            await fake_store.create_snapshot(document.uuid, "Final", f"edit {i}", 6, 2)

        await coordinator_for(fake_store, retention_count=3).restore(document.uuid, old.uuid, owner_id)

        assert len(fake_store.snapshots_of(document.uuid)) == 3

    async def test_coordinator_is_single_use(self, fake_store, owner_id, document_with_history):
        document, old = document_with_history
        coordinator = coordinator_for(fake_store)
        await coordinator.restore(document.uuid, old.uuid, owner_id)

        with pytest.raises(RuntimeError):
            await coordinator.restore(document.uuid, old.uuid, owner_id)


class TestRestoreWithRepository:
    async def test_restore_round_trip(self, repository, owner_id):
        document = await repository.create_document("One", "first", owner_id)
        first = await repository.create_snapshot(document.uuid, "One", "first", 5, 1)
        await repository.update_document(document.uuid, title="Two", body="second version")

        restored = await coordinator_for(repository).restore(document.uuid, first.uuid, owner_id)

        assert (restored.title, restored.body) == ("One", "first")
        snapshots = await repository.list_snapshots(document.uuid)
        assert len(snapshots) == 2
        assert snapshots[0].body == "second version"

    async def test_failed_overwrite_rolls_back_safety_snapshot(self, repository, owner_id, monkeypatch):
        document = await repository.create_document("One", "first", owner_id)
        first = await repository.create_snapshot(document.uuid, "One", "first", 5, 1)

        async def broken_update(*args, **kwargs):
            raise StoreUnavailableError("update failed")

        monkeypatch.setattr(repository, "update_document", broken_update)

        with pytest.raises(RestoreFailedError):
            await coordinator_for(repository).restore(document.uuid, first.uuid, owner_id)

        assert await repository.count_snapshots(document.uuid) == 1
        current = await repository.get_document(document.uuid, owner_id)
        assert current.body == "first"

    async def test_concurrent_edit_is_detected(self, repository, owner_id, monkeypatch):
        document = await repository.create_document("One", "first", owner_id)
        first = await repository.create_snapshot(document.uuid, "One", "first", 5, 1)
        original_create_snapshot = repository.create_snapshot

        async def create_snapshot_then_race(*args, **kwargs):
            snapshot = await original_create_snapshot(*args, **kwargs)
            # Another writer bumps the version between read and overwrite
            await repository.session.execute(
                text("UPDATE documents SET version = version + 1")
            )
            return snapshot

        monkeypatch.setattr(repository, "create_snapshot", create_snapshot_then_race)

        with pytest.raises(ConcurrentModificationError):
            await coordinator_for(repository).restore(document.uuid, first.uuid, owner_id)

        assert await repository.count_snapshots(document.uuid) == 1
