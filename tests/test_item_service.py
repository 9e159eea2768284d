"""Tests for ItemService, including the concurrent batch sweep."""

import logging
import threading
import time
from unittest.mock import MagicMock

import pytest

from core.database_models import Item, ItemStatus
from core.exceptions import DuplicateItemError
from core.item_repository import ItemRepository
from services.item_service import ItemService


def make_items(count):
    return [
        Item(id=i, name=f"n{i}", description='d', status=ItemStatus.NEW.value, email=f"u{i}@example.org")
        for i in range(1, count + 1)
    ]


@pytest.fixture
def repo():
    repo = MagicMock(spec=ItemRepository)
    repo.save.side_effect = lambda item: item
    return repo


@pytest.fixture
def service(repo):
    return ItemService(repo)


class TestCrudDelegation:
    """CRUD calls go straight to the repository."""

    def test_find_all(self, service, repo):
        items = make_items(2)
        repo.find_all.return_value = items

        assert service.find_all() is items
        repo.find_all.assert_called_once_with()

    def test_find_by_id(self, service, repo):
        item = make_items(1)[0]
        repo.find_by_id.return_value = item

        assert service.find_by_id(1) is item
        repo.find_by_id.assert_called_once_with(1)

    def test_exists_by_id(self, service, repo):
        repo.exists_by_id.return_value = True

        assert service.exists_by_id(5) is True
        repo.exists_by_id.assert_called_once_with(5)

    def test_save_propagates_conflict(self, service, repo):
        repo.save.side_effect = DuplicateItemError('dup')

        with pytest.raises(DuplicateItemError):
            service.save(make_items(1)[0])

    def test_delete_by_id(self, service, repo):
        service.delete_by_id(7)

        repo.delete_by_id.assert_called_once_with(7)

    def test_update_overwrites_fields(self, service, repo):
        repo.find_by_id.return_value = make_items(1)[0]

        updated = service.update(1, {
            'name': 'new',
            'description': None,
            'status': ItemStatus.CANCELLED.value,
            'email': 'new@example.org',
        })

        assert updated.name == 'new'
        assert updated.description is None
        assert updated.status == ItemStatus.CANCELLED.value
        assert updated.email == 'new@example.org'
        repo.save.assert_called_once()

    def test_update_missing_item_returns_none(self, service, repo):
        repo.find_by_id.return_value = None

        assert service.update(99, {'name': 'x'}) is None
        repo.save.assert_not_called()

    def test_rejects_non_positive_concurrency(self, repo):
        with pytest.raises(ValueError):
            ItemService(repo, max_concurrency=0)


class TestProcessAndSave:

    def test_marks_processed_and_saves(self, service, repo):
        item = make_items(1)[0]

        result = service.process_and_save(item)

        assert result.status == ItemStatus.PROCESSED.value
        repo.save.assert_called_once_with(item)

    def test_propagates_store_error(self, service, repo):
        repo.save.side_effect = RuntimeError('fail')

        with pytest.raises(RuntimeError):
            service.process_and_save(make_items(1)[0])


class TestProcessItemsAsync:
    """The batch sweep isolates per-item failures."""

    @pytest.mark.asyncio
    async def test_returns_only_successful_items(self, service, repo, caplog):
        caplog.set_level(logging.WARNING, logger='services.item_service')
        repo.find_all.return_value = make_items(2)

        def save(item):
            if item.id == 2:
                raise DuplicateItemError('UNIQUE constraint failed: items.email')
            return item

        repo.save.side_effect = save

        result = await service.process_items_async()

        assert [item.id for item in result] == [1]
        assert result[0].status == ItemStatus.PROCESSED.value
        assert repo.save.call_count == 2
        assert 'Failed processing item id=2' in caplog.text
        assert 'UNIQUE constraint failed' in caplog.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize('failing', [
        set(),
        {1},
        {5},
        {2, 4},
        {1, 2, 3, 4, 5},
    ])
    async def test_result_is_complement_of_failures(self, service, repo, failing):
        repo.find_all.return_value = make_items(5)

        def save(item):
            if item.id in failing:
                raise RuntimeError(f"cannot save {item.id}")
            return item

        repo.save.side_effect = save

        result = await service.process_items_async()

        assert sorted(item.id for item in result) == sorted(set(range(1, 6)) - failing)
        assert all(item.status == ItemStatus.PROCESSED.value for item in result)
        assert repo.save.call_count == 5

    @pytest.mark.asyncio
    async def test_results_keep_snapshot_order(self, service, repo):
        repo.find_all.return_value = make_items(4)

        def save(item):
            # Later items finish first
            time.sleep(0.01 * (5 - item.id))
            return item

        repo.save.side_effect = save

        result = await service.process_items_async()

        assert [item.id for item in result] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_status_failure_is_isolated(self, service, repo, caplog):
        caplog.set_level(logging.WARNING, logger='services.item_service')

        class BrokenItem:
            id = 3

            @property
            def status(self):
                return ItemStatus.NEW.value

            @status.setter
            def status(self, value):
                raise RuntimeError('status is read-only')

        repo.find_all.return_value = make_items(2) + [BrokenItem()]

        result = await service.process_items_async()

        assert [item.id for item in result] == [1, 2]
        assert 'Failed processing item id=3' in caplog.text

    @pytest.mark.asyncio
    async def test_missing_id_logged_as_unknown(self, service, repo, caplog):
        caplog.set_level(logging.WARNING, logger='services.item_service')
        orphan = Item(name='n', status=ItemStatus.NEW.value, email='o@example.org')
        repo.find_all.return_value = [orphan]
        repo.save.side_effect = RuntimeError('no id')

        result = await service.process_items_async()

        assert result == []
        assert 'Failed processing item id=unknown' in caplog.text

    @pytest.mark.asyncio
    async def test_snapshot_failure_aborts_batch(self, service, repo):
        repo.find_all.side_effect = RuntimeError('database unavailable')

        with pytest.raises(RuntimeError, match='database unavailable'):
            await service.process_items_async()
        repo.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_store(self, service, repo):
        repo.find_all.return_value = []

        assert await service.process_items_async() == []
        repo.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_items_are_saved_concurrently(self, service, repo):
        repo.find_all.return_value = make_items(3)
        barrier = threading.Barrier(3, timeout=5)

        def save(item):
            # Only passes if all three saves are in flight together
            barrier.wait()
            return item

        repo.save.side_effect = save

        result = await service.process_items_async()

        assert len(result) == 3

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, repo):
        service = ItemService(repo, max_concurrency=2)
        repo.find_all.return_value = make_items(6)
        lock = threading.Lock()
        state = {'running': 0, 'peak': 0}

        def save(item):
            with lock:
                state['running'] += 1
                state['peak'] = max(state['peak'], state['running'])
            time.sleep(0.02)
            with lock:
                state['running'] -= 1
            return item

        repo.save.side_effect = save

        result = await service.process_items_async()

        assert len(result) == 6
        assert state['peak'] <= 2

    @pytest.mark.asyncio
    async def test_waits_for_every_task(self, service, repo):
        repo.find_all.return_value = make_items(3)
        finished = []

        def save(item):
            time.sleep(0.05)
            if item.id == 2:
                raise RuntimeError('late failure')
            finished.append(item.id)
            return item

        repo.save.side_effect = save

        result = await service.process_items_async()

        assert sorted(finished) == [1, 3]
        assert len(result) == 2

    @pytest.mark.asyncio
    async def test_rerun_resaves_processed_items(self, service, repo):
        items = make_items(2)
        repo.find_all.return_value = items

        first = await service.process_items_async()
        second = await service.process_items_async()

        assert len(first) == len(second) == 2
        assert all(item.status == ItemStatus.PROCESSED.value for item in second)
        assert repo.save.call_count == 4
