# services/item_service.py
"""
Item business operations

CRUD calls delegate straight to the repository and let its errors
propagate. ``process_items_async`` is the best-effort batch sweep: every
item is marked PROCESSED and saved in its own concurrent task, failures are
logged and dropped, and only the successfully saved items are returned.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from core.database_models import Item, ItemStatus
from core.item_repository import ItemRepository

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ('name', 'description', 'status', 'email')


class ItemService:
    """Item operations on top of an ItemRepository"""

    def __init__(self, repository: ItemRepository, max_concurrency: int = 16):
        """
        Args:
            repository: The item store
            max_concurrency: Upper bound on per-item tasks running at once during a batch
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.repository = repository
        self.max_concurrency = max_concurrency

    def find_all(self) -> List[Item]:
        return self.repository.find_all()

    def find_by_id(self, item_id: int) -> Optional[Item]:
        return self.repository.find_by_id(item_id)

    def exists_by_id(self, item_id: int) -> bool:
        return self.repository.exists_by_id(item_id)

    def save(self, item: Item) -> Item:
        return self.repository.save(item)

    def delete_by_id(self, item_id: int) -> None:
        self.repository.delete_by_id(item_id)

    def update(self, item_id: int, fields: Dict[str, Any]) -> Optional[Item]:
        """
        Overwrite an existing item's fields and save it

        Returns:
            The saved item, or None if no item has ``item_id``
        """
        existing = self.repository.find_by_id(item_id)
        if existing is None:
            return None

        for name in UPDATABLE_FIELDS:
            setattr(existing, name, fields.get(name))
        return self.repository.save(existing)

    def process_and_save(self, item: Item) -> Item:
        """Mark one item PROCESSED and persist it; raises if either step fails"""
        item.status = ItemStatus.PROCESSED.value
        return self.repository.save(item)

    async def process_items_async(self) -> List[Item]:
        """
        Mark every stored item PROCESSED, concurrently

        The snapshot is read once at the start; items added while the batch
        runs may be missed. A failure to read the snapshot propagates, but a
        failure of any single item is logged and that item is left out of the
        result. Returns only after every per-item task has settled. Results
        keep the snapshot order.
        """
        items = await asyncio.to_thread(self.repository.find_all)
        if not items:
            return []

        logger.info(f"Processing {len(items)} items")
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(item: Item) -> Item:
            async with semaphore:
                return await asyncio.to_thread(self.process_and_save, item)

        outcomes = await asyncio.gather(
            *(run(item) for item in items),
            return_exceptions=True
        )

        processed = []
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, BaseException):
                item_id = getattr(item, 'id', None)
                logger.warning(
                    f"Failed processing item id={item_id if item_id is not None else 'unknown'}: {outcome}",
                    exc_info=outcome
                )
                continue
            processed.append(outcome)

        logger.info(f"Processed {len(processed)}/{len(items)} items")
        return processed
