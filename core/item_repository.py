# core/item_repository.py
"""
SQLAlchemy-backed store for Item records

Each operation runs in its own short-lived session and transaction, so the
repository is safe to call from several worker threads at once. Returned
items are detached copies owned by the caller.
"""

import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from core.database_models import Item
from core.exceptions import DuplicateItemError

logger = logging.getLogger(__name__)


class ItemRepository:
    """Keyed persistence for Item records"""

    def __init__(self, session_factory: sessionmaker):
        """
        Args:
            session_factory: sessionmaker bound to the application engine.
                It must be created with ``expire_on_commit=False`` so that
                saved items stay readable after their session closes.
        """
        self._session_factory = session_factory

    def find_all(self) -> List[Item]:
        with self._session_factory() as session:
            return list(session.scalars(select(Item).order_by(Item.id)))

    def find_by_id(self, item_id: int) -> Optional[Item]:
        with self._session_factory() as session:
            return session.get(Item, item_id)

    def exists_by_id(self, item_id: int) -> bool:
        with self._session_factory() as session:
            found = session.scalar(select(Item.id).where(Item.id == item_id))
            return found is not None

    def save(self, item: Item) -> Item:
        """
        Insert or update an item in its own transaction

        Returns:
            The persisted item (with ``id`` assigned on insert)

        Raises:
            DuplicateItemError: an integrity constraint rejected the write
        """
        try:
            with self._session_factory.begin() as session:
                saved = session.merge(item)
        except IntegrityError as e:
            logger.info(f"Integrity violation saving item id={item.id}: {e.orig}")
            raise DuplicateItemError(str(e.orig), cause=e) from e

        logger.debug(f"Saved item id={saved.id} status={saved.status}")
        return saved

    def delete_by_id(self, item_id: int) -> None:
        with self._session_factory.begin() as session:
            session.execute(delete(Item).where(Item.id == item_id))
        logger.debug(f"Deleted item id={item_id}")
