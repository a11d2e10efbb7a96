"""
Best-effort save/load of the memory store to the local SQLite file.
Storage errors are logged and swallowed.
"""

import asyncio
import time
from typing import Optional

from . import db
from .memory_store import MemoryStore
from .models import PersistedMemory
from .schema import IndexedTurn
from ..util.logging import logger

RECORD_KEY = "main"


class MemoryPersistence:
    """Writes the whole store as one record under a fixed key."""

    def __init__(self, db_path: str = None):
        self.db_path = db_path or db.DB_PATH

    async def save(self, store: MemoryStore) -> bool:
        """Overwrite the saved store. Returns False if the write failed."""
        try:
            record = PersistedMemory(
                id=RECORD_KEY,
                embeddings=[turn.to_dict() for turn in store],
                timestamp=time.time() * 1000,
            )
            await asyncio.to_thread(
                db.put_record, RECORD_KEY, record.model_dump_json(), record.timestamp, self.db_path
            )
        except Exception as e:
            logger.log_persistence("save", "failed", {"db_path": self.db_path, "error": str(e)})
            return False

        logger.log_persistence("save", "success", {"db_path": self.db_path, "turns": len(store)})
        return True

    async def load(self, store: MemoryStore) -> Optional[int]:
        """
        Replace the store with the saved one.

        Returns:
            Number of loaded turns, or None when nothing was saved or the
            read failed; the store is left untouched in both cases.
        """
        try:
            row = await asyncio.to_thread(db.get_record, RECORD_KEY, self.db_path)
            if row is None:
                logger.log_persistence("load", "skipped", {"db_path": self.db_path, "reason": "no saved memory"})
                return None

            record = PersistedMemory.model_validate_json(row[0])
            turns = [IndexedTurn.from_dict(item) for item in record.embeddings]
        except Exception as e:
            logger.log_persistence("load", "failed", {"db_path": self.db_path, "error": str(e)})
            return None

        store.replace_all(turns)
        logger.log_persistence("load", "success", {"db_path": self.db_path, "turns": len(turns)})
        return len(turns)
