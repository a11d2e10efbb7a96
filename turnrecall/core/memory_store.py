"""
In-memory store of indexed conversation turns, keyed by turn index.
"""

import time
from typing import Any, Iterator, List, Mapping, Optional

from .schema import IndexedTurn, StateSnapshot
from ..vector.embeddings import EmbeddingSelector
from ..vector.keywords import extract_keywords
from ..util.logging import logger

USER_PREVIEW_LENGTH = 50
SUMMARY_KEYWORDS = 5


def extract_summary(user_message: str, assistant_message: str,
                    state: Optional[Mapping[str, Any]] = None) -> str:
    """
    Compact, human-readable summary of a turn.

    Combines a preview of the player's action, the top keywords of the reply
    and the current location when the state carries one.
    """
    parts = []

    if len(user_message) < USER_PREVIEW_LENGTH:
        parts.append(f"Player: {user_message}")
    else:
        parts.append(f"Player: {user_message[:USER_PREVIEW_LENGTH]}...")

    keywords = extract_keywords(assistant_message)
    if keywords:
        top_keywords = ", ".join(term for term, _ in keywords[:SUMMARY_KEYWORDS])
        parts.append(f"Keywords: {top_keywords}")

    location = (state or {}).get("location")
    if location:
        parts.append(f"Location: {location}")

    return " | ".join(parts)


class MemoryStore:
    """
    Append-only log of indexed turns with upsert by turn index.

    Upserting an existing turn index removes the old entry and appends the
    new one, so turn indices stay unique.
    """

    def __init__(self, embedder: Optional[EmbeddingSelector] = None):
        self.embedder = embedder or EmbeddingSelector()
        self._turns: List[IndexedTurn] = []

    async def upsert(self, turn_index: int, user_message: str, assistant_message: str,
                     state: Optional[Mapping[str, Any]] = None) -> IndexedTurn:
        """Vectorize a turn and insert it, replacing any entry with the same index."""
        combined_text = f"{user_message}\n{assistant_message}"

        # Vectorize before touching the store so no half-built entry is visible
        vector = await self.embedder.vectorize(combined_text)

        turn = IndexedTurn(
            turn_index=turn_index,
            user_message=user_message,
            assistant_message=assistant_message,
            vector=vector,
            summary=extract_summary(user_message, assistant_message, state),
            state=StateSnapshot.from_state(state),
            inserted_at=time.time() * 1000,
        )

        if self._remove(turn_index):
            logger.warning(f"Turn {turn_index} already indexed, replacing previous entry")

        self._turns.append(turn)
        logger.log_vector_operation(
            "upsert", turn_index, {"vector_type": turn.vector_type, "store_size": len(self._turns)}
        )
        return turn

    def _remove(self, turn_index: int) -> bool:
        for position, existing in enumerate(self._turns):
            if existing.turn_index == turn_index:
                del self._turns[position]
                return True
        return False

    def get(self, turn_index: int) -> Optional[IndexedTurn]:
        for turn in self._turns:
            if turn.turn_index == turn_index:
                return turn
        return None

    def replace_all(self, turns: List[IndexedTurn]):
        """Swap the whole store, keeping the last entry for any repeated index."""
        by_index = {}
        for turn in turns:
            by_index.pop(turn.turn_index, None)
            by_index[turn.turn_index] = turn
        self._turns = list(by_index.values())

    def clear(self):
        self._turns = []

    @property
    def turns(self) -> List[IndexedTurn]:
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[IndexedTurn]:
        return iter(list(self._turns))

    def __contains__(self, turn_index: int) -> bool:
        return self.get(turn_index) is not None
