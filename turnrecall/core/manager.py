"""
Session-level memory manager.
One instance per conversation session, constructed and passed explicitly by the caller.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .config import MemorySettings, get_remote_embedding_config, load_settings
from .context_builder import ContextBuilder
from .memory_store import MemoryStore
from .models import RemoteEmbeddingConfig
from .persistence import MemoryPersistence
from .retriever import Retriever
from .schema import IndexedTurn, RetrievalResult
from ..vector.embeddings import EmbeddingSelector, OnDeviceEmbedding, normalize_method
from ..util.logging import logger


class ContextVectorManager:
    """
    Indexes conversation turns and assembles token-bounded context for the next turn.

    Ties together the embedding selector, memory store, retriever, context
    builder and persistence adapter over one MemorySettings.
    """

    def __init__(self, settings: MemorySettings = None,
                 remote_config: Optional[RemoteEmbeddingConfig] = None,
                 on_device: Optional[OnDeviceEmbedding] = None,
                 persistence: Optional[MemoryPersistence] = None):
        self.settings = settings or load_settings()
        if remote_config is None:
            remote_config = get_remote_embedding_config()
        self.embedder = EmbeddingSelector(self.settings.embedding_method, remote_config, on_device)
        self.store = MemoryStore(self.embedder)
        self.retriever = Retriever(
            self.store,
            max_retrieve_count=self.settings.max_retrieve_count,
            min_similarity_threshold=self.settings.min_similarity_threshold,
        )
        self.context_builder = ContextBuilder(self.retriever)
        self.persistence = persistence or MemoryPersistence(self.settings.db_path)

    @property
    def embedding_method(self) -> str:
        return self.embedder.method

    @property
    def max_retrieve_count(self) -> int:
        return self.settings.max_retrieve_count

    @max_retrieve_count.setter
    def max_retrieve_count(self, value: int):
        if value < 0:
            raise ValueError("max_retrieve_count must be >= 0")
        self.settings.max_retrieve_count = value
        self.retriever.max_retrieve_count = value

    @property
    def min_similarity_threshold(self) -> float:
        return self.settings.min_similarity_threshold

    @min_similarity_threshold.setter
    def min_similarity_threshold(self, value: float):
        if not 0.0 <= value <= 1.0:
            raise ValueError("min_similarity_threshold must be between 0 and 1")
        self.settings.min_similarity_threshold = value
        self.retriever.min_similarity_threshold = value

    @property
    def conversation_embeddings(self) -> List[IndexedTurn]:
        return self.store.turns

    def set_embedding_method(self, method: str) -> bool:
        if not self.embedder.set_method(method):
            return False
        self.settings.embedding_method = normalize_method(method)
        return True

    async def add_conversation(self, user_message: str, assistant_message: str, turn_index: int,
                               state: Optional[Mapping[str, Any]] = None) -> IndexedTurn:
        """Index one completed turn."""
        turn = await self.store.upsert(turn_index, user_message, assistant_message, state)
        logger.info(
            f"Indexed turn {turn_index} (method: {self.embedding_method}), store size: {len(self.store)}"
        )
        return turn

    def retrieve_relevant_context(self, current_input: str,
                                  recent_history: Optional[List[Any]] = None) -> RetrievalResult:
        return self.retriever.retrieve(current_input, recent_history)

    def build_optimized_messages(self, system_prompt: str, current_state: Optional[Mapping[str, Any]],
                                 current_input: str, history_depth: int = 3,
                                 full_history: Optional[List[Mapping[str, str]]] = None) -> List[Dict[str, str]]:
        return self.context_builder.build_messages(
            system_prompt, current_state, current_input, history_depth, full_history
        )

    def clear(self):
        self.store.clear()
        logger.log_vector_operation("clear", details={"store_size": 0})

    async def save(self) -> bool:
        return await self.persistence.save(self.store)

    async def load(self) -> Optional[int]:
        return await self.persistence.load(self.store)

    def health(self) -> Dict[str, Any]:
        """Return memory system health information."""
        return {
            "status": "healthy",
            "size": len(self.store),
            "embedding_method": self.embedding_method,
            "max_retrieve_count": self.max_retrieve_count,
            "min_similarity_threshold": self.min_similarity_threshold,
            "db_path": self.persistence.db_path,
            "vector_types": sorted({turn.vector_type for turn in self.store}),
            "last_checked": datetime.now().isoformat(),
        }

    def __len__(self) -> int:
        return len(self.store)
