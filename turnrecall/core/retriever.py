"""
Relevance retrieval over the memory store.
Queries are always vectorized lexically so stored turns from any backend stay comparable.
"""

from typing import Any, List, Optional

from .memory_store import MemoryStore
from .schema import RetrievalResult, RetrievedMemory
from ..vector.keywords import create_keyword_vector
from ..vector.similarity import cosine_similarity
from ..vector.types import DENSE
from ..util.logging import logger


class Retriever:
    """Scores stored turns against a query and keeps the top matches above the recall floor."""

    def __init__(self, store: MemoryStore, max_retrieve_count: int = 5,
                 min_similarity_threshold: float = 0.3):
        self.store = store
        self.max_retrieve_count = max_retrieve_count
        self.min_similarity_threshold = min_similarity_threshold

    def retrieve(self, query_text: str, recent_history: Optional[List[Any]] = None) -> RetrievalResult:
        """
        Find past turns relevant to the query.

        Args:
            query_text: Current user input
            recent_history: Recent-turn list passed through unchanged

        Returns:
            RetrievalResult with at most max_retrieve_count memories, each scoring
            at least min_similarity_threshold, best first
        """
        recent = recent_history if recent_history is not None else []

        if len(self.store) == 0:
            return RetrievalResult([], recent)

        try:
            query_vector = create_keyword_vector(query_text)
            if query_vector.is_empty():
                logger.warning("Query produced an empty keyword vector, skipping retrieval")
                return RetrievalResult([], recent)

            scored = []
            for turn in self.store:
                turn_vector = turn.vector
                if turn_vector.kind == DENSE:
                    # Re-derive keywords so the comparison is sparse against sparse
                    turn_vector = create_keyword_vector(turn.combined_text)

                scored.append(RetrievedMemory(turn, cosine_similarity(query_vector, turn_vector)))

            relevant = [item for item in scored if item.similarity >= self.min_similarity_threshold]
            relevant.sort(key=lambda item: item.similarity, reverse=True)
            relevant = relevant[:self.max_retrieve_count]

        except Exception as e:
            logger.log_operation("retrieval.query", "failed", {"error": str(e)})
            return RetrievalResult([], recent)

        logger.log_retrieval(len(self.store), relevant)
        return RetrievalResult(relevant, recent)
