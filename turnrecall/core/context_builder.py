"""
Context assembly for the generation call.
Message order is fixed: system prompt, state dump, related memories, recent window, current input.
"""

import json
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from .models import ChatMessage
from .retriever import Retriever
from .schema import RetrievalResult
from ..util.logging import logger

STATE_HEADER = "Current character state:"
MEMORY_HEADER = "[Related memories] The following past memories are relevant to the current situation:"


def format_state(current_state: Optional[Mapping[str, Any]]) -> str:
    dumped = json.dumps(current_state if current_state is not None else {},
                        indent=2, ensure_ascii=False, default=str)
    return f"{STATE_HEADER}\n```json\n{dumped}\n```"


def format_memories(result: RetrievalResult) -> str:
    """Render retrieved memories as a numbered list for a system message."""
    content = f"{MEMORY_HEADER}\n\n"
    for position, memory in enumerate(result.relevant, start=1):
        content += (
            f"Memory {position} (turn {memory.turn_index}, "
            f"similarity {memory.similarity * 100:.1f}%):\n"
        )
        content += f"- Player action: {memory.user_message}\n"
        content += f"- Story summary: {memory.summary}\n\n"
    return content


def _check_history(entries: List[Any]):
    """Log history entries that are not well-formed chat messages; they are still sent."""
    for position, entry in enumerate(entries):
        try:
            ChatMessage.model_validate(dict(entry))
        except (ValidationError, TypeError, ValueError) as e:
            logger.log_operation("context.history", "invalid", {"position": position, "error": str(e)})


class ContextBuilder:
    """Builds the bounded message list sent to the generation call."""

    def __init__(self, retriever: Retriever):
        self.retriever = retriever
        self.last_report: Dict[str, Any] = {}

    def build_messages(self, system_prompt: str, current_state: Optional[Mapping[str, Any]],
                       query_text: str, recent_window_size: int = 3,
                       full_history: Optional[List[Mapping[str, str]]] = None) -> List[Dict[str, str]]:
        """
        Compose system prompt, state, related memories, recent turns and the new input.

        Args:
            system_prompt: Instructions sent verbatim as the first message
            current_state: Session state dumped as JSON in the second message
            query_text: The new user input, always the last message
            recent_window_size: Number of recent user/assistant pairs to include
            full_history: Complete role-tagged conversation so far

        Returns:
            List of {"role", "content"} dicts
        """
        history = full_history or []
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "system", "content": format_state(current_state)},
        ]

        retrieval = self.retriever.retrieve(query_text, [])
        if not retrieval.is_empty():
            messages.append({"role": "system", "content": format_memories(retrieval)})

        recent_messages = []
        if history and recent_window_size > 0:
            recent_messages = list(history[-recent_window_size * 2:])
            _check_history(recent_messages)
            messages.extend(recent_messages)

        messages.append({"role": "user", "content": query_text})

        self.last_report = self._report(history, recent_window_size, len(recent_messages),
                                        len(retrieval.relevant), len(messages))
        logger.log_context_build(self.last_report)
        return messages

    def _report(self, history: List[Any], recent_window_size: int, recent_count: int,
                retrieved_count: int, total_messages: int) -> Dict[str, Any]:
        total_history = len(history)
        return {
            "total_turns": total_history // 2,
            "total_history_messages": total_history,
            "history_depth": recent_window_size,
            "store_size": len(self.retriever.store),
            "system_messages": 2,
            "retrieved_memories": retrieved_count,
            "recent_turns": recent_count // 2,
            "recent_messages": recent_count,
            "current_input": 1,
            "total_messages": total_messages,
            "token_savings_pct": round((1 - recent_count / total_history) * 100) if total_history else 0,
        }
