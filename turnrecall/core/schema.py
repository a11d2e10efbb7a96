"""
Memory records: indexed turns, state snapshots and retrieval results.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..vector.types import TermVector, vector_from_dict


def _non_empty(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) > 0


@dataclass
class StateSnapshot:
    """Reduced projection of session state kept with each turn."""

    location: Optional[Any] = None
    realm: Optional[Any] = None
    hp: Optional[Any] = None
    mp: Optional[Any] = None
    has_new_items: bool = False
    has_new_relationships: bool = False

    @classmethod
    def from_state(cls, state: Optional[Mapping[str, Any]]) -> "StateSnapshot":
        state = state or {}
        return cls(
            location=state.get("location"),
            realm=state.get("realm"),
            hp=state.get("hp"),
            mp=state.get("mp"),
            # Only whether something was gained, not the items themselves
            has_new_items=_non_empty(state.get("items")),
            has_new_relationships=_non_empty(state.get("relationships")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location,
            "realm": self.realm,
            "hp": self.hp,
            "mp": self.mp,
            "has_new_items": self.has_new_items,
            "has_new_relationships": self.has_new_relationships,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StateSnapshot":
        return cls(
            location=data.get("location"),
            realm=data.get("realm"),
            hp=data.get("hp"),
            mp=data.get("mp"),
            has_new_items=bool(data.get("has_new_items", False)),
            has_new_relationships=bool(data.get("has_new_relationships", False)),
        )


@dataclass
class IndexedTurn:
    """One user/assistant exchange with its vector and summary."""

    turn_index: int
    user_message: str
    assistant_message: str
    vector: TermVector
    summary: str
    state: StateSnapshot
    inserted_at: float

    @property
    def vector_type(self) -> str:
        return self.vector.kind

    @property
    def combined_text(self) -> str:
        return f"{self.user_message}\n{self.assistant_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "turn_index": self.turn_index,
            "user_message": self.user_message,
            "assistant_message": self.assistant_message,
            "vector": self.vector.to_dict(),
            "vector_type": self.vector_type,
            "summary": self.summary,
            "state": self.state.to_dict(),
            "inserted_at": self.inserted_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IndexedTurn":
        return cls(
            turn_index=int(data["turn_index"]),
            user_message=data["user_message"],
            assistant_message=data["assistant_message"],
            vector=vector_from_dict(data["vector"]),
            summary=data.get("summary", ""),
            state=StateSnapshot.from_dict(data.get("state") or {}),
            inserted_at=float(data.get("inserted_at", 0)),
        )


@dataclass
class RetrievedMemory:
    """A stored turn that scored above the recall floor for a query."""

    turn: IndexedTurn
    similarity: float

    @property
    def turn_index(self) -> int:
        return self.turn.turn_index

    @property
    def user_message(self) -> str:
        return self.turn.user_message

    @property
    def assistant_message(self) -> str:
        return self.turn.assistant_message

    @property
    def summary(self) -> str:
        return self.turn.summary


@dataclass
class RetrievalResult:
    relevant: List[RetrievedMemory] = field(default_factory=list)
    recent: List[Any] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.relevant
