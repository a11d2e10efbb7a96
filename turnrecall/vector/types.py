"""
Term vector representations.
A vector is either sparse (term -> weight) or dense (ordered embedding dimensions);
the kind tag travels with the value and the two are never coerced into each other.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


SPARSE = "sparse"
DENSE = "dense"


@dataclass
class SparseVector:
    """Bag-of-words vector: term -> non-negative weight."""

    weights: Dict[str, float] = field(default_factory=dict)
    """Term weights, keys unique, no meaningful order"""

    kind = SPARSE

    def is_empty(self) -> bool:
        return len(self.weights) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "weights": dict(self.weights)}


@dataclass
class DenseVector:
    """Fixed-order embedding from a remote or on-device model."""

    values: List[float] = field(default_factory=list)
    """Embedding dimensions, order is significant"""

    kind = DENSE

    def is_empty(self) -> bool:
        return len(self.values) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "values": list(self.values)}


TermVector = Union[SparseVector, DenseVector]


def vector_from_dict(data: Dict[str, Any]) -> TermVector:
    """Rebuild a vector from its serialized form.

    Raises:
        ValueError: if the kind tag is missing or unknown.
    """
    kind = data.get("kind")
    if kind == SPARSE:
        return SparseVector({str(k): float(v) for k, v in data.get("weights", {}).items()})
    if kind == DENSE:
        return DenseVector([float(v) for v in data.get("values", [])])
    raise ValueError(f"Unknown vector kind: {kind!r}")
