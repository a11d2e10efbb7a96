"""
Cosine similarity over sparse and dense term vectors.
"""

import math
from typing import Dict, Optional, Sequence

import numpy as np

from .types import DENSE, TermVector
from ..util.logging import logger


def cosine_similarity(vec_a: Optional[TermVector], vec_b: Optional[TermVector]) -> float:
    """
    Cosine similarity in [0, 1].

    Absent vectors and mismatched kinds score 0 rather than raising. Sparse
    vectors are compared over the union of their keys; dense vectors over
    their common prefix.
    """
    if vec_a is None or vec_b is None:
        logger.warning("Similarity requested with an empty vector")
        return 0.0

    if vec_a.kind != vec_b.kind:
        logger.warning(f"Similarity requested across vector kinds ({vec_a.kind} vs {vec_b.kind})")
        return 0.0

    if vec_a.kind == DENSE:
        score = _dense_cosine(vec_a.values, vec_b.values)
    else:
        score = _sparse_cosine(vec_a.weights, vec_b.weights)

    return min(max(score, 0.0), 1.0)


def _sparse_cosine(weights_a: Dict[str, float], weights_b: Dict[str, float]) -> float:
    dot_product = 0.0
    norm_a = 0.0
    norm_b = 0.0

    for key in set(weights_a) | set(weights_b):
        a = weights_a.get(key, 0)
        b = weights_b.get(key, 0)
        dot_product += a * b
        norm_a += a * a
        norm_b += b * b

    if norm_a == 0 or norm_b == 0:
        return 0.0

    return dot_product / (math.sqrt(norm_a) * math.sqrt(norm_b))


def _dense_cosine(values_a: Sequence[float], values_b: Sequence[float]) -> float:
    length = min(len(values_a), len(values_b))
    if length == 0:
        return 0.0

    a = np.asarray(values_a[:length], dtype=np.float64)
    b = np.asarray(values_b[:length], dtype=np.float64)

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))
