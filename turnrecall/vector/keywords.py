"""
Lexical featurizer: term-frequency keywords and sparse keyword vectors.
"""

import re
from collections import Counter
from typing import List, Tuple

from .types import SparseVector

# Runs of CJK ideographs or of Latin letters; everything else separates terms
TERM_PATTERN = re.compile(r"[一-龥]+|[a-zA-Z]+")

MAX_KEYWORDS = 20


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> List[Tuple[str, int]]:
    """
    Extract the most frequent terms of a text.

    Args:
        text: Raw text, any language mix
        limit: Maximum number of terms to keep

    Returns:
        (term, frequency) pairs sorted by descending frequency; ties keep
        first-occurrence order. Empty when the text holds no term of two or
        more characters.
    """
    if not text:
        return []

    counts = Counter(term for term in TERM_PATTERN.findall(text) if len(term) > 1)

    # sorted() is stable and Counter preserves insertion order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked[:limit]


def create_keyword_vector(text: str) -> SparseVector:
    """Build a sparse vector with one key per extracted keyword."""
    return SparseVector({term: weight for term, weight in extract_keywords(text)})
