"""
Vector layer: keyword featurizer, similarity scoring and embedding strategies.
"""

# Package initialization for vector module
from .types import SparseVector, DenseVector, TermVector, vector_from_dict
from .keywords import extract_keywords, create_keyword_vector
from .similarity import cosine_similarity
from .embeddings import (
    IEmbeddingStrategy,
    KeywordEmbedding,
    RemoteEmbedding,
    OnDeviceEmbedding,
    EmbeddingSelector,
    normalize_method,
)

__all__ = [
    'SparseVector',
    'DenseVector',
    'TermVector',
    'vector_from_dict',
    'extract_keywords',
    'create_keyword_vector',
    'cosine_similarity',
    'IEmbeddingStrategy',
    'KeywordEmbedding',
    'RemoteEmbedding',
    'OnDeviceEmbedding',
    'EmbeddingSelector',
    'normalize_method',
]
