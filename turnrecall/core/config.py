"""
Turn memory configuration.
Defaults come from the environment at import time; each ContextVectorManager owns a
MemorySettings copy that can be changed at runtime.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import dotenv

# Load environment variables from .env file first
dotenv.load_dotenv()

# Vectorization backend: lexical|remote|on-device (legacy: keyword|api|transformers)
EMBEDDING_METHOD = os.getenv("EMBEDDING_METHOD", "lexical")

# Retrieval policy
MAX_RETRIEVE_COUNT = os.getenv("MAX_RETRIEVE_COUNT", "5")
MIN_SIMILARITY_THRESHOLD = os.getenv("MIN_SIMILARITY_THRESHOLD", "0.3")

# Durable store
DB_PATH = os.getenv("DB_PATH", "./data/turnrecall.db")

# Remote embedding provider (OpenAI-compatible /embeddings endpoint)
REMOTE_EMBEDDING_ENABLED = os.getenv("REMOTE_EMBEDDING_ENABLED", "false").lower() == "true"
REMOTE_EMBEDDING_ENDPOINT = os.getenv("REMOTE_EMBEDDING_ENDPOINT", "")
REMOTE_EMBEDDING_KEY = os.getenv("REMOTE_EMBEDDING_KEY", "")
REMOTE_EMBEDDING_MODEL = os.getenv("REMOTE_EMBEDDING_MODEL", "text-embedding-ada-002")
REMOTE_EMBEDDING_TIMEOUT_SEC = os.getenv("REMOTE_EMBEDDING_TIMEOUT_SEC", "30")
REMOTE_INPUT_LIMIT = 8000

# On-device sentence-transformers model
ONDEVICE_MODEL_NAME = os.getenv("ONDEVICE_MODEL_NAME", "sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2")
ONDEVICE_TIMEOUT_SEC = os.getenv("ONDEVICE_TIMEOUT_SEC", "")
ONDEVICE_INPUT_LIMIT = 500

VERSION = "1.0.0"


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_float(value: str, default: Optional[float]) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass
class MemorySettings:
    """Runtime-mutable retrieval and vectorization settings."""

    embedding_method: str = "lexical"
    max_retrieve_count: int = 5
    min_similarity_threshold: float = 0.3
    db_path: str = "./data/turnrecall.db"

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ValueError for out-of-range retrieval settings."""
        if self.max_retrieve_count < 0:
            raise ValueError("max_retrieve_count must be >= 0")
        if not 0.0 <= self.min_similarity_threshold <= 1.0:
            raise ValueError("min_similarity_threshold must be between 0 and 1")


def get_max_retrieve_count() -> int:
    """Get configured maximum number of retrieved memories."""
    count = _parse_int(MAX_RETRIEVE_COUNT, 5)
    return count if count >= 0 else 5


def get_min_similarity_threshold() -> float:
    """Get configured recall floor."""
    threshold = _parse_float(MIN_SIMILARITY_THRESHOLD, 0.3)
    return threshold if 0.0 <= threshold <= 1.0 else 0.3


def get_remote_timeout() -> float:
    """Get remote embedding request timeout in seconds."""
    return _parse_float(REMOTE_EMBEDDING_TIMEOUT_SEC, 30.0)


def get_ondevice_timeout() -> Optional[float]:
    """Get on-device load/inference timeout in seconds, None when unbounded."""
    return _parse_float(ONDEVICE_TIMEOUT_SEC, None)


def get_remote_embedding_config():
    """Build the remote provider config from the environment."""
    from .models import RemoteEmbeddingConfig
    return RemoteEmbeddingConfig(
        enabled=REMOTE_EMBEDDING_ENABLED,
        endpoint=REMOTE_EMBEDDING_ENDPOINT,
        key=REMOTE_EMBEDDING_KEY,
    )


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "false").lower() == "true"


def ensure_db_directory(db_path: str = None):
    """Ensure the database directory exists."""
    Path(db_path or DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def load_settings(**overrides) -> MemorySettings:
    """Build a MemorySettings from environment defaults, applying keyword overrides."""
    values = {
        "embedding_method": EMBEDDING_METHOD,
        "max_retrieve_count": get_max_retrieve_count(),
        "min_similarity_threshold": get_min_similarity_threshold(),
        "db_path": DB_PATH,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return MemorySettings(**values)


def validate_config() -> List[str]:
    """Validate environment configuration and return any issues."""
    from ..vector.embeddings import normalize_method

    issues = []

    if normalize_method(EMBEDDING_METHOD) is None:
        issues.append(f"Invalid EMBEDDING_METHOD: {EMBEDDING_METHOD}")

    count = _parse_int(MAX_RETRIEVE_COUNT, -1)
    if count < 0:
        issues.append(f"Invalid MAX_RETRIEVE_COUNT: {MAX_RETRIEVE_COUNT}")

    threshold = _parse_float(MIN_SIMILARITY_THRESHOLD, None)
    if threshold is None or not 0.0 <= threshold <= 1.0:
        issues.append(f"Invalid MIN_SIMILARITY_THRESHOLD: {MIN_SIMILARITY_THRESHOLD}")

    if _parse_float(REMOTE_EMBEDDING_TIMEOUT_SEC, None) is None:
        issues.append(f"Invalid REMOTE_EMBEDDING_TIMEOUT_SEC: {REMOTE_EMBEDDING_TIMEOUT_SEC}")

    if REMOTE_EMBEDDING_ENABLED and not REMOTE_EMBEDDING_ENDPOINT:
        issues.append("REMOTE_EMBEDDING_ENABLED requires REMOTE_EMBEDDING_ENDPOINT")

    return issues
