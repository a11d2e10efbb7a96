"""
Vectorization strategies for conversation turns.
Lexical keyword vectors are always available; remote and on-device embeddings
degrade to them on any failure.
"""

from abc import ABC, abstractmethod
import asyncio
from typing import Any, Callable, Optional

import requests

from .keywords import create_keyword_vector
from .types import DenseVector, SparseVector, TermVector
from ..core import config
from ..core.models import EmbeddingResponse, RemoteEmbeddingConfig
from ..util.logging import logger

LEXICAL = "lexical"
REMOTE = "remote"
ON_DEVICE = "on-device"

METHODS = (LEXICAL, REMOTE, ON_DEVICE)

# Names used by earlier front-end builds
METHOD_ALIASES = {
    "keyword": LEXICAL,
    "api": REMOTE,
    "transformers": ON_DEVICE,
    "ondevice": ON_DEVICE,
}


def normalize_method(method: Optional[str]) -> Optional[str]:
    """Return the canonical method name, or None if the name is unknown."""
    if not isinstance(method, str):
        return None
    name = method.strip().lower()
    if name in METHODS:
        return name
    return METHOD_ALIASES.get(name)


class IEmbeddingStrategy(ABC):
    """Turns text into a term vector; never raises past embed()."""

    name = None

    @abstractmethod
    async def _embed(self, text: str) -> TermVector:
        """Produce a vector for the text; may raise."""
        pass

    async def embed(self, text: str) -> TermVector:
        try:
            return await self._embed(text)
        except Exception as e:
            logger.log_vector_operation(
                "embed", details={"method": self.name, "error": str(e)}, status="fallback"
            )
            return create_keyword_vector(text)


class KeywordEmbedding(IEmbeddingStrategy):
    """Term-frequency vector over extracted keywords."""

    name = LEXICAL

    async def _embed(self, text: str) -> SparseVector:
        return create_keyword_vector(text)


class RemoteEmbedding(IEmbeddingStrategy):
    """Embeddings from an OpenAI-compatible HTTP endpoint."""

    name = REMOTE

    def __init__(self, remote_config: Optional[RemoteEmbeddingConfig] = None,
                 model_name: str = None, timeout: float = None,
                 session: Optional[requests.Session] = None):
        self.remote_config = remote_config
        self.model_name = model_name or config.REMOTE_EMBEDDING_MODEL
        self.timeout = timeout if timeout is not None else config.get_remote_timeout()
        self.session = session

    async def _embed(self, text: str) -> TermVector:
        if self.remote_config is None or not self.remote_config.enabled:
            logger.log_vector_operation(
                "embed", details={"method": self.name, "reason": "remote provider disabled"}, status="fallback"
            )
            return create_keyword_vector(text)

        values = await asyncio.to_thread(self._request_embedding, text)
        return DenseVector(values)

    def _request_embedding(self, text: str):
        post = self.session.post if self.session is not None else requests.post
        response = post(
            f"{self.remote_config.endpoint}/embeddings",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.remote_config.key}",
            },
            json={
                "input": text[:config.REMOTE_INPUT_LIMIT],
                "model": self.model_name,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return EmbeddingResponse.model_validate(response.json()).first_embedding()


def _default_loader(model_name: str):
    from sentence_transformers import SentenceTransformer
    return SentenceTransformer(model_name)


class OnDeviceEmbedding(IEmbeddingStrategy):
    """Local sentence-transformers model, loaded once on first use."""

    name = ON_DEVICE

    def __init__(self, model_name: str = None, loader: Callable[[str], Any] = None,
                 timeout: Optional[float] = None):
        self.model_name = model_name or config.ONDEVICE_MODEL_NAME
        self.loader = loader or _default_loader
        self.timeout = timeout if timeout is not None else config.get_ondevice_timeout()
        self._model = None
        self._loading: Optional[asyncio.Future] = None
        self.load_count = 0

    async def get_model(self):
        """Return the loaded model; concurrent callers share one in-flight load."""
        if self._model is not None:
            return self._model

        if self._loading is None:
            self._loading = asyncio.ensure_future(self._load())

        loading = self._loading
        try:
            return await asyncio.shield(loading)
        except Exception:
            # Allow a later call to retry a failed load
            if self._loading is loading:
                self._loading = None
            raise

    async def _load(self):
        logger.info(f"Loading on-device embedding model {self.model_name}")
        self.load_count += 1
        model = await asyncio.to_thread(self.loader, self.model_name)
        self._model = model
        logger.log_vector_operation("model_loaded", details={"model": self.model_name})
        return model

    async def _embed(self, text: str) -> DenseVector:
        if self.timeout:
            return await asyncio.wait_for(self._encode(text), timeout=self.timeout)
        return await self._encode(text)

    async def _encode(self, text: str) -> DenseVector:
        model = await self.get_model()
        output = await asyncio.to_thread(
            model.encode, text[:config.ONDEVICE_INPUT_LIMIT], normalize_embeddings=True
        )
        values = output.tolist() if hasattr(output, "tolist") else list(output)
        return DenseVector([float(v) for v in values])


class EmbeddingSelector:
    """
    Picks the active vectorization strategy and guarantees a usable vector.

    Unknown methods, strategy failures and empty vectors all resolve to the
    lexical keyword vector.
    """

    def __init__(self, method: str = LEXICAL, remote_config: Optional[RemoteEmbeddingConfig] = None,
                 on_device: Optional[OnDeviceEmbedding] = None, remote: Optional[RemoteEmbedding] = None):
        self.method = normalize_method(method) or method
        self.lexical = KeywordEmbedding()
        self.remote = remote or RemoteEmbedding(remote_config)
        self.on_device = on_device or OnDeviceEmbedding()

    def strategy_for(self, method: str) -> Optional[IEmbeddingStrategy]:
        return {
            LEXICAL: self.lexical,
            REMOTE: self.remote,
            ON_DEVICE: self.on_device,
        }.get(normalize_method(method))

    def set_method(self, method: str) -> bool:
        """Switch the active method; invalid names leave it unchanged."""
        canonical = normalize_method(method)
        if canonical is None:
            logger.log_vector_operation("set_method", details={"method": method}, status="rejected")
            return False
        self.method = canonical
        logger.log_vector_operation("set_method", details={"method": canonical})
        return True

    async def vectorize(self, text: str) -> TermVector:
        strategy = self.strategy_for(self.method)
        if strategy is None:
            logger.warning(f"Unknown embedding method {self.method!r}, using {LEXICAL}")
            strategy = self.lexical

        try:
            vector = await strategy.embed(text)
        except Exception as e:
            logger.error(f"Vectorization failed with {strategy.name}: {e}")
            return create_keyword_vector(text)

        if vector is None or vector.is_empty():
            if strategy is not self.lexical:
                logger.error(f"Empty vector from {strategy.name}, using {LEXICAL}")
            return create_keyword_vector(text)

        logger.debug(f"Vectorized {len(text)} chars with {strategy.name} ({vector.kind})")
        return vector
