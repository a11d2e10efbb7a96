"""
Validated payload models for the memory engine's external boundaries:
remote embedding provider config and response, persisted memory blob, chat messages.
"""

from pydantic import BaseModel, ConfigDict, field_validator
from typing import Any, Dict, List


class RemoteEmbeddingConfig(BaseModel):
    enabled: bool = False
    endpoint: str = ""
    key: str = ""

    @field_validator('endpoint')
    @classmethod
    def strip_trailing_slashes(cls, v):
        return v.strip().rstrip('/')


class EmbeddingItem(BaseModel):
    model_config = ConfigDict(extra='ignore')

    embedding: List[float]


class EmbeddingResponse(BaseModel):
    """OpenAI-compatible /embeddings response; only data[0].embedding is used."""
    model_config = ConfigDict(extra='ignore')

    data: List[EmbeddingItem]

    @field_validator('data')
    @classmethod
    def data_must_not_be_empty(cls, v):
        if not v:
            raise ValueError('embedding response contains no data')
        return v

    def first_embedding(self) -> List[float]:
        return self.data[0].embedding


class PersistedMemory(BaseModel):
    """The single record holding the whole memory store."""
    id: str = "main"
    embeddings: List[Dict[str, Any]]
    timestamp: float


class ChatMessage(BaseModel):
    role: str
    content: str

    @field_validator('role')
    @classmethod
    def role_must_be_valid(cls, v):
        valid_roles = ['system', 'user', 'assistant']
        if v not in valid_roles:
            raise ValueError(f'role must be one of: {valid_roles}')
        return v
