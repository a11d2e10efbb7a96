"""
turnrecall - rolling, searchable memory of a long-running conversation.
"""

from .core.config import MemorySettings, load_settings, VERSION
from .core.manager import ContextVectorManager
from .core.models import RemoteEmbeddingConfig
from .core.schema import IndexedTurn, RetrievalResult, RetrievedMemory, StateSnapshot

__version__ = VERSION

__all__ = [
    'ContextVectorManager',
    'MemorySettings',
    'load_settings',
    'RemoteEmbeddingConfig',
    'IndexedTurn',
    'RetrievalResult',
    'RetrievedMemory',
    'StateSnapshot',
]
