"""
End-to-end tests for the session memory manager.
"""

import asyncio

import pytest
from unittest.mock import patch

from turnrecall import ContextVectorManager, MemorySettings, RemoteEmbeddingConfig
from turnrecall.core.context_builder import MEMORY_HEADER
from turnrecall.vector.embeddings import OnDeviceEmbedding
from turnrecall.vector.types import SparseVector


@pytest.fixture
def settings(tmp_path):
    return MemorySettings(
        embedding_method="lexical",
        max_retrieve_count=5,
        min_similarity_threshold=0.1,
        db_path=str(tmp_path / "session.db"),
    )


@pytest.fixture
def manager(settings):
    return ContextVectorManager(settings, remote_config=RemoteEmbeddingConfig(enabled=False))


def play(manager, turns):
    async def run():
        for index, (user_message, assistant_message, state) in enumerate(turns, start=1):
            await manager.add_conversation(user_message, assistant_message, index, state)

    asyncio.run(run())


def test_default_settings():
    settings = MemorySettings()

    assert settings.embedding_method == "lexical"
    assert settings.max_retrieve_count == 5
    assert settings.min_similarity_threshold == 0.3


def test_managers_are_independent(settings):
    first = ContextVectorManager(settings, remote_config=RemoteEmbeddingConfig())
    second = ContextVectorManager(MemorySettings(db_path=settings.db_path), remote_config=RemoteEmbeddingConfig())

    asyncio.run(first.add_conversation("hello", "world", 1))

    assert len(first) == 1
    assert len(second) == 0


def test_add_and_retrieve(manager):
    play(manager, [
        ("the hero enters the forest", "", {"location": "Forest"}),
        ("the hero buys a sword in town", "", {"location": "Town"}),
    ])

    recent = [{"role": "assistant", "content": "earlier"}]
    result = manager.retrieve_relevant_context("hero in the forest", recent)

    assert [memory.turn_index for memory in result.relevant] == [1, 2]
    assert result.recent is recent


def test_retrieval_respects_runtime_limits(manager):
    play(manager, [(f"hero forest journey {word}", "forest again", None)
                   for word in ["north", "south", "east", "west"]])

    manager.max_retrieve_count = 2
    result = manager.retrieve_relevant_context("hero forest")

    assert len(result.relevant) == 2

    manager.min_similarity_threshold = 1.0
    assert manager.retrieve_relevant_context("hero forest").is_empty()


@pytest.mark.parametrize("attribute,value", [
    ("max_retrieve_count", -1),
    ("min_similarity_threshold", 1.5),
    ("min_similarity_threshold", -0.1),
])
def test_invalid_runtime_limits_rejected(manager, attribute, value):
    with pytest.raises(ValueError):
        setattr(manager, attribute, value)


def test_set_embedding_method(manager):
    assert manager.set_embedding_method("transformers") is True
    assert manager.embedding_method == "on-device"
    assert manager.settings.embedding_method == "on-device"

    assert manager.set_embedding_method("telepathy") is False
    assert manager.embedding_method == "on-device"


def test_remote_backend_failure_produces_sparse_vector(settings):
    settings.embedding_method = "remote"
    manager = ContextVectorManager(
        settings, remote_config=RemoteEmbeddingConfig(enabled=True, endpoint="https://x.example", key="k")
    )

    with patch("turnrecall.vector.embeddings.requests.post", side_effect=TimeoutError("slow")):
        turn = asyncio.run(manager.add_conversation("I climb the tower", "The wind howls", 1))

    assert isinstance(turn.vector, SparseVector)
    assert turn.vector.weights["tower"] == 1


def test_on_device_backend_failure_produces_sparse_vector(settings):
    def broken_loader(model_name):
        raise ImportError("sentence_transformers missing")

    settings.embedding_method = "on-device"
    manager = ContextVectorManager(
        settings, remote_config=RemoteEmbeddingConfig(), on_device=OnDeviceEmbedding(loader=broken_loader)
    )

    turn = asyncio.run(manager.add_conversation("I open the chest", "Gold coins spill out", 1))

    assert isinstance(turn.vector, SparseVector)
    assert not turn.vector.is_empty()


def test_build_optimized_messages(manager):
    play(manager, [
        ("the hero enters the forest", "wolves howl", {"location": "Forest"}),
        ("the hero buys a sword in town", "the merchant grins", {"location": "Town"}),
    ])
    history = [{"role": "user" if i % 2 == 0 else "assistant", "content": f"m{i}"} for i in range(10)]

    messages = manager.build_optimized_messages("You narrate.", {"hp": 10}, "hero in the forest", 2, history)

    assert messages[0] == {"role": "system", "content": "You narrate."}
    assert messages[2]["content"].startswith(MEMORY_HEADER)
    assert messages[3:7] == history[-4:]
    assert messages[-1] == {"role": "user", "content": "hero in the forest"}


def test_clear(manager):
    play(manager, [("the hero enters the forest", "", None)])

    manager.clear()

    assert len(manager) == 0
    assert manager.retrieve_relevant_context("hero forest").is_empty()


def test_save_and_load_session(manager, settings):
    play(manager, [
        ("the hero enters the forest", "wolves howl", {"location": "Forest"}),
        ("the hero buys a sword in town", "the merchant grins", None),
    ])
    assert asyncio.run(manager.save()) is True

    resumed = ContextVectorManager(settings, remote_config=RemoteEmbeddingConfig())
    assert asyncio.run(resumed.load()) == 2

    result = resumed.retrieve_relevant_context("hero in the forest")
    assert result.relevant[0].turn_index == 1


def test_load_without_save_keeps_memory(manager):
    play(manager, [("the hero enters the forest", "", None)])

    assert asyncio.run(manager.load()) is None
    assert len(manager) == 1


def test_health(manager):
    play(manager, [("the hero enters the forest", "", None)])

    health = manager.health()

    assert health["status"] == "healthy"
    assert health["size"] == 1
    assert health["embedding_method"] == "lexical"
    assert health["vector_types"] == ["sparse"]
    assert health["db_path"] == manager.settings.db_path


def test_conversation_embeddings_is_a_copy(manager):
    play(manager, [("the hero enters the forest", "", None)])

    manager.conversation_embeddings.clear()

    assert len(manager) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
