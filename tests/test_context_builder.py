"""
Context assembly tests: message order, recent window and composition report.
"""

import asyncio
import json
import logging

import pytest

from turnrecall.core.context_builder import ContextBuilder, MEMORY_HEADER, STATE_HEADER
from turnrecall.core.memory_store import MemoryStore
from turnrecall.core.retriever import Retriever
from turnrecall.vector.embeddings import EmbeddingSelector

SYSTEM_PROMPT = "You are the narrator of a cultivation adventure."
STATE = {"location": "Azure Peak", "realm": "Qi Refining", "hp": 90}


def make_history(count):
    roles = ["user", "assistant"]
    return [{"role": roles[i % 2], "content": f"message {i}"} for i in range(count)]


@pytest.fixture
def empty_builder():
    store = MemoryStore(EmbeddingSelector("lexical"))
    return ContextBuilder(Retriever(store, min_similarity_threshold=0.1))


@pytest.fixture
def filled_builder():
    store = MemoryStore(EmbeddingSelector("lexical"))

    async def fill():
        await store.upsert(1, "the hero enters the forest", "wolves howl in the forest", {"location": "Dark Forest"})
        await store.upsert(2, "the hero buys a sword in town", "the merchant grins")

    asyncio.run(fill())
    return ContextBuilder(Retriever(store, min_similarity_threshold=0.1))


def test_message_order_without_memories(empty_builder):
    messages = empty_builder.build_messages(SYSTEM_PROMPT, STATE, "look around", 2, make_history(4))

    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert messages[1]["role"] == "system"
    assert messages[1]["content"].startswith(STATE_HEADER)
    assert messages[2:6] == make_history(4)
    assert messages[-1] == {"role": "user", "content": "look around"}
    assert len(messages) == 7


def test_state_message_contains_json_dump(empty_builder):
    state = {"location": "青云峰", "hp": 10}

    messages = empty_builder.build_messages(SYSTEM_PROMPT, state, "rest", 0, [])

    content = messages[1]["content"]
    assert "```json" in content
    assert "青云峰" in content
    dumped = content.split("```json\n", 1)[1].rsplit("\n```", 1)[0]
    assert json.loads(dumped) == state


def test_recent_window_takes_last_pairs_after_memories(filled_builder):
    history = make_history(10)

    messages = filled_builder.build_messages(SYSTEM_PROMPT, STATE, "hero in the forest", 2, history)

    assert messages[2]["role"] == "system"
    assert messages[2]["content"].startswith(MEMORY_HEADER)
    assert messages[3:7] == history[-4:]
    assert messages[7] == {"role": "user", "content": "hero in the forest"}
    assert len(messages) == 8


def test_memory_message_lists_turn_similarity_action_and_summary(filled_builder):
    messages = filled_builder.build_messages(SYSTEM_PROMPT, STATE, "hero in the forest", 0, [])

    memory_block = messages[2]["content"]
    assert "Memory 1 (turn 1, similarity " in memory_block
    assert "Memory 2 (turn 2, similarity " in memory_block
    assert "- Player action: the hero enters the forest" in memory_block
    assert "- Story summary: Player: the hero enters the forest" in memory_block
    assert "Location: Dark Forest" in memory_block
    assert "%):" in memory_block
    assert memory_block.index("Memory 1") < memory_block.index("Memory 2")


def test_memory_message_omitted_when_nothing_relevant(filled_builder):
    messages = filled_builder.build_messages(SYSTEM_PROMPT, STATE, "meditate quietly", 1, make_history(2))

    assert not any(m["content"].startswith(MEMORY_HEADER) for m in messages)
    assert len(messages) == 5


def test_zero_window_or_empty_history_sends_no_recent_messages(empty_builder):
    no_window = empty_builder.build_messages(SYSTEM_PROMPT, STATE, "go", 0, make_history(6))
    no_history = empty_builder.build_messages(SYSTEM_PROMPT, STATE, "go", 3, None)

    assert len(no_window) == 3
    assert len(no_history) == 3


def test_window_larger_than_history_sends_all(empty_builder):
    history = make_history(4)

    messages = empty_builder.build_messages(SYSTEM_PROMPT, STATE, "go", 5, history)

    assert messages[2:6] == history


def test_composition_report(filled_builder):
    filled_builder.build_messages(SYSTEM_PROMPT, STATE, "hero in the forest", 2, make_history(10))

    report = filled_builder.last_report
    assert report["total_turns"] == 5
    assert report["system_messages"] == 2
    assert report["retrieved_memories"] == 2
    assert report["recent_turns"] == 2
    assert report["recent_messages"] == 4
    assert report["current_input"] == 1
    assert report["total_messages"] == 8
    assert report["token_savings_pct"] == 60


def test_composition_report_with_empty_history(empty_builder):
    empty_builder.build_messages(SYSTEM_PROMPT, STATE, "go", 3, [])

    assert empty_builder.last_report["token_savings_pct"] == 0


@pytest.mark.parametrize("entry", [
    {"role": "assistant", "content": None},
    {"role": "tool", "content": "x"},
    {"role": "user", "content": "hi", "name": "player1"},
])
def test_history_entries_pass_through_unchanged(empty_builder, entry):
    messages = empty_builder.build_messages("sys", {}, "go", 1, [entry])

    assert messages[2] == entry
    assert messages[-1] == {"role": "user", "content": "go"}


def test_malformed_history_entry_is_logged(empty_builder, caplog):
    with caplog.at_level(logging.WARNING, logger="turnrecall"):
        empty_builder.build_messages("sys", {}, "go", 1, [{"role": "narrator", "content": "x"}])

    assert "context.history" in caplog.text
    assert "Status: invalid" in caplog.text


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
