"""Tests for RAG prompt assembly — context numbering, history handling, answer extraction."""

from types import SimpleNamespace

from writing_api.core.rag_prompt import (
    DEFAULT_PROJECT_LABEL, build_context_block, build_rag_request,
    build_system_prompt, extract_answer_text, split_history,
)


def test_context_block_numbers_chunks():
    block = build_context_block([{"chunk_text": "alpha"}, {"chunk_text": "beta"}])
    assert block == "[1] alpha\n\n[2] beta"
    assert build_context_block([]) == ""


def test_system_prompt_uses_label_or_default():
    assert '"Crescent"' in build_system_prompt("Crescent")
    assert f'"{DEFAULT_PROJECT_LABEL}"' in build_system_prompt(None)
    assert build_system_prompt("X", ["Be brief."]).endswith("\n\nBe brief.")


def test_split_history_separates_system_notes():
    notes, turns = split_history([
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": ""},
        {"role": "tool", "content": "ignored"},
    ])
    assert notes == ["Be brief."]
    assert turns == [{"role": "user", "content": "Hi"}]


def test_question_is_last_user_message():
    system, messages = build_rag_request(
        "Who?", [{"chunk_text": "Amira maps dunes."}], "Crescent",
        [{"role": "user", "content": "Earlier"}, {"role": "assistant", "content": "Reply"}],
    )
    assert "Crescent" in system
    assert messages[-1] == {
        "role": "user", "content": "Context:\n[1] Amira maps dunes.\n\nQuestion: Who?",
    }
    assert len(messages) == 3


def test_extract_answer_text_joins_text_blocks():
    response = SimpleNamespace(content=[
        SimpleNamespace(type="text", text="Hello "),
        SimpleNamespace(type="tool_use", text="skip"),
        SimpleNamespace(type="text", text="there"),
    ])
    assert extract_answer_text(response) == "Hello there"
    assert extract_answer_text(SimpleNamespace(content=None)) == ""
