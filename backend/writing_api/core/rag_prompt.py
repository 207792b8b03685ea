"""RAG Prompt Assembly — system prompt, numbered context block and message list for /ask.

Invariants:
    - Pure functions: no IO, no async, no DB
    - Context chunks numbered from 1 in retrieval order: "[1] text"
    - Only user/assistant turns go into messages; history "system" turns are
      appended to the system prompt (the Messages API takes system separately)
    - The question is always the final user message, preceded by the context block
"""

DEFAULT_PROJECT_LABEL = "My Project"

_SYSTEM_TEMPLATE = (
    'You are a private writing assistant for the project "{label}". '
    "Use only the provided context. If the context does not answer the "
    "question, say so. Maintain continuity with established characters, "
    "places and events."
)


def build_context_block(chunks: list[dict]) -> str:
    return "\n\n".join(
        f"[{i}] {chunk.get('chunk_text', '')}" for i, chunk in enumerate(chunks, start=1)
    )


def build_system_prompt(project_label: str | None, extra: list[str] | None = None) -> str:
    prompt = _SYSTEM_TEMPLATE.format(label=project_label or DEFAULT_PROJECT_LABEL)
    if extra:
        prompt = "\n\n".join([prompt, *extra])
    return prompt


def split_history(history: list[dict] | None) -> tuple[list[str], list[dict]]:
    """Separate system notes from the conversational turns."""
    system_notes: list[str] = []
    turns: list[dict] = []
    for entry in history or []:
        role = entry.get("role")
        content = entry.get("content") or ""
        if role == "system":
            system_notes.append(content)
        elif role in ("user", "assistant") and content:
            turns.append({"role": role, "content": content})
    return system_notes, turns


def build_question_message(question: str, context_block: str) -> dict:
    return {
        "role": "user",
        "content": f"Context:\n{context_block}\n\nQuestion: {question}",
    }


def build_rag_request(
    question: str,
    chunks: list[dict],
    project_label: str | None,
    history: list[dict] | None = None,
) -> tuple[str, list[dict]]:
    """Return (system prompt, messages) ready for the chat client."""
    system_notes, turns = split_history(history)
    system = build_system_prompt(project_label, system_notes)
    messages = [*turns, build_question_message(question, build_context_block(chunks))]
    return system, messages


def extract_answer_text(response) -> str:
    """Join the text blocks of a Messages API response."""
    parts = []
    for block in getattr(response, "content", None) or []:
        if getattr(block, "type", None) == "text":
            parts.append(block.text)
    return "".join(parts)
