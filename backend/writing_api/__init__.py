"""Writing API Package — projects, documents, search and RAG for long-form writing.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
