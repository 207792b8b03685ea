"""Vector math — cosine ranking of stored embedding chunks against a query vector."""

import math


def normalize_vector(vector: list[float]) -> list[float]:
    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0:
        return vector
    return [v / norm for v in vector]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    norm_a = math.sqrt(sum(v * v for v in a))
    norm_b = math.sqrt(sum(v * v for v in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / (norm_a * norm_b)


def rank_top_k(
    query: list[float], candidates: list[tuple[list[float], dict]], k: int,
) -> list[tuple[float, dict]]:
    """Highest cosine similarity first; ties keep candidate order."""
    scored = [
        (cosine_similarity(query, vector), payload)
        for vector, payload in candidates
    ]
    scored.sort(key=lambda item: item[0], reverse=True)
    return scored[:max(k, 0)]
