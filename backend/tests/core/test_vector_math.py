"""Tests for cosine ranking."""

import pytest

from writing_api.core.vector_math import cosine_similarity, normalize_vector, rank_top_k


def test_cosine_similarity_basics():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)


def test_cosine_similarity_degenerate_inputs():
    assert cosine_similarity([], [1]) == 0.0
    assert cosine_similarity([1, 2], [1]) == 0.0
    assert cosine_similarity([0, 0], [1, 1]) == 0.0


def test_normalize_vector():
    assert normalize_vector([3, 4]) == pytest.approx([0.6, 0.8])
    assert normalize_vector([0, 0]) == [0, 0]


def test_rank_top_k_orders_and_truncates():
    candidates = [([0, 1], "b"), ([1, 0], "a"), ([1, 1], "ab"), ([1, 0], "a2")]
    ranked = rank_top_k([1, 0], candidates, 3)
    assert [payload for _, payload in ranked] == ["a", "a2", "ab"]
    assert rank_top_k([1, 0], candidates, 0) == []
