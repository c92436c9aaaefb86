"""Tests for the similarity guard."""
from __future__ import annotations

import pytest

from app.services.similarity import is_too_similar, similarity_score, uniqueness_threshold


def test_similarity_score_is_jaccard_over_lowercased_words() -> None:
    assert similarity_score("Read a book", "read a BOOK") == 1.0
    # {read, a, book} vs {read, a, magazine}: 2 shared of 4
    assert similarity_score("read a book", "read a magazine") == pytest.approx(0.5)
    assert similarity_score("walk outside", "write code") == 0.0


def test_similarity_score_blank_side_is_zero() -> None:
    assert similarity_score("", "anything") == 0.0
    assert similarity_score("anything", "   ") == 0.0


def test_uniqueness_thresholds() -> None:
    assert uniqueness_threshold("familiar") == 0.75
    assert uniqueness_threshold("related") == 0.6
    assert uniqueness_threshold("novel") == 0.4


def test_is_too_similar_matches_title_or_next_action() -> None:
    references = ["Plan the weekly menu", "", "   "]
    assert is_too_similar("Plan the weekly menu", "Open a notes app", references)
    assert is_too_similar("Cook something", "plan the weekly menu", references)
    assert not is_too_similar("Stretch for ten minutes", "Roll out the mat", references)


def test_is_too_similar_threshold_is_inclusive() -> None:
    # Exactly 0.5 overlap
    assert is_too_similar("read a book", "x", ["read a magazine"], threshold=0.5)
    assert not is_too_similar("read a book", "x", ["read a magazine"], threshold=0.51)


def test_is_too_similar_ignores_blank_references() -> None:
    assert not is_too_similar("anything", "else", ["", "  "])


@pytest.mark.parametrize(
    "a,b",
    [
        ("Read a book", "read a magazine"),
        ("Plan the weekly menu", "plan menu"),
        ("walk outside", "write code"),
        ("", "anything"),
        ("Call Mom", "call mom tonight please"),
    ],
)
def test_similarity_score_is_symmetric(a: str, b: str) -> None:
    assert similarity_score(a, b) == similarity_score(b, a)


@pytest.mark.parametrize(
    "candidate,reference,expected_score",
    [
        ("read a book", "read a magazine", 0.5),
        ("plan the weekly menu", "plan the monthly menu", 0.6),
        ("pay rent bill", "pay rent", 2 / 3),
    ],
)
def test_novel_flags_what_familiar_lets_through(candidate: str, reference: str, expected_score: float) -> None:
    assert similarity_score(candidate, reference) == pytest.approx(expected_score)
    assert is_too_similar(candidate, "unrelated step", [reference], uniqueness_threshold("novel"))
    assert not is_too_similar(candidate, "unrelated step", [reference], uniqueness_threshold("familiar"))
