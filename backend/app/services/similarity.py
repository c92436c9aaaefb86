"""Bag-of-words similarity used to keep generated suggestions from repeating."""
from __future__ import annotations

from typing import Iterable, Literal, Set

Uniqueness = Literal["familiar", "related", "novel"]

UNIQUENESS_THRESHOLD = 0.6

UNIQUENESS_THRESHOLDS = {
    "familiar": 0.75,
    "related": 0.6,
    "novel": 0.4,
}


def _tokens(text: str) -> Set[str]:
    return {token for token in text.lower().split() if token}


def similarity_score(a: str, b: str) -> float:
    """Jaccard index of the lower-cased word sets; 0.0 when either side is blank."""
    if not a or not b or not a.strip() or not b.strip():
        return 0.0
    tokens_a = _tokens(a)
    tokens_b = _tokens(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def uniqueness_threshold(uniqueness: Uniqueness) -> float:
    """Similarity at or above which a suggestion counts as a repeat for this preference."""
    return UNIQUENESS_THRESHOLDS[uniqueness]


def is_too_similar(
    title: str,
    next_action: str,
    reference_texts: Iterable[str],
    threshold: float = UNIQUENESS_THRESHOLD,
) -> bool:
    """True if title or next_action matches any non-blank reference at or above threshold."""
    for reference in reference_texts:
        cleaned = (reference or "").strip()
        if not cleaned:
            continue
        if similarity_score(title, cleaned) >= threshold:
            return True
        if similarity_score(next_action, cleaned) >= threshold:
            return True
    return False
