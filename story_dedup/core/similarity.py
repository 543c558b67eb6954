"""
Lexical similarity between shingle sets.

Titles are compared by the Jaccard index of their character shingles,
which is symmetric and cheap to compute on short headlines.
"""

from __future__ import annotations

from typing import AbstractSet


def jaccard(a: AbstractSet[str], b: AbstractSet[str]) -> float:
    """Return |A ∩ B| / |A ∪ B|.

    An empty set on either side means "no signal" and scores 0.0, never 1.0.
    The intersection is counted by iterating the smaller set.

    Args:
        a: First shingle set
        b: Second shingle set

    Returns:
        Similarity in [0, 1]
    """
    if not a or not b:
        return 0.0
    small, large = (a, b) if len(a) <= len(b) else (b, a)
    intersection = sum(1 for item in small if item in large)
    union = len(a) + len(b) - intersection
    return intersection / union


def are_similar(a: AbstractSet[str], b: AbstractSet[str], threshold: float) -> bool:
    return jaccard(a, b) >= threshold
