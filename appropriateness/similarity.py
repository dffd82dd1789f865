"""Pairwise string similarity strategies.

The chain is ordered, not banded: the first strategy that applies decides
the score.

    exact             1.0
    containment       0.8
    token_overlap     shared / max(|A|, |B|), capped at 0.7
    character_overlap positional agreement over the shorter string

Token overlap only applies when a token is shared, so character overlap is
the fallback for strings with no common word (``mri-knee`` against
``mri knee without contrast`` scores 7/8).

``string_similarity`` walks ``DEFAULT_STRATEGIES`` in order and returns the
score of the first strategy that applies.
"""

import string
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Set, Type


_PUNCTUATION = string.punctuation + "≤≥–—"


def tokenize(text: str) -> Set[str]:
    """Lowercase whitespace tokens with surrounding punctuation stripped."""
    tokens = (token.strip(_PUNCTUATION) for token in text.lower().split())
    return {token for token in tokens if token}


class SimilarityStrategy(ABC):
    """One link of the similarity chain."""

    KIND: str = "base"

    @abstractmethod
    def score(self, a: str, b: str) -> Optional[float]:
        """Score two lowercased strings, or None if this strategy does not apply."""
        ...


class ExactStrategy(SimilarityStrategy):
    KIND = "exact"

    def score(self, a: str, b: str) -> Optional[float]:
        return 1.0 if a == b else None


class ContainmentStrategy(SimilarityStrategy):
    KIND = "containment"

    def score(self, a: str, b: str) -> Optional[float]:
        if a and b and (a in b or b in a):
            return 0.8
        return None


class TokenOverlapStrategy(SimilarityStrategy):
    """shared / max(|A|, |B|), capped at 0.7, when at least one token is shared."""

    KIND = "token_overlap"

    def score(self, a: str, b: str) -> Optional[float]:
        tokens_a, tokens_b = tokenize(a), tokenize(b)
        shared = len(tokens_a & tokens_b)
        if shared == 0:
            return None
        return min(0.7, shared / max(len(tokens_a), len(tokens_b)))


class CharacterOverlapStrategy(SimilarityStrategy):
    """Fraction of positions that agree, over the shorter string."""

    KIND = "character_overlap"

    def score(self, a: str, b: str) -> Optional[float]:
        shorter = min(len(a), len(b))
        if shorter == 0:
            return 0.0
        matches = sum(1 for i in range(shorter) if a[i] == b[i])
        return matches / shorter


STRATEGY_REGISTRY: Dict[str, Type[SimilarityStrategy]] = {
    "exact": ExactStrategy,
    "containment": ContainmentStrategy,
    "token_overlap": TokenOverlapStrategy,
    "character_overlap": CharacterOverlapStrategy,
}

DEFAULT_STRATEGIES: List[SimilarityStrategy] = [cls() for cls in STRATEGY_REGISTRY.values()]


def string_similarity(
    a: str, b: str, strategies: Optional[Sequence[SimilarityStrategy]] = None
) -> float:
    """Similarity in [0, 1] between two strings, case-insensitive."""
    left, right = a.strip().lower(), b.strip().lower()
    for strategy in strategies or DEFAULT_STRATEGIES:
        result = strategy.score(left, right)
        if result is not None:
            return result
    return 0.0
