"""Result types returned by the search engine."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["ScoredWord"]


@dataclass(frozen=True, slots=True)
class ScoredWord:
    """A candidate word and its dot-product score against the query."""

    word: str
    score: float
