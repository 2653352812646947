"""Score ordering for the Trending section."""

from __future__ import annotations

from typing import Iterable, Protocol, TypeVar


class _Scored(Protocol):
    score: float | None


T = TypeVar("T", bound=_Scored)


def score_of(item: _Scored) -> float:
    return item.score if item.score is not None else 0.0


def rank_by_score(items: Iterable[T]) -> list[T]:
    """Sort by score descending, missing score counts as 0.

    ``sorted`` is stable, so equal scores keep their input order.
    """
    return sorted(items, key=score_of, reverse=True)
