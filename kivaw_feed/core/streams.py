"""Generation tagging for request streams.

Each request captures the stream's generation when it starts; a newer
request advances it. On completion, results from an older generation are
dropped instead of overwriting what the newer request produced.
"""

from __future__ import annotations


class StreamGeneration:
    def __init__(self, name: str = "stream") -> None:
        self.name = name
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def advance(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current

    def __repr__(self) -> str:
        return f"StreamGeneration({self.name!r}, current={self._current})"
