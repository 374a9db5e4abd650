"""Deterministic embedding providers for tests."""

from __future__ import annotations

import hashlib
import math
import re

FAKE_DIM = 256

_WORD_RE = re.compile(r"[a-z0-9]+")


class WordHashProvider:
    """Deterministic async provider: bag-of-words hashed into buckets.

    Texts sharing words have positive cosine similarity; texts with no
    words in common score (almost always) zero.
    """

    def __init__(self, dimensions: int = FAKE_DIM) -> None:
        self._dimensions = dimensions
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return self.vector(text)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model_name(self) -> str:
        return "word-hash"

    def vector(self, text: str) -> list[float]:
        raw = [0.0] * self._dimensions
        for word in _WORD_RE.findall(text.lower()):
            bucket = int.from_bytes(hashlib.sha256(word.encode()).digest()[:4], "big")
            raw[bucket % self._dimensions] += 1.0
        norm = math.sqrt(sum(x * x for x in raw))
        if norm == 0:
            raw[0] = 1.0
            return raw
        return [x / norm for x in raw]


class ScriptedProvider(WordHashProvider):
    """Raises the queued exceptions (one per call) before answering normally."""

    def __init__(self, failures: list[BaseException] | None = None, dimensions: int = FAKE_DIM) -> None:
        super().__init__(dimensions)
        self.failures = list(failures or [])
        self.attempts = 0

    async def embed(self, text: str) -> list[float]:
        self.attempts += 1
        if self.failures:
            raise self.failures.pop(0)
        return await super().embed(text)


class FailingTextProvider(WordHashProvider):
    """Fails permanently for any text containing *marker*."""

    def __init__(self, marker: str, exc: BaseException) -> None:
        super().__init__()
        self.marker = marker
        self.exc = exc

    async def embed(self, text: str) -> list[float]:
        if self.marker in text:
            raise self.exc
        return await super().embed(text)

