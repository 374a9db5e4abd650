"""EmbeddingGateway: timeouts, bounded retries, and input checks around a provider."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import openai

from loresync.config import DEFAULT_DIMENSIONS
from loresync.exceptions import (
    DimensionMismatchError,
    EmbeddingError,
    EmbeddingRejectedError,
    ProviderFatalError,
    ProviderTransientError,
)

if TYPE_CHECKING:
    from loresync.config import EngineConfig
    from loresync.embeddings.protocols import EmbeddingProvider

logger = logging.getLogger(__name__)

_TRANSIENT_OPENAI_ERRORS = (
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def classify_error(exc: BaseException) -> EmbeddingError:
    """Map a provider exception onto the transient / fatal split."""
    if isinstance(exc, EmbeddingError):
        return exc
    if isinstance(exc, TimeoutError | ConnectionError):
        return ProviderTransientError(f"{type(exc).__name__}: {exc}")
    if isinstance(exc, _TRANSIENT_OPENAI_ERRORS):
        return ProviderTransientError(f"{type(exc).__name__}: {exc}")
    if isinstance(exc, openai.APIStatusError) and exc.status_code >= 500:
        return ProviderTransientError(f"HTTP {exc.status_code}: {exc}")
    return ProviderFatalError(f"{type(exc).__name__}: {exc}")


@dataclass(frozen=True, slots=True)
class EmbeddingOutcome:
    """Result for one input of :meth:`EmbeddingGateway.embed_many`."""

    index: int
    vector: list[float] | None = None
    error: EmbeddingError | None = None

    @property
    def ok(self) -> bool:
        return self.vector is not None


class EmbeddingGateway:
    """Wraps an :class:`EmbeddingProvider` with the reliability policy.

    Every provider call runs under ``asyncio.timeout``.  Transient failures
    are retried with exponential backoff up to *max_retries* times; fatal
    ones surface immediately.  At most *max_concurrency* calls are in
    flight per gateway.  A provider whose declared width differs from
    *dimensions* is refused at construction.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        *,
        dimensions: int = DEFAULT_DIMENSIONS,
        max_input_chars: int = 8000,
        oversize: str = "truncate",
        max_retries: int = 3,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
        timeout: float = 30.0,
        max_concurrency: int = 4,
    ) -> None:
        if oversize not in ("truncate", "reject"):
            msg = f"oversize must be 'truncate' or 'reject', got {oversize!r}"
            raise ValueError(msg)
        if provider.dimensions != dimensions:
            raise DimensionMismatchError(dimensions, provider.dimensions)
        self.provider = provider
        self.dimensions = dimensions
        self.max_input_chars = max_input_chars
        self.oversize = oversize
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.timeout = timeout
        self._semaphore = asyncio.Semaphore(max_concurrency)

    @classmethod
    def from_config(cls, provider: EmbeddingProvider, config: EngineConfig) -> EmbeddingGateway:
        return cls(
            provider,
            dimensions=config.dimensions,
            max_input_chars=config.max_input_chars,
            oversize=config.oversize_policy,
            max_retries=config.max_retries,
            backoff_base=config.backoff_base,
            backoff_max=config.backoff_max,
            timeout=config.provider_timeout,
            max_concurrency=config.max_concurrency,
        )

    @property
    def model_name(self) -> str:
        return self.provider.model_name

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Embed one text, raising an :class:`EmbeddingError` subclass on failure."""
        prepared = self.prepare(text)
        async with self._semaphore:
            return await self._embed_with_retry(prepared)

    async def embed_many(self, texts: list[str]) -> list[EmbeddingOutcome]:
        """Embed *texts* concurrently; one outcome per input, in input order."""

        async def _one(index: int, text: str) -> EmbeddingOutcome:
            try:
                return EmbeddingOutcome(index=index, vector=await self.embed(text))
            except EmbeddingError as exc:
                logger.warning("Embedding input %d failed: %s", index, exc)
                return EmbeddingOutcome(index=index, error=exc)

        return list(await asyncio.gather(*(_one(i, t) for i, t in enumerate(texts))))

    def prepare(self, text: str) -> str:
        """Apply the empty-input and oversize rules to *text*."""
        if not text.strip():
            msg = "Refusing to embed empty input"
            raise EmbeddingRejectedError(msg)
        if len(text) <= self.max_input_chars:
            return text
        if self.oversize == "reject":
            msg = f"Input of {len(text)} chars exceeds the {self.max_input_chars}-char limit"
            raise EmbeddingRejectedError(msg)
        logger.debug("Truncating %d-char input to %d chars", len(text), self.max_input_chars)
        return text[: self.max_input_chars]

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _backoff(self, attempt: int) -> float:
        return min(self.backoff_max, self.backoff_base * (2**attempt))

    async def _embed_with_retry(self, text: str) -> list[float]:
        attempt = 0
        while True:
            try:
                async with asyncio.timeout(self.timeout):
                    vector = await self.provider.embed(text)
            except Exception as exc:
                error = classify_error(exc)
                if isinstance(error, ProviderFatalError) or attempt >= self.max_retries:
                    raise error from exc
                delay = self._backoff(attempt)
                attempt += 1
                logger.warning(
                    "Embedding attempt %d/%d failed (%s), retrying in %.2fs",
                    attempt,
                    self.max_retries + 1,
                    error,
                    delay,
                )
                await asyncio.sleep(delay)
                continue
            return self._check_vector(vector)

    def _check_vector(self, vector: list[float]) -> list[float]:
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(self.dimensions, len(vector))
        return [float(v) for v in vector]
