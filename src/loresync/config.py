"""EngineConfig: tunables for chunking, embedding, search, and scoring."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_DIMENSIONS: int = 512
"""Vector length every stored embedding must have."""


@dataclass(frozen=True, slots=True)
class StalenessThresholds:
    """Day boundaries between staleness levels.

    ``fresh`` < *fresh_days* ≤ ``aging`` < *aging_days* ≤ ``stale`` <
    *stale_days* ≤ ``critical``.
    """

    fresh_days: int = 14
    aging_days: int = 30
    stale_days: int = 60

    def __post_init__(self) -> None:
        if not 0 < self.fresh_days <= self.aging_days <= self.stale_days:
            msg = "Staleness thresholds must be positive and non-decreasing"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """All knobs in one place. Defaults match production behaviour.

    Attributes:
        max_chunk_chars: Longest chunk the splitters emit before cutting fragments.
        dimensions: Expected embedding length.
        max_input_chars: Provider input limit per chunk.
        oversize_policy: ``"truncate"`` or ``"reject"`` inputs above the limit.
        max_retries: Retries per provider call after the first attempt.
        backoff_base: First retry delay in seconds (doubles each attempt).
        backoff_max: Ceiling for the retry delay.
        provider_timeout: Seconds before a single provider call is abandoned.
        max_concurrency: Parallel provider calls per gateway.
        search_limit: Maximum documents returned by a search.
        candidate_pool: Nearest chunks considered before per-document aggregation.
        min_similarity: Chunks below this cosine similarity are ignored.
        snippet_chars: Snippet length for document hits.
        preview_chars: Preview length for chunk hits.
        max_read_chunks: Cap on ids accepted by ``read_chunks``.
        suggestion_limit: Near-miss suggestions on a failed read.
        staleness: Day thresholds for the staleness levels.
        usage_window_days: Activity window used for usage signals.
        usage_read_cap: Reads at which the usage weight saturates.
        usage_max_boost: Extra age multiplier at saturation.
    """

    max_chunk_chars: int = 1500
    dimensions: int = DEFAULT_DIMENSIONS
    max_input_chars: int = 8000
    oversize_policy: str = "truncate"
    max_retries: int = 3
    backoff_base: float = 0.5
    backoff_max: float = 8.0
    provider_timeout: float = 30.0
    max_concurrency: int = 4
    search_limit: int = 10
    candidate_pool: int = 50
    min_similarity: float = 0.1
    snippet_chars: int = 400
    preview_chars: int = 200
    max_read_chunks: int = 20
    suggestion_limit: int = 5
    staleness: StalenessThresholds = field(default_factory=StalenessThresholds)
    usage_window_days: int = 30
    usage_read_cap: int = 10
    usage_max_boost: float = 0.5

    def __post_init__(self) -> None:
        if self.oversize_policy not in ("truncate", "reject"):
            msg = f"oversize_policy must be 'truncate' or 'reject', got {self.oversize_policy!r}"
            raise ValueError(msg)
        if self.max_concurrency < 1:
            msg = "max_concurrency must be at least 1"
            raise ValueError(msg)
        if self.max_chunk_chars < 64:
            msg = "max_chunk_chars must be at least 64"
            raise ValueError(msg)
