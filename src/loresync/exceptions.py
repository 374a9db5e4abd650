"""Exception hierarchy for loresync.

Lookup misses are not exceptions at the public surface: read and history
operations return empty results or suggestions instead.
"""


class LoreSyncError(Exception):
    """Base exception for all loresync errors."""


class PermissionDeniedError(LoreSyncError):
    """Raised when a write-class operation is attempted below the required role."""


class VersionConflictError(LoreSyncError):
    """Raised when a concurrent reindex of the same document wins the race.

    Attributes:
        expected: The version the caller (or the first read) expected.
        actual: The version found in storage, if known.
    """

    def __init__(self, message: str, *, expected: int | None = None, actual: int | None = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class DocumentNotFoundError(LoreSyncError):
    """Raised internally when a document or version lookup misses."""


class EmbeddingError(LoreSyncError):
    """Base class for embedding provider failures."""


class ProviderTransientError(EmbeddingError):
    """A provider failure worth retrying (timeout, rate limit, 5xx)."""


class ProviderFatalError(EmbeddingError):
    """A provider failure that must not be retried (auth, bad request)."""


class DimensionMismatchError(ProviderFatalError):
    """The provider returned a vector of the wrong length."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected {expected}-dimensional vector, got {actual}")
        self.expected = expected
        self.actual = actual


class EmbeddingRejectedError(ProviderFatalError):
    """The input was rejected before reaching the provider (empty or oversize)."""
