"""Embedding layer: provider protocol, shipped providers, and the gateway."""

from loresync.embeddings.gateway import EmbeddingGateway, EmbeddingOutcome, classify_error
from loresync.embeddings.protocols import EmbeddingProvider
from loresync.embeddings.providers import OpenAIEmbedding

__all__ = [
    "EmbeddingGateway",
    "EmbeddingOutcome",
    "EmbeddingProvider",
    "OpenAIEmbedding",
    "classify_error",
]
