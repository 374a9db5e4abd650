"""Shipped embedding providers."""

from loresync.embeddings.providers.openai import OpenAIEmbedding

__all__ = ["OpenAIEmbedding"]
