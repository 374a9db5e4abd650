"""OpenAIEmbedding: async embedding provider backed by OpenAI's API."""

from __future__ import annotations

import os
from typing import Any

from openai import AsyncOpenAI

from loresync.config import DEFAULT_DIMENSIONS


class OpenAIEmbedding:
    """Async embedding provider backed by the OpenAI Embeddings API.

    Defaults to ``text-embedding-3-small`` reduced to the index width
    (512 dimensions).  Retries are left to the gateway, so the client's own
    retry loop is disabled by default.
    """

    def __init__(
        self,
        *,
        model: str = "text-embedding-3-small",
        dimensions: int = DEFAULT_DIMENSIONS,
        api_key: str | None = None,
        max_retries: int = 0,
        timeout: float = 60.0,
    ) -> None:
        resolved_key = api_key or os.environ.get("OPENAI_API_KEY")
        if not resolved_key:
            msg = (
                "No OpenAI API key provided. Pass api_key= or set the "
                "OPENAI_API_KEY environment variable."
            )
            raise ValueError(msg)

        self._model = model
        self._dimensions = dimensions
        self._client = AsyncOpenAI(
            api_key=resolved_key,
            max_retries=max_retries,
            timeout=timeout,
        )

    # ------------------------------------------------------------------
    # EmbeddingProvider protocol
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Embed a single text string via the OpenAI API."""
        result = await self._call_api([text])
        return result[0]

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model_name(self) -> str:
        return self._model

    async def close(self) -> None:
        """Close the underlying httpx client."""
        await self._client.close()

    async def _call_api(self, texts: list[str]) -> list[list[float]]:
        kwargs: dict[str, Any] = {
            "input": texts,
            "model": self._model,
            "dimensions": self._dimensions,
        }
        response = await self._client.embeddings.create(**kwargs)

        # Sort by index to ensure order matches input
        sorted_data = sorted(response.data, key=lambda e: e.index)
        return [item.embedding for item in sorted_data]
