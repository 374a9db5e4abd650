"""Vector and string similarity."""

from __future__ import annotations

import math
from collections import Counter

import numpy as np


def cosine_scores(query: list[float], matrix: list[list[float]]) -> np.ndarray:
    """Cosine similarity of *query* against every row of *matrix*.

    Rows with zero norm score 0.
    """
    if not matrix:
        return np.zeros(0, dtype=np.float64)
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2 or m.shape[1] != q.shape[0]:
        msg = f"Query has {q.shape[0]} dimensions, candidates have shape {m.shape}"
        raise ValueError(msg)
    norms = np.linalg.norm(m, axis=1) * np.linalg.norm(q)
    dots = m @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms > 0, dots / norms, 0.0)
    return scores


def trigrams(text: str) -> Counter[str]:
    """Character trigram counts of *text*, lowercased and padded."""
    padded = f"  {text.lower().strip()} "
    return Counter(padded[i : i + 3] for i in range(len(padded) - 2))


def trigram_similarity(a: str, b: str) -> float:
    """Cosine similarity of the trigram vectors of *a* and *b*."""
    va, vb = trigrams(a), trigrams(b)
    dot = sum(count * vb[gram] for gram, count in va.items())
    if dot == 0:
        return 0.0
    norm = math.sqrt(sum(c * c for c in va.values())) * math.sqrt(sum(c * c for c in vb.values()))
    return dot / norm
