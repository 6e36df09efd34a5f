"""Vector math used by the exhaustive similarity scan of the vector store."""

import math
from typing import Sequence

COSINE_EPSILON = 1e-9


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Both vectors are truncated to their shared minimum length. The
    denominator is floored at 1e-9 so an all-zero vector scores 0.0
    instead of dividing by zero.

    Args:
        a (Sequence[float]): First vector.
        b (Sequence[float]): Second vector.

    Returns:
        float: Score in [-1, 1].
    """
    n = min(len(a), len(b))
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for i in range(n):
        x = a[i]
        y = b[i]
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    denom = math.sqrt(norm_a) * math.sqrt(norm_b)
    return dot / max(denom, COSINE_EPSILON)
