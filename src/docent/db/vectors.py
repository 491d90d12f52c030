"""Vector helpers shared by storage, retrieval and scoring.

Embeddings are stored as little-endian float32 blobs (sqlite-vec's native
format) and truncated to the store's maximum indexed dimensionality before
they are written or searched, so stored and query vectors always agree.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import sqlite_vec


def truncate(vector: Sequence[float], max_dims: int) -> list[float]:
    """Return *vector* cut to at most *max_dims* components."""
    if max_dims < 1:
        raise ValueError(f"max_dims must be >= 1, got {max_dims}")
    values = list(vector)
    return values[:max_dims] if len(values) > max_dims else values


def to_blob(vector: Sequence[float]) -> bytes:
    """Serialize *vector* to the float32 blob format sqlite-vec reads."""
    return sqlite_vec.serialize_float32([float(v) for v in vector])


def from_blob(blob: bytes) -> list[float]:
    """Inverse of ``to_blob()``."""
    return np.frombuffer(blob, dtype=np.float32).astype(float).tolist()


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm.

    Vectors of different length are compared over their common prefix,
    matching the truncation applied at storage time.
    """
    n = min(len(a), len(b))
    if n == 0:
        return 0.0
    va = np.asarray(a[:n], dtype=np.float64)
    vb = np.asarray(b[:n], dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)
