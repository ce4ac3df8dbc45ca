"""
Vectorizer
----------
Vector math used to compare planning contexts.
Every function accepts plain sequences or numpy arrays and returns Python floats / lists.
"""
from typing import List, Sequence

import numpy as np


class DimensionMismatchError(ValueError):
    """Raised when two vectors (or a vector and its weights) differ in length."""


def _check_dimensions(*vectors: Sequence[float]) -> None:
    lengths = [len(v) for v in vectors]
    if len(set(lengths)) > 1:
        raise DimensionMismatchError(
            f"Vector dimensions don't match: {' vs '.join(str(n) for n in lengths)}"
        )


def _as_array(vector: Sequence[float]) -> np.ndarray:
    return np.asarray(vector, dtype=float)


def magnitude(vector: Sequence[float]) -> float:
    return float(np.linalg.norm(_as_array(vector)))


def normalize(vector: Sequence[float]) -> List[float]:
    """Returns the unit vector. A zero vector normalizes to zeros, never NaN."""
    arr = _as_array(vector)
    mag = np.linalg.norm(arr)
    if mag == 0:
        return np.zeros_like(arr).tolist()
    return (arr / mag).tolist()


def dot_product(v1: Sequence[float], v2: Sequence[float]) -> float:
    _check_dimensions(v1, v2)
    return float(np.dot(_as_array(v1), _as_array(v2)))


def cosine_similarity(v1: Sequence[float], v2: Sequence[float]) -> float:
    """
    Cosine similarity in [-1, 1].
    Returns 0 when either vector has zero magnitude.
    """
    _check_dimensions(v1, v2)
    a, b = _as_array(v1), _as_array(v2)
    mag1 = np.linalg.norm(a)
    mag2 = np.linalg.norm(b)
    if mag1 == 0 or mag2 == 0:
        return 0.0
    return float(np.dot(a, b) / (mag1 * mag2))


def weighted_cosine_similarity(
    v1: Sequence[float],
    v2: Sequence[float],
    weights: Sequence[float]
) -> float:
    """Scales both vectors element-wise by `weights`, then takes the cosine."""
    _check_dimensions(v1, v2, weights)
    w = _as_array(weights)
    return cosine_similarity(_as_array(v1) * w, _as_array(v2) * w)


def euclidean_distance(v1: Sequence[float], v2: Sequence[float]) -> float:
    _check_dimensions(v1, v2)
    return float(np.linalg.norm(_as_array(v1) - _as_array(v2)))


def similarity_to_distance(similarity: float) -> float:
    return 1 - similarity


def distance_to_similarity(distance: float) -> float:
    # Assumes a distance normalized to [0, 1]
    return max(0.0, 1 - distance)


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(_as_array(values)))


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation (0 for an empty sequence)."""
    if len(values) == 0:
        return 0.0
    return float(np.std(_as_array(values)))
