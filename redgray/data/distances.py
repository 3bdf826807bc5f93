from __future__ import annotations

import math

import numpy as np

from redgray.article_refs import DISTANCE_TRANSFORMS
from redgray.errors import DistanceMatrixError
from redgray.logging import LOGGER

NORMALIZATION_NEIGHBORS = 20
COSINE_NORM_FLOOR = 1e-7
_KTH_DISTANCE_FLOOR = 1e-9


def validate_square(matrix: np.ndarray, size: int | None = None, *, name: str = "matrix") -> np.ndarray:
    values = np.asarray(matrix, dtype=np.float64)
    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise DistanceMatrixError(f"{name} must be square, got shape {values.shape}")
    if size is not None and values.shape[0] != size:
        raise DistanceMatrixError(
            f"{name} must be {size}x{size}, got {values.shape[0]}x{values.shape[1]}"
        )
    return values


def euclidean_matrix(features: np.ndarray) -> np.ndarray:
    values = np.asarray(features, dtype=np.float64)
    if values.ndim != 2:
        raise DistanceMatrixError("features must be a 2D array")
    count = values.shape[0]
    out = np.empty((count, count), dtype=np.float64)
    # Row by row keeps memory at O(N * D) and the result exactly symmetric.
    for i in range(count):
        diff = values - values[i]
        out[i] = np.sqrt(np.einsum("ij,ij->i", diff, diff))
    return out


def cosine_distance_matrix(features: np.ndarray) -> np.ndarray:
    values = np.asarray(features, dtype=np.float64)
    if values.ndim != 2:
        raise DistanceMatrixError("features must be a 2D array")
    squared = np.maximum(np.einsum("ij,ij->i", values, values), COSINE_NORM_FLOOR)
    norms = np.sqrt(squared)
    dots = values @ values.T
    return 1.0 - dots / norms[:, None] / norms[None, :]


def kth_neighbor_distances(matrix: np.ndarray, k: int) -> np.ndarray:
    values = validate_square(matrix)
    count = values.shape[0]
    if count < 2:
        return np.zeros(count, dtype=np.float64)
    k = max(1, min(k, count - 1))
    out = np.empty(count, dtype=np.float64)
    for i in range(count):
        row = np.delete(values[i], i)
        out[i] = np.partition(row, k - 1)[k - 1]
    return out


def neighborhood_normalize(matrix: np.ndarray, k: int = NORMALIZATION_NEIGHBORS) -> np.ndarray:
    """Rescale ``matrix`` in place by each instance's k-th neighbor distance.

    ``d'(i, j) = (atan(d(i, j) * m_i) + atan(d(i, j) * m_j)) / 2`` with
    ``m_i = tan(1) / d(i, k-th neighbor of i)``.
    """
    values = validate_square(matrix)
    kth = np.maximum(kth_neighbor_distances(values, k), _KTH_DISTANCE_FLOOR)
    scale = math.tan(1.0) / kth
    left = np.arctan(values * scale[:, None])
    right = np.arctan(values * scale[None, :])
    values[:, :] = (left + right) / 2.0
    LOGGER.event(
        "distances.neighborhood_normalize",
        section=DISTANCE_TRANSFORMS,
        data={
            "instances": values.shape[0],
            "k": min(k, max(values.shape[0] - 1, 0)),
            "kth_min": float(kth.min()) if kth.size else 0.0,
            "kth_max": float(kth.max()) if kth.size else 0.0,
        },
    )
    return values


def symmetrize(matrix: np.ndarray) -> np.ndarray:
    values = validate_square(matrix)
    upper = np.triu_indices(values.shape[0], k=1)
    mean = (values[upper] + values.T[upper]) / 2.0
    values[upper] = mean
    values[(upper[1], upper[0])] = mean
    return values


def maximum_pairwise(matrix: np.ndarray) -> float:
    values = validate_square(matrix)
    if values.shape[0] < 2:
        return 0.0
    upper = np.triu_indices(values.shape[0], k=1)
    return float(values[upper].max())
