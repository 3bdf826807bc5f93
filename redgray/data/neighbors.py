from __future__ import annotations

import numpy as np

from redgray.article_refs import NEIGHBORHOOD_GRAPH
from redgray.data.dataset import DataInstanceSet
from redgray.logging import LOGGER


def nearest_neighbors(matrix: np.ndarray, k: int) -> list[list[int]]:
    """k nearest other rows of ``matrix`` per row; equal distances go to the lower index."""
    values = np.asarray(matrix, dtype=np.float64)
    count = values.shape[0]
    k = max(0, min(k, count - 1))
    result: list[list[int]] = []
    for i in range(count):
        order = np.argsort(values[i], kind="stable")
        row = [int(j) for j in order if j != i]
        result.append(row[:k])
    return result


class NeighborGraphBuilder:
    def __init__(self, dataset: DataInstanceSet) -> None:
        self._dataset = dataset

    def build(self, k: int, *, evaluation: bool = False) -> list[list[int]]:
        if k < 0:
            raise ValueError("k must be >= 0")
        if evaluation:
            matrix = self._dataset.evaluation_distance_matrix()
        else:
            matrix = self._dataset.distance_matrix()
        neighbors = nearest_neighbors(matrix, k)
        if evaluation:
            self._dataset.evaluation_neighbors = neighbors
        else:
            self._dataset.neighbors = neighbors
        LOGGER.event(
            "neighbors.build",
            section=NEIGHBORHOOD_GRAPH,
            data={
                "instances": len(self._dataset),
                "k": min(k, max(len(self._dataset) - 1, 0)),
                "evaluation": evaluation,
            },
        )
        return neighbors
