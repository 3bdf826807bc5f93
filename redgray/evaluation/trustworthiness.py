from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass

import numpy as np

from redgray.article_refs import PARALLEL_PROCESSING, TRUSTWORTHINESS
from redgray.data.dataset import DataInstanceSet
from redgray.layout.point_set import ProjectedPointSet
from redgray.logging import LOGGER


@dataclass(frozen=True)
class _Layer:
    points: np.ndarray
    owners: np.ndarray
    instances: np.ndarray
    instance_mask: np.ndarray
    points_by_instance: list[np.ndarray]


class TrustworthinessEvaluator:
    """Rank-based trustworthiness of a multi-point layout.

    The visual rank of instance ``j`` seen from ``i`` is the best rank of
    any point of ``j`` among the points around any point of ``i``. Pairs
    that are visual neighbors (rank <= k) but not true neighbors add
    ``true_rank - k`` to the penalty. The red layer ignores gray points and
    instances left without a red point.
    """

    def __init__(self, neighborhood_size: int = 10, *, workers: int = 1) -> None:
        if neighborhood_size <= 0:
            raise ValueError("neighborhood_size must be positive")
        if workers <= 0:
            raise ValueError("workers must be positive")
        self.neighborhood_size = neighborhood_size
        self.workers = workers

    def evaluate(
        self,
        point_set: ProjectedPointSet,
        dataset: DataInstanceSet,
        *,
        red_layer: bool = False,
        executor: concurrent.futures.Executor | None = None,
    ) -> float:
        if point_set.instance_count != len(dataset):
            raise ValueError("point_set and dataset must cover the same instances")
        k = self.neighborhood_size
        layer = self._layer(point_set, red_layer=red_layer)
        count = int(layer.instances.size)
        normalizer = count * k * (2 * count - 3 * k - 1)
        if normalizer <= 0:
            LOGGER.event(
                "trustworthiness.degenerate",
                section=TRUSTWORTHINESS,
                data={"instances": count, "k": k, "red_layer": red_layer},
            )
            return 1.0

        coords = point_set.positions()
        original = dataset.evaluation_distance_matrix()
        instance_total = point_set.instance_count
        visual_ranks = np.full((instance_total, instance_total), -1, dtype=np.int64)
        sums = np.zeros(self.workers, dtype=np.int64)

        def _work(worker: int) -> None:
            penalty = 0
            for row in range(worker, instance_total, self.workers):
                if not layer.instance_mask[row]:
                    continue
                visual_ranks[row] = self._visual_rank_row(row, coords, layer)
                penalty += self._row_penalty(row, visual_ranks[row], original, layer)
            sums[worker] = penalty

        self._run(_work, executor)
        penalty = int(sums.sum())
        score = 1.0 - (2.0 * penalty) / normalizer
        LOGGER.event(
            "trustworthiness.score",
            section=TRUSTWORTHINESS,
            data={
                "instances": count,
                "points": int(layer.points.size),
                "k": k,
                "red_layer": red_layer,
                "penalty": penalty,
                "score": score,
            },
        )
        return score

    def evaluate_layers(
        self,
        point_set: ProjectedPointSet,
        dataset: DataInstanceSet,
        *,
        executor: concurrent.futures.Executor | None = None,
    ) -> tuple[float, float]:
        """Return ``(red_and_gray, red)`` scores."""
        return (
            self.evaluate(point_set, dataset, red_layer=False, executor=executor),
            self.evaluate(point_set, dataset, red_layer=True, executor=executor),
        )

    @staticmethod
    def _layer(point_set: ProjectedPointSet, *, red_layer: bool) -> _Layer:
        owners = point_set.owners()
        eligible = ~point_set.gray_mask() if red_layer else np.ones(len(point_set), dtype=bool)
        points = np.flatnonzero(eligible)
        instance_mask = np.zeros(point_set.instance_count, dtype=bool)
        instance_mask[owners[points]] = True
        points_by_instance = [
            np.asarray([p for p in indices if eligible[p]], dtype=np.int64)
            for indices in point_set.instance_points
        ]
        return _Layer(
            points=points,
            owners=owners,
            instances=np.flatnonzero(instance_mask),
            instance_mask=instance_mask,
            points_by_instance=points_by_instance,
        )

    @staticmethod
    def _visual_rank_row(row: int, coords: np.ndarray, layer: _Layer) -> np.ndarray:
        ranks = np.full(layer.instance_mask.shape[0], np.iinfo(np.int64).max, dtype=np.int64)
        targets = layer.points
        target_owners = layer.owners[targets]
        for source in layer.points_by_instance[row]:
            diff = coords[targets] - coords[source]
            dist = np.sqrt(np.einsum("ij,ij->i", diff, diff))
            others = targets != source
            ordered = np.sort(dist[others])
            # rank = 1 + points strictly closer than the target, excluding source and target
            point_ranks = 1 + np.searchsorted(ordered, dist, side="left")
            np.minimum.at(ranks, target_owners[others], point_ranks[others])
        ranks[row] = np.iinfo(np.int64).max
        ranks[~layer.instance_mask] = np.iinfo(np.int64).max
        return np.where(ranks == np.iinfo(np.int64).max, -1, ranks)

    def _row_penalty(
        self, row: int, ranks: np.ndarray, original: np.ndarray, layer: _Layer
    ) -> int:
        k = self.neighborhood_size
        visual_neighbors = np.flatnonzero((ranks >= 1) & (ranks <= k))
        if visual_neighbors.size == 0:
            return 0
        others = layer.instances[layer.instances != row]
        ordered = np.sort(original[row, others])
        true_ranks = 1 + np.searchsorted(ordered, original[row, visual_neighbors], side="left")
        excess = true_ranks[true_ranks > k] - k
        return int(excess.sum())

    def _run(self, work, executor: concurrent.futures.Executor | None) -> None:
        if self.workers == 1:
            work(0)
            return
        own_executor = executor is None
        pool = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="redgray-eval"
        )
        try:
            futures = [pool.submit(work, worker) for worker in range(self.workers)]
            concurrent.futures.wait(futures)
            for worker, future in enumerate(futures):
                exc = future.exception()
                if exc is not None:
                    LOGGER.event(
                        "trustworthiness.worker.error",
                        section=PARALLEL_PROCESSING,
                        data={"worker": worker, "error": str(exc)},
                    )
                    raise exc
        finally:
            if own_executor:
                pool.shutdown(wait=True)
