from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from redgray.article_refs import ATTRACTIVE_FORCES, PARALLEL_PROCESSING, REPULSIVE_FORCES
from redgray.layout.point_set import ProjectedPointSet
from redgray.layout.projected_point import ANGLE_BINS, BIN_DIRECTIONS
from redgray.logging import LOGGER


@dataclass(frozen=True)
class ForceParameters:
    ideal_distance: float
    max_original_distance: float
    max_visual_distance: float
    visual_density: float = 0.9
    original_impact: float = 0.5
    epsilon: float = 1e-9

    def __post_init__(self) -> None:
        if self.ideal_distance <= 0:
            raise ValueError("ideal_distance must be positive")
        if self.max_original_distance <= 0:
            raise ValueError("max_original_distance must be positive")
        if self.max_visual_distance <= 0:
            raise ValueError("max_visual_distance must be positive")
        if not 0.0 <= self.visual_density <= 1.0:
            raise ValueError("visual_density must be in [0, 1]")
        if self.original_impact < 0:
            raise ValueError("original_impact must be >= 0")
        if self.epsilon <= 0:
            raise ValueError("epsilon must be positive")

    @property
    def ideal_distance_squared(self) -> float:
        return self.ideal_distance * self.ideal_distance


class ForceField:
    """Per-step force output; every row is written by exactly one worker."""

    def __init__(self, point_count: int) -> None:
        self.add_x = np.zeros(point_count, dtype=np.float64)
        self.add_y = np.zeros(point_count, dtype=np.float64)
        self.positive = np.zeros((point_count, ANGLE_BINS), dtype=np.float64)
        self.negative = np.zeros((point_count, ANGLE_BINS), dtype=np.float64)

    def __len__(self) -> int:
        return self.add_x.shape[0]

    def track(self, row: int, forces: np.ndarray) -> None:
        if forces.size == 0:
            return
        projected = forces @ BIN_DIRECTIONS.T
        self.positive[row] += np.where(projected > 0.0, projected, 0.0).sum(axis=0)
        self.negative[row] += np.where(projected > 0.0, 0.0, -projected).sum(axis=0)


def _partition(owners: np.ndarray, order: Sequence[int], workers: int) -> list[list[int]]:
    parts: list[list[int]] = [[] for _ in range(workers)]
    for index in order:
        parts[int(owners[index]) % workers].append(index)
    return parts


class ForceCalculator:
    """Fork-join force accumulation over points partitioned by ``instance % workers``.

    Each phase (repulsion, attraction by source, attraction by target) reads
    a frozen copy of the positions and writes only the rows of its own
    partition, so the result does not depend on the worker count.
    """

    def __init__(
        self,
        params: ForceParameters,
        original_distances: np.ndarray,
        *,
        workers: int = 1,
        executor: concurrent.futures.Executor | None = None,
    ) -> None:
        if workers <= 0:
            raise ValueError("workers must be positive")
        if workers > 1 and executor is None:
            raise ValueError("executor must be provided when workers > 1")
        self._params = params
        self._original = original_distances
        self._workers = workers
        self._executor = executor

    @property
    def workers(self) -> int:
        return self._workers

    def compute(self, point_set: ProjectedPointSet, *, track_pressure: bool) -> ForceField:
        count = len(point_set)
        field = ForceField(count)
        positions = point_set.positions()
        owners = point_set.owners()
        ineffective = np.fromiter(
            (point.ineffective for point in point_set.points), dtype=bool, count=count
        )
        weights = np.fromiter(
            (point.effective_weight for point in point_set.points), dtype=np.float64, count=count
        )
        order = list(point_set.iter_by_instance())
        neighbors = [np.asarray(point.neighbors, dtype=np.int64) for point in point_set.points]
        sources = self._reverse_adjacency(point_set, order)
        parts = _partition(owners, order, self._workers)

        self._run_phase(
            "forces.repulsion",
            REPULSIVE_FORCES,
            lambda rows: self._repulsion(rows, positions, ineffective, field, track_pressure),
            parts,
        )
        self._run_phase(
            "forces.attraction.source",
            ATTRACTIVE_FORCES,
            lambda rows: self._attraction_source(
                rows, positions, owners, ineffective, weights, neighbors, field, track_pressure
            ),
            parts,
        )
        self._run_phase(
            "forces.attraction.target",
            ATTRACTIVE_FORCES,
            lambda rows: self._attraction_target(
                rows, positions, owners, ineffective, weights, sources, field, track_pressure
            ),
            parts,
        )
        return field

    @staticmethod
    def _reverse_adjacency(point_set: ProjectedPointSet, order: Sequence[int]) -> list[np.ndarray]:
        incoming: list[list[int]] = [[] for _ in range(len(point_set))]
        for source in order:
            for target in point_set.points[source].neighbors:
                incoming[target].append(source)
        return [np.asarray(rows, dtype=np.int64) for rows in incoming]

    def _run_phase(
        self,
        event: str,
        section: str,
        task: Callable[[list[int]], None],
        parts: list[list[int]],
    ) -> None:
        if self._workers == 1 or self._executor is None:
            for rows in parts:
                task(rows)
            return
        futures = [self._executor.submit(task, rows) for rows in parts]
        concurrent.futures.wait(futures)
        for worker, future in enumerate(futures):
            exc = future.exception()
            if exc is not None:
                LOGGER.event(
                    f"{event}.error",
                    section=PARALLEL_PROCESSING,
                    data={"worker": worker, "error": str(exc), "phase": section},
                )
                raise exc

    def _repulsion(
        self,
        rows: list[int],
        positions: np.ndarray,
        ineffective: np.ndarray,
        field: ForceField,
        track_pressure: bool,
    ) -> None:
        eps = self._params.epsilon
        ideal_sq = self._params.ideal_distance_squared
        active = np.flatnonzero(~ineffective)
        for row in rows:
            if ineffective[row]:
                continue
            others = active[active != row]
            if others.size == 0:
                continue
            delta = positions[row] - positions[others]
            size = np.maximum(np.sqrt(np.einsum("ij,ij->i", delta, delta)), eps)
            forces = delta * (ideal_sq / (size * size))[:, None]
            field.add_x[row] += forces[:, 0].sum()
            field.add_y[row] += forces[:, 1].sum()
            if track_pressure:
                field.track(row, forces)

    def _attraction_magnitude(
        self, size: np.ndarray, first: np.ndarray | int, second: np.ndarray
    ) -> np.ndarray:
        params = self._params
        base = np.power(size / params.ideal_distance, 1.0 - params.visual_density)
        original = self._original[first, second] / params.max_original_distance
        correction = original - size / params.max_visual_distance
        limit = np.abs(base) * params.original_impact
        return base + np.clip(correction, -limit, limit)

    def _attraction_source(
        self,
        rows: list[int],
        positions: np.ndarray,
        owners: np.ndarray,
        ineffective: np.ndarray,
        weights: np.ndarray,
        neighbors: list[np.ndarray],
        field: ForceField,
        track_pressure: bool,
    ) -> None:
        eps = self._params.epsilon
        for row in rows:
            if ineffective[row]:
                continue
            targets = neighbors[row]
            targets = targets[~ineffective[targets]] if targets.size else targets
            if targets.size == 0:
                continue
            delta = positions[row] - positions[targets]
            size = np.maximum(np.sqrt(np.einsum("ij,ij->i", delta, delta)), eps)
            magnitude = self._attraction_magnitude(size, owners[row], owners[targets])
            pull = -(delta / size[:, None]) * magnitude[:, None]
            field.add_x[row] += (pull[:, 0] * weights[row]).sum()
            field.add_y[row] += (pull[:, 1] * weights[row]).sum()
            if track_pressure:
                field.track(row, pull)

    def _attraction_target(
        self,
        rows: list[int],
        positions: np.ndarray,
        owners: np.ndarray,
        ineffective: np.ndarray,
        weights: np.ndarray,
        sources: list[np.ndarray],
        field: ForceField,
        track_pressure: bool,
    ) -> None:
        eps = self._params.epsilon
        for row in rows:
            if ineffective[row]:
                continue
            origins = sources[row]
            origins = origins[~ineffective[origins]] if origins.size else origins
            if origins.size == 0:
                continue
            delta = positions[origins] - positions[row]
            size = np.maximum(np.sqrt(np.einsum("ij,ij->i", delta, delta)), eps)
            magnitude = self._attraction_magnitude(size, owners[origins], owners[row])
            pull = (delta / size[:, None]) * magnitude[:, None]
            field.add_x[row] += (pull[:, 0] * weights[row]).sum()
            field.add_y[row] += (pull[:, 1] * weights[row]).sum()
            if track_pressure:
                field.track(row, pull)
