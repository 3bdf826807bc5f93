from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

from redgray.layout.projected_point import ProjectedPoint

OUTLIER_STD_FACTOR = 1.2
OUTLIER_CAP_DIVISOR = 4
_SIZE_FLOOR = 1e-9


@dataclass(frozen=True)
class Box:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return abs(self.max_x - self.min_x)

    @property
    def height(self) -> float:
        return abs(self.max_y - self.min_y)

    def expanded(self, ratio: float) -> "Box":
        grow_x = self.width * ratio
        grow_y = self.height * ratio
        return Box(
            self.min_x - grow_x,
            self.min_y - grow_y,
            self.max_x + grow_x,
            self.max_y + grow_y,
        )

    def clamp(self, x: float, y: float) -> tuple[float, float]:
        return (
            max(self.min_x, min(x, self.max_x)),
            max(self.min_y, min(y, self.max_y)),
        )

    def union(self, other: "Box") -> "Box":
        return Box(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )


class ProjectedPointSet:
    """Arena of projected points plus the ordered point indices of each instance."""

    def __init__(self, instance_count: int) -> None:
        if instance_count < 0:
            raise ValueError("instance_count must be >= 0")
        self.points: list[ProjectedPoint] = []
        self.instance_points: list[list[int]] = [[] for _ in range(instance_count)]

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, index: int) -> ProjectedPoint:
        return self.points[index]

    @property
    def instance_count(self) -> int:
        return len(self.instance_points)

    def add_point(self, point: ProjectedPoint) -> int:
        index = len(self.points)
        self.points.append(point)
        self.instance_points[point.instance].append(index)
        return index

    def points_of(self, instance: int) -> list[int]:
        return self.instance_points[instance]

    def owner(self, index: int) -> int:
        return self.points[index].instance

    def owners(self) -> np.ndarray:
        return np.fromiter((point.instance for point in self.points), dtype=np.int64, count=len(self.points))

    def iter_by_instance(self) -> Iterator[int]:
        """Point indices ordered by instance, then by creation within the instance."""
        for indices in self.instance_points:
            yield from indices

    def positions(self) -> np.ndarray:
        if not self.points:
            return np.zeros((0, 2), dtype=np.float64)
        return np.array([(point.x, point.y) for point in self.points], dtype=np.float64)

    def gray_mask(self) -> np.ndarray:
        return np.fromiter((point.gray for point in self.points), dtype=bool, count=len(self.points))

    def containing_box(self) -> Box:
        box = Box(math.inf, math.inf, -math.inf, -math.inf)
        for point in self.points:
            box = Box(
                min(box.min_x, point.x),
                min(box.min_y, point.y),
                max(box.max_x, point.x),
                max(box.max_y, point.y),
            )
        return box

    def maximum_distance(self) -> float:
        coords = self.positions()
        best = 0.0
        for i in range(len(coords) - 1):
            diff = coords[i + 1 :] - coords[i]
            best = max(best, float(np.sqrt(np.einsum("ij,ij->i", diff, diff)).max()))
        return best

    def replication_pressure(self, index: int, angle_bin: int) -> float:
        """Per-step pressure of one bin; -1 once the owning instance holds two points."""
        point = self.points[index]
        if len(self.instance_points[point.instance]) > 1:
            return -1.0
        return float(point.positive_pressures[angle_bin] + point.negative_pressures[angle_bin])

    def pressure_outlier_count(self) -> int:
        """Points whose max bin pressure lies more than 1.2 sample std from the mean, capped at N // 4."""
        if len(self.points) < 2:
            return 0
        values = np.array([point.max_replication_pressure() for point in self.points], dtype=np.float64)
        mean = values.mean()
        std = values.std(ddof=1)
        count = int(np.count_nonzero(np.abs(values - mean) > OUTLIER_STD_FACTOR * std))
        return min(count, self.instance_count // OUTLIER_CAP_DIVISOR)

    def snapshot(self, *, keep_neighbors: bool = False) -> "ProjectedPointSet":
        copy = ProjectedPointSet(self.instance_count)
        copy.instance_points = [list(indices) for indices in self.instance_points]
        for point in self.points:
            clone = point.clone(keep_neighbors=keep_neighbors)
            clone.frozen = point.frozen
            clone.effective_weight = point.effective_weight
            copy.points.append(clone)
        return copy

    def normalize_to_size(self, width: float, height: float, *, uniform: bool = True) -> None:
        if not self.points:
            return
        box = self.containing_box()
        scale_x = width / max(box.width, _SIZE_FLOOR)
        scale_y = height / max(box.height, _SIZE_FLOOR)
        if uniform:
            scale_x = scale_y = min(scale_x, scale_y)
        for point in self.points:
            point.x = (point.x - box.min_x) * scale_x
            point.y = (point.y - box.min_y) * scale_y

    def has_non_finite(self) -> bool:
        return any(not (math.isfinite(point.x) and math.isfinite(point.y)) for point in self.points)

    def neighbor_segments(self) -> list[Sequence[Sequence[float]]]:
        segments: list[Sequence[Sequence[float]]] = []
        for point in self.points:
            for neighbor in point.neighbors:
                other = self.points[neighbor]
                segments.append(((point.x, point.y), (other.x, other.y)))
        return segments
