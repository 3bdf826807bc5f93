from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

ANGLE_BINS = 36
OPPOSITE_BIN = ANGLE_BINS // 2
BIN_ANGLES = np.arange(ANGLE_BINS, dtype=np.float64) * (math.pi / OPPOSITE_BIN)
BIN_DIRECTIONS = np.stack([np.cos(BIN_ANGLES), np.sin(BIN_ANGLES)], axis=1)


def _zero_bins() -> np.ndarray:
    return np.zeros(ANGLE_BINS, dtype=np.float64)


@dataclass
class ProjectedPoint:
    """2D point owned by one instance; ``neighbors`` holds arena indices."""

    x: float
    y: float
    instance: int
    projection_index: int = 0
    additional_x: float = 0.0
    additional_y: float = 0.0
    neighbors: list[int] = field(default_factory=list)
    positive_pressures: np.ndarray = field(default_factory=_zero_bins)
    negative_pressures: np.ndarray = field(default_factory=_zero_bins)
    negative_pressure_history: np.ndarray = field(default_factory=_zero_bins)
    frozen: bool = False
    ineffective: bool = False
    gray: bool = False
    replication_failed: bool = False
    effective_weight: float = 1.0

    def distance_to(self, other: "ProjectedPoint") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def reset_pressures(self) -> None:
        self.positive_pressures.fill(0.0)
        self.negative_pressures.fill(0.0)

    def reset_forces(self) -> None:
        self.additional_x = 0.0
        self.additional_y = 0.0
        self.reset_pressures()

    def add_pressures(self, positive: np.ndarray, negative: np.ndarray) -> None:
        self.positive_pressures += positive
        self.negative_pressures += negative
        self.negative_pressure_history += negative

    def bin_pressures(self) -> np.ndarray:
        return self.positive_pressures + self.negative_pressures

    def max_replication_pressure(self) -> float:
        return float(max(0.0, self.bin_pressures().max()))

    def mark_ineffective(self) -> None:
        self.ineffective = True
        self.gray = True

    def reactivate(self) -> None:
        self.ineffective = False

    def mark_failed(self) -> None:
        self.replication_failed = True

    def clone(self, *, keep_neighbors: bool = False) -> "ProjectedPoint":
        """Copy coordinates, pressures and flags; ``frozen`` and the weight reset."""
        return ProjectedPoint(
            x=self.x,
            y=self.y,
            instance=self.instance,
            projection_index=self.projection_index,
            neighbors=list(self.neighbors) if keep_neighbors else [],
            positive_pressures=self.positive_pressures.copy(),
            negative_pressures=self.negative_pressures.copy(),
            negative_pressure_history=self.negative_pressure_history.copy(),
            ineffective=self.ineffective,
            gray=self.gray,
            replication_failed=self.replication_failed,
        )
