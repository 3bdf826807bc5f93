from __future__ import annotations

import math

import numpy as np

from redgray.article_refs import REPLICATION, REPLICATION_SPLIT
from redgray.layout.point_set import ProjectedPointSet
from redgray.layout.projected_point import ANGLE_BINS, BIN_ANGLES, OPPOSITE_BIN
from redgray.logging import LOGGER


def select_candidate(point_set: ProjectedPointSet) -> tuple[int, int] | None:
    """Eligible (point, bin) with the largest per-step pressure; the first maximum wins.

    Points are scanned by instance, bins in ascending order. Gray points,
    points whose replication failed and points of instances that already
    hold two points are not eligible.
    """
    best: tuple[int, int] | None = None
    best_pressure = -math.inf
    for index in point_set.iter_by_instance():
        point = point_set.points[index]
        if point.gray or point.replication_failed:
            continue
        if len(point_set.points_of(point.instance)) > 1:
            continue
        pressures = point.bin_pressures()
        angle_bin = int(np.argmax(pressures))
        if best is None or pressures[angle_bin] > best_pressure:
            best = (index, angle_bin)
            best_pressure = float(pressures[angle_bin])
    return best


def mark_candidate(point_set: ProjectedPointSet, index: int, *, angle_bin: int | None = None) -> None:
    point = point_set.points[index]
    point.mark_ineffective()
    LOGGER.event(
        "replication.mark",
        section=REPLICATION,
        data={
            "point": index,
            "instance": point.instance,
            "bin": -1 if angle_bin is None else angle_bin,
            "pressure": 0.0 if angle_bin is None else float(point.bin_pressures()[angle_bin]),
        },
    )


def strongest_axis(history: np.ndarray) -> int | None:
    """Bin ``a`` maximizing ``history[a] + history[a + 18]``; None when no pair sum is positive."""
    best_bin: int | None = None
    best_sum = 0.0
    for angle_bin in range(ANGLE_BINS):
        total = history[angle_bin] + history[(angle_bin + OPPOSITE_BIN) % ANGLE_BINS]
        if total > best_sum:
            best_sum = float(total)
            best_bin = angle_bin
    return best_bin


def partition_neighbors(
    point_set: ProjectedPointSet, index: int, angle_bin: int
) -> tuple[list[int], list[int]]:
    """Split the neighbors of ``index`` by the side of the line through it along ``angle_bin``.

    Returns ``(kept, moved)``: ``moved`` lies in the ``angle_bin`` direction,
    ``kept`` holds the rest, including neighbors exactly on the line.
    Self references are dropped.
    """
    point = point_set.points[index]
    angle = BIN_ANGLES[angle_bin]
    dir_x = math.cos(angle)
    dir_y = math.sin(angle)
    kept: list[int] = []
    moved: list[int] = []
    for neighbor in point.neighbors:
        if neighbor == index:
            continue
        other = point_set.points[neighbor]
        dot = dir_x * (other.x - point.x) + dir_y * (other.y - point.y)
        if dot > 0:
            moved.append(neighbor)
        else:
            kept.append(neighbor)
    return kept, moved


def _fail(point_set: ProjectedPointSet, index: int, reason: str) -> None:
    point = point_set.points[index]
    point.mark_failed()
    LOGGER.event(
        "replication.split.failed",
        section=REPLICATION_SPLIT,
        data={"point": index, "instance": point.instance, "reason": reason},
    )


def replicate_by_angles(point_set: ProjectedPointSet, index: int) -> int | None:
    """Split a point in two along its strongest negative pressure axis.

    Returns the arena index of the new point, or None when the split is not
    possible (the point is then flagged ``replication_failed``).
    """
    point = point_set.points[index]
    angle_bin = strongest_axis(point.negative_pressure_history)
    if angle_bin is None:
        _fail(point_set, index, "no pressure")
        return None
    kept, moved = partition_neighbors(point_set, index, angle_bin)
    if not kept or not moved:
        _fail(point_set, index, "one-sided")
        return None

    initial_count = len(kept) + len(moved)
    clone = point.clone()
    clone.projection_index = point.projection_index + 1
    clone.x = sum(point_set.points[n].x for n in moved) / len(moved)
    clone.y = sum(point_set.points[n].y for n in moved) / len(moved)
    clone_index = point_set.add_point(clone)

    retained: list[int] = []
    clone.neighbors = list(moved)
    for neighbor in kept:
        other = point_set.points[neighbor]
        if other.distance_to(point) > other.distance_to(clone):
            clone.neighbors.append(neighbor)
        else:
            retained.append(neighbor)
    point.neighbors = retained

    clone.effective_weight = point.effective_weight * initial_count / len(moved)
    if retained:
        point.effective_weight *= initial_count / len(retained)

    for neighbor in clone.neighbors:
        links = point_set.points[neighbor].neighbors
        for position, target in enumerate(links):
            if target == index:
                links[position] = clone_index

    LOGGER.event(
        "replication.split",
        section=REPLICATION_SPLIT,
        data={
            "point": index,
            "clone": clone_index,
            "instance": point.instance,
            "bin": angle_bin,
            "kept": len(retained),
            "moved": len(clone.neighbors),
        },
    )
    return clone_index
