from __future__ import annotations

from typing import Sequence

from redgray.article_refs import SNAPSHOTS
from redgray.layout.snapshot import ProjectionStep
from redgray.logging import LOGGER

RED = (200, 30, 40)
GRAY = (150, 150, 155)
EDGE = (90, 90, 110)


def log_projection_step(
    step: ProjectionStep,
    *,
    path: str = "projection",
    sequence: int | None = None,
    labels: Sequence[int] | None = None,
) -> None:
    if sequence is not None:
        LOGGER.set_step(sequence)
    points = step.points
    order = list(points.iter_by_instance())
    positions = [(points[index].x, points[index].y) for index in order]
    colors = [GRAY if points[index].gray else RED for index in order]
    names = None
    if labels is not None:
        names = [str(labels[points[index].instance]) for index in order]
    visuals = [
        LOGGER.visual_points2d(f"{path}/points", positions, colors=colors, radii=2.0, labels=names)
    ]
    segments = points.neighbor_segments()
    if segments:
        visuals.append(LOGGER.visual_line_strips2d(f"{path}/neighbors", segments, colors=[EDGE]))
    if step.scored:
        visuals.append(
            LOGGER.visual_scalar(f"{path}/trustworthiness/red_and_gray", step.red_and_gray_trustworthiness)
        )
        visuals.append(LOGGER.visual_scalar(f"{path}/trustworthiness/red", step.red_trustworthiness))
    LOGGER.event(
        "projection.visualize",
        section=SNAPSHOTS,
        data={
            "label": step.label,
            "points": len(order),
            "gray": step.gray_count,
            "red_and_gray": step.red_and_gray_trustworthiness,
            "red": step.red_trustworthiness,
        },
        visuals=visuals,
    )

