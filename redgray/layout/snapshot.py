from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

from redgray.article_refs import SNAPSHOTS
from redgray.errors import NonFiniteLayoutError
from redgray.layout.point_set import Box, ProjectedPointSet
from redgray.logging import LOGGER

UNSCORED = -1.0


@dataclass
class ProjectionStep:
    label: str
    points: ProjectedPointSet
    red_and_gray_trustworthiness: float = UNSCORED
    red_trustworthiness: float = UNSCORED

    @property
    def scored(self) -> bool:
        return self.red_and_gray_trustworthiness != UNSCORED

    @property
    def gray_count(self) -> int:
        return sum(1 for point in self.points.points if point.gray)


class ProjectionOutput:
    """Ordered snapshots of one run."""

    def __init__(self, name: str, steps: list[ProjectionStep] | None = None) -> None:
        self.name = name
        self.steps: list[ProjectionStep] = list(steps or [])

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[ProjectionStep]:
        return iter(self.steps)

    def __getitem__(self, index: int) -> ProjectionStep:
        return self.steps[index]

    def append(self, step: ProjectionStep) -> None:
        self.steps.append(step)

    def last(self) -> ProjectionStep:
        if not self.steps:
            raise IndexError("projection output is empty")
        return self.steps[-1]

    def _best(self, attribute: str) -> tuple[int, ProjectionStep]:
        if not self.steps:
            raise IndexError("projection output is empty")
        best_index = 0
        for index, step in enumerate(self.steps):
            if getattr(step, attribute) > getattr(self.steps[best_index], attribute):
                best_index = index
        return best_index, self.steps[best_index]

    def best_red_and_gray(self) -> tuple[int, ProjectionStep]:
        return self._best("red_and_gray_trustworthiness")

    def best_red(self) -> tuple[int, ProjectionStep]:
        return self._best("red_trustworthiness")

    def normalize_to_size(self, width: float, height: float, *, uniform: bool = True) -> None:
        for step in self.steps:
            step.points.normalize_to_size(width, height, uniform=uniform)
        LOGGER.event(
            "snapshots.normalize",
            section=SNAPSHOTS,
            data={"steps": len(self.steps), "width": width, "height": height, "uniform": uniform},
        )

    def containing_box(self) -> Box:
        box = Box(math.inf, math.inf, -math.inf, -math.inf)
        for step in self.steps:
            box = box.union(step.points.containing_box())
        return box

    def check_non_finite(self) -> None:
        for index, step in enumerate(self.steps):
            if step.points.has_non_finite():
                LOGGER.event(
                    "snapshots.non_finite",
                    section=SNAPSHOTS,
                    data={"step": index, "label": step.label},
                )
                raise NonFiniteLayoutError(index, step.label)
