from __future__ import annotations

import concurrent.futures
import math
import random
from typing import Iterator, Sequence

import numpy as np

from redgray.article_refs import (
    DISPLACEMENT,
    FORCE_LAYOUT,
    INITIAL_LAYOUT,
    PARALLEL_PROCESSING,
    PHASES,
    PRESSURES,
    REPLICATION,
)
from redgray.config import LayoutConfig
from redgray.data.dataset import DataInstanceSet
from redgray.data.neighbors import NeighborGraphBuilder
from redgray.errors import DatasetError
from redgray.layout.forces import ForceCalculator, ForceField, ForceParameters
from redgray.layout.phases import Action, Phase, PhaseMachine, PhaseSchedule
from redgray.layout.point_set import Box, ProjectedPointSet
from redgray.layout.projected_point import ProjectedPoint
from redgray.layout.replication import mark_candidate, replicate_by_angles, select_candidate
from redgray.layout.snapshot import ProjectionOutput, ProjectionStep
from redgray.logging import LOGGER

CANVAS_WIDTH = 1000.0
CANVAS_HEIGHT = 1000.0
INITIAL_TEMPERATURE = 100.0
EPSILON = 1e-9
ORIGINAL_IMPACT = 0.5
FREEZE_MARGIN = 0.05
REPLICATION_INTERVAL = 1
_PROGRESS_EVENT = "layout.step"
_DISPLACEMENT_EVENT = "layout.displacement"


class RedGrayLayout:
    """Force-directed layout with multi-point replication.

    ``setup()`` places one point per instance and returns the initial
    snapshot; each ``step()`` runs one iteration of the fixed schedule and
    returns its snapshot. ``run()`` does both until the schedule is done.
    """

    def __init__(
        self,
        dataset: DataInstanceSet,
        config: LayoutConfig | None = None,
        *,
        schedule: PhaseSchedule | None = None,
        canvas: tuple[float, float] = (CANVAS_WIDTH, CANVAS_HEIGHT),
        initial_temperature: float = INITIAL_TEMPERATURE,
        progress_interval: int = 100,
    ) -> None:
        if len(dataset) == 0:
            raise DatasetError("dataset must hold at least one instance")
        if canvas[0] <= 0 or canvas[1] <= 0:
            raise ValueError("canvas must have a positive size")
        if initial_temperature <= 0:
            raise ValueError("initial_temperature must be positive")
        self.dataset = dataset
        self.config = config or LayoutConfig()
        self.machine = PhaseMachine(schedule)
        self._canvas = canvas
        self._initial_temperature = initial_temperature
        self.temperature = initial_temperature
        self._workers = self.config.resolve_threads()
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        self._forces: ForceCalculator | None = None
        self.point_set = ProjectedPointSet(len(dataset))
        self.freeze_box: Box | None = None
        self.replication_budget: int | None = None
        self.neighbor_count = self.config.resolve_neighbors(len(dataset))
        interval = max(1, progress_interval)
        LOGGER.configure_intervals({_PROGRESS_EVENT: interval, _DISPLACEMENT_EVENT: interval})
        LOGGER.event(
            "layout.init",
            section=FORCE_LAYOUT,
            data={
                "instances": len(dataset),
                "neighbors": self.neighbor_count,
                "visual_density": self.config.visual_density,
                "seed": self.config.seed,
            },
        )
        LOGGER.event(
            "layout.parallel",
            section=PARALLEL_PROCESSING,
            data={"workers": self._workers},
        )

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def phase(self) -> Phase:
        return self.machine.phase

    @property
    def done(self) -> bool:
        return self.machine.done

    def __enter__(self) -> "RedGrayLayout":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def setup(self, positions: Sequence[Sequence[float]] | np.ndarray | None = None) -> ProjectionStep:
        count = len(self.dataset)
        neighbors = NeighborGraphBuilder(self.dataset).build(self.neighbor_count)
        if positions is None:
            rng = random.Random(self.config.seed)
            coords = [
                (rng.random() * self._canvas[0], rng.random() * self._canvas[1])
                for _ in range(count)
            ]
        else:
            coords = [(float(x), float(y)) for x, y in np.asarray(positions, dtype=np.float64)]
            if len(coords) != count:
                raise ValueError("positions must hold one coordinate per instance")

        self.point_set = ProjectedPointSet(count)
        for instance, (x, y) in enumerate(coords):
            self.point_set.add_point(
                ProjectedPoint(x=x, y=y, instance=instance, neighbors=list(neighbors[instance]))
            )

        ideal = math.sqrt(self._canvas[0] * self._canvas[1] / count)
        params = ForceParameters(
            ideal_distance=ideal,
            max_original_distance=max(self.dataset.maximum_distance(), EPSILON),
            max_visual_distance=max(self.point_set.maximum_distance(), EPSILON),
            visual_density=self.config.visual_density,
            original_impact=ORIGINAL_IMPACT,
            epsilon=EPSILON,
        )
        if self._workers > 1 and self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=self._workers, thread_name_prefix="redgray-forces"
            )
        self._forces = ForceCalculator(
            params,
            self.dataset.distance_matrix(),
            workers=self._workers,
            executor=self._executor,
        )
        LOGGER.event(
            "layout.setup",
            section=INITIAL_LAYOUT,
            data={
                "points": len(self.point_set),
                "ideal_distance": ideal,
                "max_original_distance": params.max_original_distance,
                "max_visual_distance": params.max_visual_distance,
                "random": positions is None,
            },
        )
        return ProjectionStep(
            "initial", self.point_set.snapshot(keep_neighbors=self.config.display_neighborhood_graph)
        )

    def _tracking(self) -> bool:
        if self.machine.phase is not Phase.REPLICATION_ACTIVE:
            return False
        if self.replication_budget is not None and self.replication_budget <= 0:
            return False
        return self.machine.step % REPLICATION_INTERVAL == 0

    def step(self) -> ProjectionStep:
        if self._forces is None:
            raise RuntimeError("setup() must be called before step()")
        if self.machine.done:
            raise RuntimeError("layout schedule is already done")
        machine = self.machine
        step_index = machine.step
        LOGGER.set_step(machine.total_step)
        LOGGER.event(
            _PROGRESS_EVENT,
            section=FORCE_LAYOUT,
            data={
                "step": step_index,
                "total_step": machine.total_step,
                "phase": machine.phase.value,
                "temperature": self.temperature,
            },
        )

        tracking = self._tracking()
        field = self._forces.compute(self.point_set, track_pressure=tracking)
        self._apply_field(field, tracking)

        candidate = None
        actions = machine.actions()
        if tracking and Action.SET_BUDGET not in actions:
            candidate = select_candidate(self.point_set)
        self._displace()

        if Action.SET_BUDGET in actions:
            self._set_budget()
        elif candidate is not None:
            mark_candidate(self.point_set, candidate[0], angle_bin=candidate[1])
            if self.replication_budget is not None:
                self.replication_budget -= 1
        if Action.FREEZE_REGION in actions:
            self._freeze_region()
        if Action.REACTIVATE_AND_FREEZE in actions:
            self._reactivate_and_freeze()
        if Action.SPLIT_GRAY in actions:
            self._split_gray()

        self.temperature = self._initial_temperature - (
            (machine.temperature_step() + 1.0) / machine.schedule.total_steps
        ) * self._initial_temperature
        snapshot = ProjectionStep(
            str(machine.total_step + 1),
            self.point_set.snapshot(keep_neighbors=self.config.display_neighborhood_graph),
        )
        machine.advance()
        return snapshot

    def iter_steps(self) -> Iterator[ProjectionStep]:
        while not self.machine.done:
            yield self.step()

    def run(self) -> ProjectionOutput:
        output = ProjectionOutput("Red Gray Plus projection")
        try:
            output.append(self.setup())
            for snapshot in self.iter_steps():
                output.append(snapshot)
        finally:
            self.close()
        LOGGER.event(
            "layout.done",
            section=FORCE_LAYOUT,
            data={
                "snapshots": len(output),
                "points": len(self.point_set),
                "gray": int(self.point_set.gray_mask().sum()),
            },
        )
        return output

    def _apply_field(self, field: ForceField, tracking: bool) -> None:
        for index, point in enumerate(self.point_set.points):
            point.reset_forces()
            point.additional_x = float(field.add_x[index])
            point.additional_y = float(field.add_y[index])
            if tracking:
                point.add_pressures(field.positive[index], field.negative[index])

    def _displace(self) -> None:
        temperature = self.temperature
        box = self.freeze_box
        moved = 0
        for index in self.point_set.iter_by_instance():
            point = self.point_set.points[index]
            size = math.hypot(point.additional_x, point.additional_y)
            if size <= EPSILON or point.frozen:
                continue
            move = min(size, temperature)
            point.x += point.additional_x / size * move
            point.y += point.additional_y / size * move
            if box is not None:
                point.x, point.y = box.clamp(point.x, point.y)
            moved += 1
        LOGGER.event(
            _DISPLACEMENT_EVENT,
            section=DISPLACEMENT,
            data={"moved": moved, "temperature": temperature, "clamped": box is not None},
        )

    def _set_budget(self) -> None:
        outliers = self.point_set.pressure_outlier_count()
        override = self.config.replication_budget
        self.replication_budget = outliers if override is None else override
        LOGGER.event(
            "layout.replication.budget",
            section=PRESSURES,
            data={
                "outliers": outliers,
                "override": -1 if override is None else override,
                "budget": self.replication_budget,
            },
        )

    def _freeze_region(self) -> None:
        self.freeze_box = self.point_set.containing_box().expanded(FREEZE_MARGIN)
        box = self.freeze_box
        LOGGER.event(
            "layout.freeze_region",
            section=PHASES,
            data={"min_x": box.min_x, "min_y": box.min_y, "max_x": box.max_x, "max_y": box.max_y},
        )

    def _reactivate_and_freeze(self) -> None:
        reactivated = 0
        for point in self.point_set.points:
            if point.ineffective:
                point.reactivate()
                reactivated += 1
            else:
                point.frozen = True
        LOGGER.event(
            "layout.reactivate",
            section=PHASES,
            data={"reactivated": reactivated, "frozen": len(self.point_set) - reactivated},
        )

    def _split_gray(self) -> None:
        created = 0
        failed = 0
        for index in list(self.point_set.iter_by_instance()):
            if not self.point_set.points[index].gray:
                continue
            if replicate_by_angles(self.point_set, index) is None:
                failed += 1
            else:
                created += 1
        LOGGER.event(
            "layout.replication.split_all",
            section=REPLICATION,
            data={"created": created, "failed": failed, "points": len(self.point_set)},
        )
