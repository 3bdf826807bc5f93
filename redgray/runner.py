from __future__ import annotations

import concurrent.futures
import os
from dataclasses import dataclass

from redgray.article_refs import INPUT_DATA, OUTPUT_DATA, TRUSTWORTHINESS
from redgray.config import LayoutConfig, RunConfig
from redgray.data.dataset import DataInstanceSet, Transform
from redgray.data.neighbors import NeighborGraphBuilder
from redgray.data.reader import read_csv, read_csv_distance
from redgray.evaluation.trustworthiness import TrustworthinessEvaluator
from redgray.layout.engine import RedGrayLayout
from redgray.layout.phases import PhaseSchedule
from redgray.layout.payload import ProjectionStepWriter
from redgray.layout.snapshot import ProjectionOutput, ProjectionStep
from redgray.layout.visualize_layout import log_projection_step
from redgray.logging import LOGGER


@dataclass(frozen=True)
class RunResult:
    output: ProjectionOutput
    files: dict[str, dict[str, str]]


class RedGrayRunner:
    """Read a dataset, run the layout, score every snapshot and export the chosen ones."""

    def __init__(
        self,
        run_config: RunConfig,
        layout_config: LayoutConfig | None = None,
        *,
        schedule: PhaseSchedule | None = None,
    ) -> None:
        self.run_config = run_config
        self.layout_config = layout_config or LayoutConfig()
        self.schedule = schedule

    def load(self) -> DataInstanceSet:
        config = self.run_config
        class_text = config.class_column.startswith("text")
        class_first = config.class_column.endswith("first_column")
        if config.input_type == "csv_distance":
            return read_csv_distance(config.input_path, class_text=class_text, class_first=class_first)
        return read_csv(
            config.input_path,
            class_text=class_text,
            class_first=class_first,
            max_rows=config.max_input_rows,
            ignore_rows=config.ignore_rows,
        )

    def prepare(self, dataset: DataInstanceSet) -> None:
        layout = self.layout_config
        dataset.precompute_distances()
        dataset.precompute_evaluation_distances()
        NeighborGraphBuilder(dataset).build(layout.evaluation_neighborhood_size, evaluation=True)
        if layout.cosine_normalization:
            dataset.transform_distances(Transform.COSINE)
        dataset.transform_distances(Transform.NEIGHBORHOOD_NORMALIZED)

    def score(
        self,
        step: ProjectionStep,
        dataset: DataInstanceSet,
        evaluator: TrustworthinessEvaluator,
        executor: concurrent.futures.Executor | None,
    ) -> None:
        red_and_gray, red = evaluator.evaluate_layers(step.points, dataset, executor=executor)
        step.red_and_gray_trustworthiness = red_and_gray
        step.red_trustworthiness = red

    def project(self, dataset: DataInstanceSet) -> ProjectionOutput:
        workers = self.layout_config.resolve_threads()
        evaluator = TrustworthinessEvaluator(
            self.layout_config.evaluation_neighborhood_size, workers=workers
        )
        output = ProjectionOutput("Red Gray Plus projection")
        executor = None
        if workers > 1:
            executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="redgray-eval"
            )
        try:
            with RedGrayLayout(dataset, self.layout_config, schedule=self.schedule) as layout:
                initial = layout.setup()
                for sequence, step in enumerate(self._steps(initial, layout)):
                    self.score(step, dataset, evaluator, executor)
                    output.append(step)
                    if LOGGER.rerun_enabled:
                        log_projection_step(step, sequence=sequence, labels=dataset.labels)
        finally:
            if executor is not None:
                executor.shutdown(wait=True)
        best_index, best = output.best_red_and_gray()
        best_red_index, best_red = output.best_red()
        LOGGER.event(
            "runner.scores",
            section=TRUSTWORTHINESS,
            data={
                "snapshots": len(output),
                "best_red_and_gray_step": best_index,
                "best_red_and_gray": best.red_and_gray_trustworthiness,
                "best_red_step": best_red_index,
                "best_red": best_red.red_trustworthiness,
            },
        )
        return output

    @staticmethod
    def _steps(initial: ProjectionStep, layout: RedGrayLayout):
        yield initial
        yield from layout.iter_steps()

    def export(self, output: ProjectionOutput, dataset: DataInstanceSet) -> dict[str, dict[str, str]]:
        config = self.run_config
        os.makedirs(config.output_folder, exist_ok=True)
        writer = ProjectionStepWriter(dataset)
        last_index = len(output) - 1
        best_index, best = output.best_red_and_gray()
        best_red_index, best_red = output.best_red()
        chosen = {
            "last": (f"{config.name}_Iteration{last_index}_LastIteration", output.last()),
            "best_red_and_gray": (
                f"{config.name}_Iteration{best_index}_BestRedAndGrayTrustworthiness",
                best,
            ),
            "best_red": (f"{config.name}_Iteration{best_red_index}_BestRedTrustworthiness", best_red),
        }
        files = {
            key: writer.write(step, config.output_folder, prefix)
            for key, (prefix, step) in chosen.items()
        }
        LOGGER.event(
            "runner.export",
            section=OUTPUT_DATA,
            data={"folder": config.output_folder, "files": len(files) * 2},
        )
        return files

    def run(self) -> RunResult:
        LOGGER.event(
            "runner.start",
            section=INPUT_DATA,
            data={
                "name": self.run_config.name,
                "input": self.run_config.input_path,
                "type": self.run_config.input_type,
            },
        )
        dataset = self.load()
        self.prepare(dataset)
        output = self.project(dataset)
        frame = self.run_config.frame_size
        output.normalize_to_size(frame, frame, uniform=True)
        output.check_non_finite()
        files = self.export(output, dataset)
        return RunResult(output=output, files=files)
