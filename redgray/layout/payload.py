from __future__ import annotations

import csv
import os
from dataclasses import dataclass
from typing import Dict, List

from redgray.article_refs import OUTPUT_DATA
from redgray.data.dataset import DataInstanceSet
from redgray.layout.snapshot import ProjectionStep
from redgray.logging import LOGGER


@dataclass(frozen=True)
class ProjectedPointRecord:
    instance: int
    x: float
    y: float
    features: tuple[float, ...]
    label: int
    gray: bool

    def as_row(self) -> List[object]:
        return [
            self.instance + 1,
            repr(self.x),
            repr(self.y),
            *(repr(value) for value in self.features),
            self.label,
            "gray" if self.gray else "red",
        ]


class ProjectionStepWriter:
    """CSV export of one snapshot: a point table and a metrics table."""

    def __init__(self, dataset: DataInstanceSet) -> None:
        self._dataset = dataset

    def _features(self, instance: int) -> tuple[float, ...]:
        data = self._dataset.instances[instance]
        values = data.evaluation_features if data.has_evaluation_features else data.features
        return tuple(float(value) for value in values)

    def records(self, step: ProjectionStep) -> List[ProjectedPointRecord]:
        points = step.points
        return [
            ProjectedPointRecord(
                instance=points[index].instance,
                x=points[index].x,
                y=points[index].y,
                features=self._features(points[index].instance),
                label=self._dataset.instances[points[index].instance].label,
                gray=points[index].gray,
            )
            for index in points.iter_by_instance()
        ]

    @staticmethod
    def _ensure_directory(path: str) -> None:
        if not path:
            raise ValueError("path must be provided for projection export")
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def write_points(self, step: ProjectionStep, path: str) -> int:
        self._ensure_directory(path)
        records = self.records(step)
        width = len(records[0].features) if records else 0
        header = ["Original_index", "Projected_x", "Projected_y"]
        header.extend(f"Original_feature_{i + 1}" for i in range(width))
        header.extend(["Class", "RedOrGray"])
        with open(path, "w", encoding="utf-8", newline="") as fp:
            writer = csv.writer(fp, lineterminator="\n")
            writer.writerow(header)
            for record in records:
                writer.writerow(record.as_row())
        LOGGER.event(
            "payload.points",
            section=OUTPUT_DATA,
            data={
                "path": path,
                "label": step.label,
                "points": len(records),
                "gray": sum(1 for record in records if record.gray),
            },
        )
        return len(records)

    def write_metrics(self, step: ProjectionStep, path: str) -> None:
        self._ensure_directory(path)
        with open(path, "w", encoding="utf-8", newline="") as fp:
            fp.write("RedAndGrayTrustworthiness,RedTrustworthiness\n")
            fp.write(f"{step.red_and_gray_trustworthiness:.3f},{step.red_trustworthiness:.3f}")
        LOGGER.event(
            "payload.metrics",
            section=OUTPUT_DATA,
            data={
                "path": path,
                "red_and_gray": step.red_and_gray_trustworthiness,
                "red": step.red_trustworthiness,
            },
        )

    def write(self, step: ProjectionStep, folder: str, prefix: str) -> Dict[str, str]:
        paths = {
            "points": os.path.join(folder, f"{prefix}.csv"),
            "metrics": os.path.join(folder, f"{prefix}_metrics.csv"),
        }
        self.write_points(step, paths["points"])
        self.write_metrics(step, paths["metrics"])
        return paths
