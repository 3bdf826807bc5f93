from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping

from redgray.errors import ConfigError

DEFAULT_SEED = 76213290821348841
DEFAULT_VISUAL_DENSITY = 0.9
DEFAULT_EVALUATION_NEIGHBORHOOD = 10
DEFAULT_FRAME_SIZE = 1500.0

NEIGHBOR_FRACTIONS: dict[str, int] = {
    "one-third": 3,
    "one-fourth": 4,
    "one-forth": 4,
    "one-fifth": 5,
}

INPUT_TYPES = ("csv", "csv_distance")
CLASS_COLUMN_TYPES = ("number", "text", "number_first_column", "text_first_column")

# Option names understood by LayoutConfig.from_options, with accepted aliases.
_OPTION_KEYS: dict[str, tuple[str, ...]] = {
    "number_of_neighbors": (
        "NumberOfNeighboursForBuildingGraph",
        "NumberOfNeighboorsForBuildingGraph",
        "NumberOfNeighborsForBuildingGraph",
    ),
    "visual_density": ("VisualDensityAdjustmentParameter",),
    "number_of_threads": ("NumberOfThreads",),
    "replication_budget": ("OverrideMaxNumberOfReplicates", "NumberOfGrayPoints"),
    "display_neighborhood_graph": ("DisplayNeighborhoodGraph",),
    "evaluation_neighborhood_size": ("EvaluationNeighborhoodSize",),
    "cosine_normalization": ("CosineNeighborhoodNormalization",),
    "seed": ("Seed",),
}


def default_thread_count() -> int:
    return max(1, (os.cpu_count() or 2) - 1)


def _parse_bool(key: str, value: str) -> bool:
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no", ""):
        return False
    raise ConfigError(f"{key} must be true or false, got {value!r}")


def _parse_int(key: str, value: str) -> int:
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from exc


def _parse_float(key: str, value: str) -> float:
    try:
        return float(str(value).strip())
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {value!r}") from exc


@dataclass(frozen=True)
class LayoutConfig:
    """Options of the layout method.

    ``number_of_neighbors`` is either an absolute neighbor count or one of
    ``"one-third"``, ``"one-fourth"``, ``"one-fifth"`` of the instance count.
    ``number_of_threads=None`` means one less than the available cores.
    ``replication_budget=None`` lets the pressure outlier count decide.
    """

    number_of_neighbors: int | str = "one-third"
    visual_density: float = DEFAULT_VISUAL_DENSITY
    number_of_threads: int | None = None
    replication_budget: int | None = None
    display_neighborhood_graph: bool = False
    evaluation_neighborhood_size: int = DEFAULT_EVALUATION_NEIGHBORHOOD
    cosine_normalization: bool = False
    seed: int = DEFAULT_SEED

    def __post_init__(self) -> None:
        neighbors = self.number_of_neighbors
        if isinstance(neighbors, str):
            if neighbors not in NEIGHBOR_FRACTIONS:
                raise ConfigError(
                    "number_of_neighbors must be a positive integer or one of "
                    + ", ".join(sorted(NEIGHBOR_FRACTIONS))
                )
        elif isinstance(neighbors, bool) or not isinstance(neighbors, int) or neighbors <= 0:
            raise ConfigError("number_of_neighbors must be a positive integer")
        if not 0.0 <= self.visual_density <= 1.0:
            raise ConfigError("visual_density must be in [0, 1]")
        if self.number_of_threads is not None and self.number_of_threads <= 0:
            raise ConfigError("number_of_threads must be positive when set")
        if self.replication_budget is not None and self.replication_budget < 0:
            raise ConfigError("replication_budget must be >= 0 when set")
        if self.evaluation_neighborhood_size <= 0:
            raise ConfigError("evaluation_neighborhood_size must be positive")

    def resolve_neighbors(self, instance_count: int) -> int:
        if instance_count <= 1:
            return 0
        neighbors = self.number_of_neighbors
        if isinstance(neighbors, str):
            count = instance_count // NEIGHBOR_FRACTIONS[neighbors]
        else:
            count = neighbors
        return max(1, min(count, instance_count - 1))

    def resolve_threads(self) -> int:
        if self.number_of_threads is None:
            return default_thread_count()
        return self.number_of_threads

    def with_overrides(self, **changes: object) -> "LayoutConfig":
        return replace(self, **changes)

    @classmethod
    def from_options(cls, options: Mapping[str, str]) -> "LayoutConfig":
        values: dict[str, object] = {}
        for field_name, keys in _OPTION_KEYS.items():
            raw = next((options[key] for key in keys if key in options), None)
            if raw is None:
                continue
            key = keys[0]
            if field_name == "number_of_neighbors":
                text = str(raw).strip().lower()
                values[field_name] = text if text in NEIGHBOR_FRACTIONS else _parse_int(key, raw)
            elif field_name == "visual_density":
                values[field_name] = _parse_float(key, raw)
            elif field_name in ("display_neighborhood_graph", "cosine_normalization"):
                values[field_name] = _parse_bool(key, raw)
            else:
                values[field_name] = _parse_int(key, raw)
        return cls(**values)


@dataclass(frozen=True)
class RunConfig:
    input_path: str
    output_folder: str
    name: str = "RedGrayPlus"
    input_type: str = "csv"
    class_column: str = "number"
    max_input_rows: int | None = None
    ignore_rows: int = 0
    frame_size: float = DEFAULT_FRAME_SIZE
    rerun: bool = False

    def __post_init__(self) -> None:
        if not self.input_path:
            raise ConfigError("input_path must be provided")
        if not self.output_folder:
            raise ConfigError("output_folder must be provided")
        if self.input_type not in INPUT_TYPES:
            raise ConfigError("input_type must be one of " + ", ".join(INPUT_TYPES))
        if self.class_column not in CLASS_COLUMN_TYPES:
            raise ConfigError("class_column must be one of " + ", ".join(CLASS_COLUMN_TYPES))
        if self.max_input_rows is not None and self.max_input_rows <= 0:
            raise ConfigError("max_input_rows must be positive when set")
        if self.ignore_rows < 0:
            raise ConfigError("ignore_rows must be >= 0")
        if self.frame_size <= 0:
            raise ConfigError("frame_size must be positive")
