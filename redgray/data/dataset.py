from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, Sequence

import numpy as np

from redgray.article_refs import DISTANCE_TRANSFORMS, DISTANCES
from redgray.data import distances
from redgray.errors import DatasetError, DistanceMatrixError
from redgray.logging import LOGGER


class Transform(enum.Enum):
    NEIGHBORHOOD_NORMALIZED = "Neighbourhood normalized for original space"
    COSINE = "Cosine for original space"


@dataclass
class DataInstance:
    index: int
    features: np.ndarray
    label: int = 0
    evaluation_features: np.ndarray | None = None

    @property
    def has_evaluation_features(self) -> bool:
        return self.evaluation_features is not None and self.evaluation_features.size > 0


@dataclass
class DataInstanceSet:
    """Ordered instances plus the distance resolution used by the layout.

    ``distance`` resolves, in order, the precomputed matrix, the
    dissimilarity matrix (when the set was built from one), and the
    Euclidean distance over features. ``evaluation_distance`` does the same
    with the evaluation matrix and evaluation features.
    """

    instances: list[DataInstance]
    dissimilarities: np.ndarray | None = None
    neighbors: list[list[int]] = field(default_factory=list)
    evaluation_neighbors: list[list[int]] = field(default_factory=list)
    _distances: np.ndarray | None = field(default=None, init=False, repr=False)
    _evaluation_distances: np.ndarray | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        for position, instance in enumerate(self.instances):
            if instance.index != position:
                raise DatasetError(
                    f"instance index must match its position, got {instance.index} at {position}"
                )
        if self.dissimilarities is not None:
            self.dissimilarities = distances.validate_square(
                self.dissimilarities, len(self.instances), name="dissimilarities"
            )
        elif self.instances:
            widths = {instance.features.shape[0] for instance in self.instances}
            if len(widths) != 1:
                raise DatasetError("every instance must have the same number of features")

    @classmethod
    def from_features(
        cls,
        features: Sequence[Sequence[float]] | np.ndarray,
        labels: Sequence[int] | None = None,
        *,
        evaluation_features: Sequence[Sequence[float]] | np.ndarray | None = None,
    ) -> "DataInstanceSet":
        rows = np.asarray(features, dtype=np.float64)
        if rows.ndim != 2:
            raise DatasetError("features must be a 2D array")
        count = rows.shape[0]
        if labels is not None and len(labels) != count:
            raise DatasetError("labels must have one entry per instance")
        eval_rows = None
        if evaluation_features is not None:
            eval_rows = np.asarray(evaluation_features, dtype=np.float64)
            if eval_rows.ndim != 2 or eval_rows.shape[0] != count:
                raise DatasetError("evaluation_features must have one row per instance")
        instances = [
            DataInstance(
                index=i,
                features=rows[i],
                label=int(labels[i]) if labels is not None else 0,
                evaluation_features=None if eval_rows is None else eval_rows[i],
            )
            for i in range(count)
        ]
        return cls(instances)

    @classmethod
    def from_dissimilarities(
        cls,
        matrix: Sequence[Sequence[float]] | np.ndarray,
        labels: Sequence[int] | None = None,
        *,
        symmetrize: bool = True,
    ) -> "DataInstanceSet":
        values = distances.validate_square(np.array(matrix, dtype=np.float64), name="dissimilarities")
        count = values.shape[0]
        if labels is not None and len(labels) != count:
            raise DatasetError("labels must have one entry per instance")
        instances = [
            DataInstance(
                index=i,
                features=np.zeros(0, dtype=np.float64),
                label=int(labels[i]) if labels is not None else 0,
            )
            for i in range(count)
        ]
        dataset = cls(instances, dissimilarities=values)
        if symmetrize:
            dataset.symmetrize_dissimilarities()
        return dataset

    def __len__(self) -> int:
        return len(self.instances)

    def __iter__(self) -> Iterator[DataInstance]:
        return iter(self.instances)

    @property
    def uses_dissimilarities(self) -> bool:
        return self.dissimilarities is not None

    @property
    def distances_precomputed(self) -> bool:
        return self._distances is not None

    @property
    def evaluation_distances_precomputed(self) -> bool:
        return self._evaluation_distances is not None

    @property
    def labels(self) -> list[int]:
        return [instance.label for instance in self.instances]

    @property
    def has_evaluation_features(self) -> bool:
        return any(instance.has_evaluation_features for instance in self.instances)

    def feature_matrix(self) -> np.ndarray:
        if not self.instances:
            return np.zeros((0, 0), dtype=np.float64)
        return np.vstack([instance.features for instance in self.instances])

    def evaluation_feature_matrix(self) -> np.ndarray:
        if not self.has_evaluation_features:
            return self.feature_matrix()
        return np.vstack([instance.evaluation_features for instance in self.instances])

    def distance(self, a: int, b: int) -> float:
        if self._distances is not None:
            return float(self._distances[a, b])
        if self.dissimilarities is not None:
            return float(self.dissimilarities[a, b])
        diff = self.instances[a].features - self.instances[b].features
        return float(np.sqrt(np.dot(diff, diff)))

    def evaluation_distance(self, a: int, b: int) -> float:
        if self._evaluation_distances is not None:
            return float(self._evaluation_distances[a, b])
        if self.dissimilarities is not None:
            return float(self.dissimilarities[a, b])
        first = self.instances[a]
        second = self.instances[b]
        if not first.has_evaluation_features:
            return self.distance(a, b)
        diff = first.evaluation_features - second.evaluation_features
        return float(np.sqrt(np.dot(diff, diff)))

    def distance_matrix(self) -> np.ndarray:
        """Return the full primary distance matrix (shared, not copied, when precomputed)."""
        if self._distances is not None:
            return self._distances
        if self.dissimilarities is not None:
            return self.dissimilarities
        return distances.euclidean_matrix(self.feature_matrix())

    def evaluation_distance_matrix(self) -> np.ndarray:
        if self._evaluation_distances is not None:
            return self._evaluation_distances
        if self.dissimilarities is not None:
            return self.dissimilarities
        if not self.has_evaluation_features:
            return self.distance_matrix()
        return distances.euclidean_matrix(self.evaluation_feature_matrix())

    def precompute_distances(self) -> None:
        self._distances = None
        self._distances = np.array(self.distance_matrix(), dtype=np.float64, copy=True)
        LOGGER.event(
            "dataset.distances.precompute",
            section=DISTANCES,
            data={"instances": len(self), "dissimilarities": self.uses_dissimilarities},
        )

    def precompute_evaluation_distances(self) -> None:
        self._evaluation_distances = None
        self._evaluation_distances = np.array(
            self.evaluation_distance_matrix(), dtype=np.float64, copy=True
        )
        LOGGER.event(
            "dataset.evaluation_distances.precompute",
            section=DISTANCES,
            data={
                "instances": len(self),
                "evaluation_features": self.has_evaluation_features,
            },
        )

    def set_precomputed_distances(self, matrix: np.ndarray, *, evaluation: bool = False) -> None:
        values = distances.validate_square(
            np.array(matrix, dtype=np.float64), len(self), name="distances"
        )
        if evaluation:
            self._evaluation_distances = values
        else:
            self._distances = values

    def transform_distances(self, transform: Transform) -> None:
        if self._distances is None:
            raise DistanceMatrixError("distances must be precomputed before a transform")
        self._apply_transform(self._distances, transform, self.feature_matrix())
        LOGGER.event(
            "dataset.distances.transform",
            section=DISTANCE_TRANSFORMS,
            data={"transform": transform.name},
        )

    def transform_evaluation_distances(self, transform: Transform) -> None:
        if self._evaluation_distances is None:
            raise DistanceMatrixError("evaluation distances must be precomputed before a transform")
        self._apply_transform(self._evaluation_distances, transform, self.evaluation_feature_matrix())
        LOGGER.event(
            "dataset.evaluation_distances.transform",
            section=DISTANCE_TRANSFORMS,
            data={"transform": transform.name},
        )

    def _apply_transform(self, target: np.ndarray, transform: Transform, features: np.ndarray) -> None:
        if transform is Transform.NEIGHBORHOOD_NORMALIZED:
            distances.neighborhood_normalize(target)
        elif transform is Transform.COSINE:
            if self.uses_dissimilarities or features.shape[1] == 0:
                raise DistanceMatrixError("cosine transform needs feature vectors")
            target[:, :] = distances.cosine_distance_matrix(features)
        else:
            raise ValueError(f"unknown transform {transform!r}")

    def symmetrize_dissimilarities(self) -> None:
        if self.dissimilarities is None:
            raise DistanceMatrixError("dataset has no dissimilarity matrix")
        distances.symmetrize(self.dissimilarities)

    def maximum_distance(self) -> float:
        return distances.maximum_pairwise(self.distance_matrix())

    def maximum_evaluation_distance(self) -> float:
        return distances.maximum_pairwise(self.evaluation_distance_matrix())
