from .config import LayoutConfig, RunConfig
from .data import DataInstance, DataInstanceSet, NeighborGraphBuilder, Transform
from .errors import ConfigError, DatasetError, DistanceMatrixError, NonFiniteLayoutError, RedGrayError
from .evaluation import TrustworthinessEvaluator
from .layout import ProjectedPointSet, ProjectionOutput, ProjectionStep, RedGrayLayout
from .runner import RedGrayRunner

__all__ = [
    "ConfigError",
    "DataInstance",
    "DataInstanceSet",
    "DatasetError",
    "DistanceMatrixError",
    "LayoutConfig",
    "NeighborGraphBuilder",
    "NonFiniteLayoutError",
    "ProjectedPointSet",
    "ProjectionOutput",
    "ProjectionStep",
    "RedGrayError",
    "RedGrayLayout",
    "RedGrayRunner",
    "RunConfig",
    "TrustworthinessEvaluator",
    "Transform",
]
