from .engine import RedGrayLayout
from .phases import Phase, PhaseMachine, PhaseSchedule
from .point_set import Box, ProjectedPointSet
from .projected_point import ProjectedPoint
from .snapshot import ProjectionOutput, ProjectionStep

__all__ = [
    "Box",
    "Phase",
    "PhaseMachine",
    "PhaseSchedule",
    "ProjectedPoint",
    "ProjectedPointSet",
    "ProjectionOutput",
    "ProjectionStep",
    "RedGrayLayout",
]
