from .dataset import DataInstance, DataInstanceSet, Transform
from .neighbors import NeighborGraphBuilder, nearest_neighbors
from .reader import read_csv, read_csv_distance

__all__ = [
    "DataInstance",
    "DataInstanceSet",
    "NeighborGraphBuilder",
    "Transform",
    "nearest_neighbors",
    "read_csv",
    "read_csv_distance",
]
