import numpy as np
import pytest

from redgray.data.dataset import DataInstanceSet
from redgray.data.neighbors import NeighborGraphBuilder, nearest_neighbors


def test_knn_graph_of_five_points(five_points):
    graph = NeighborGraphBuilder(five_points).build(2)
    assert graph == [[1, 3], [0, 2], [1, 0], [0, 1], [2, 3]]
    assert five_points.neighbors == graph


def test_knn_never_contains_self_and_caps_at_n_minus_one(five_points):
    for k in (1, 3, 4, 10):
        graph = NeighborGraphBuilder(five_points).build(k)
        for i, row in enumerate(graph):
            assert i not in row
            assert len(row) == min(k, len(five_points) - 1)
            assert len(set(row)) == len(row)


def test_ties_go_to_lower_index():
    matrix = np.array(
        [
            [0.0, 1.0, 1.0, 1.0],
            [1.0, 0.0, 2.0, 2.0],
            [1.0, 2.0, 0.0, 2.0],
            [1.0, 2.0, 2.0, 0.0],
        ]
    )
    assert nearest_neighbors(matrix, 2)[0] == [1, 2]
    assert nearest_neighbors(matrix, 2)[3] == [0, 1]


def test_evaluation_graph_uses_evaluation_features():
    features = np.array([[0.0], [1.0], [10.0]])
    evaluation = np.array([[0.0], [10.0], [1.0]])
    dataset = DataInstanceSet.from_features(features, evaluation_features=evaluation)
    NeighborGraphBuilder(dataset).build(1, evaluation=True)
    NeighborGraphBuilder(dataset).build(1)
    assert dataset.evaluation_neighbors[0] == [2]
    assert dataset.neighbors[0] == [1]


def test_negative_k_is_rejected(five_points):
    with pytest.raises(ValueError):
        NeighborGraphBuilder(five_points).build(-1)
