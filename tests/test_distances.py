import math

import numpy as np
import pytest

from redgray.data import distances
from redgray.data.dataset import DataInstanceSet, Transform
from redgray.errors import DistanceMatrixError


def test_euclidean_matrix_is_symmetric_with_zero_diagonal(five_points):
    matrix = distances.euclidean_matrix(five_points.feature_matrix())
    assert matrix.shape == (5, 5)
    np.testing.assert_array_equal(matrix, matrix.T)
    np.testing.assert_array_equal(np.diag(matrix), 0.0)
    assert matrix[0, 2] == pytest.approx(3.0)


def test_non_square_matrix_is_rejected():
    with pytest.raises(DistanceMatrixError):
        distances.validate_square(np.zeros((2, 3)))
    with pytest.raises(DistanceMatrixError):
        DataInstanceSet.from_dissimilarities(np.zeros((3, 2)))


def test_symmetrize_averages_both_directions():
    matrix = np.array([[0.0, 1.0, 4.0], [3.0, 0.0, 2.0], [0.0, 2.0, 0.0]])
    distances.symmetrize(matrix)
    np.testing.assert_allclose(matrix, [[0.0, 2.0, 2.0], [2.0, 0.0, 2.0], [2.0, 2.0, 0.0]])


def test_neighborhood_normalize_in_place():
    matrix = np.array([[0.0, 1.0, 2.0], [1.0, 0.0, 1.0], [2.0, 1.0, 0.0]])
    result = distances.neighborhood_normalize(matrix, k=1)
    assert result is matrix
    assert matrix[0, 1] == pytest.approx(1.0)
    assert matrix[0, 2] == pytest.approx(math.atan(2.0 * math.tan(1.0)))
    np.testing.assert_allclose(matrix, matrix.T)
    np.testing.assert_array_equal(np.diag(matrix), 0.0)
    assert matrix.max() < math.pi / 2


def test_cosine_distance_of_parallel_vectors_is_zero():
    matrix = distances.cosine_distance_matrix(np.array([[1.0, 0.0], [2.0, 0.0], [0.0, 3.0]]))
    assert matrix[0, 1] == pytest.approx(0.0)
    assert matrix[0, 2] == pytest.approx(1.0)


def test_dataset_transform_needs_precomputed_distances(five_points):
    with pytest.raises(DistanceMatrixError):
        five_points.transform_distances(Transform.NEIGHBORHOOD_NORMALIZED)
    five_points.precompute_distances()
    before = five_points.distance(0, 4)
    five_points.transform_distances(Transform.NEIGHBORHOOD_NORMALIZED)
    assert five_points.distance(0, 4) != before
    assert 0.0 < five_points.distance(0, 4) < math.pi / 2


def test_evaluation_distances_survive_layout_transforms(five_points):
    five_points.precompute_distances()
    five_points.precompute_evaluation_distances()
    five_points.transform_distances(Transform.NEIGHBORHOOD_NORMALIZED)
    assert five_points.evaluation_distance(0, 2) == pytest.approx(3.0)


def test_cosine_transform_rejects_dissimilarities():
    dataset = DataInstanceSet.from_dissimilarities([[0.0, 1.0], [1.0, 0.0]])
    dataset.precompute_distances()
    with pytest.raises(DistanceMatrixError):
        dataset.transform_distances(Transform.COSINE)


def test_precomputed_evaluation_matrix_and_its_transform(five_points):
    matrix = five_points.feature_matrix()[:, :1].repeat(5, axis=1)
    five_points.set_precomputed_distances(np.abs(matrix - matrix.T), evaluation=True)
    assert five_points.evaluation_distance(0, 2) == pytest.approx(3.0)
    assert five_points.maximum_evaluation_distance() == pytest.approx(6.0)
    five_points.transform_evaluation_distances(Transform.NEIGHBORHOOD_NORMALIZED)
    assert five_points.maximum_evaluation_distance() < math.pi / 2
    with pytest.raises(DistanceMatrixError):
        five_points.set_precomputed_distances(np.zeros((2, 2)))
