import concurrent.futures

import numpy as np
import pytest

from redgray.layout.forces import ForceCalculator, ForceParameters
from redgray.layout.point_set import ProjectedPointSet
from redgray.layout.projected_point import ProjectedPoint


def _point_set(coords, neighbors=None):
    point_set = ProjectedPointSet(len(coords))
    for i, (x, y) in enumerate(coords):
        point_set.add_point(
            ProjectedPoint(x=x, y=y, instance=i, neighbors=list(neighbors[i]) if neighbors else [])
        )
    return point_set


def _params(**overrides):
    values = dict(ideal_distance=1.0, max_original_distance=1.0, max_visual_distance=1.0)
    values.update(overrides)
    return ForceParameters(**values)


def test_repulsion_pushes_square_corners_outward():
    coords = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]
    point_set = _point_set(coords)
    calculator = ForceCalculator(_params(), np.zeros((4, 4)))
    field = calculator.compute(point_set, track_pressure=False)
    centroid = np.array([0.5, 0.5])
    for i, (x, y) in enumerate(coords):
        outward = np.array([x, y]) - centroid
        force = np.array([field.add_x[i], field.add_y[i]])
        assert float(force @ outward) > 0.0


def test_attraction_pulls_distant_neighbors_together():
    point_set = _point_set([(0.0, 0.0), (100.0, 0.0)], neighbors=[[1], [0]])
    original = np.array([[0.0, 0.1], [0.1, 0.0]])
    calculator = ForceCalculator(
        _params(ideal_distance=1.0, max_visual_distance=100.0), original
    )
    field = calculator.compute(point_set, track_pressure=False)
    assert field.add_x[0] > 0.0
    assert field.add_x[1] < 0.0


def test_ineffective_points_neither_push_nor_get_pushed():
    point_set = _point_set([(0.0, 0.0), (1.0, 0.0), (5.0, 5.0)])
    point_set[2].mark_ineffective()
    field = ForceCalculator(_params(), np.zeros((3, 3))).compute(point_set, track_pressure=False)
    assert field.add_x[2] == 0.0 and field.add_y[2] == 0.0
    assert field.add_y[0] == pytest.approx(0.0)
    assert field.add_x[0] < 0.0


def test_pressure_tracking_splits_projections_by_sign():
    point_set = _point_set([(0.0, 0.0), (1.0, 0.0)])
    field = ForceCalculator(_params(), np.zeros((2, 2))).compute(point_set, track_pressure=True)
    # point 0 is pushed toward -x: bin 18 (180 degrees) is positive, bin 0 negative
    assert field.positive[0, 18] > 0.0
    assert field.negative[0, 0] > 0.0
    assert field.positive[0, 0] == 0.0
    assert np.all(field.positive >= 0.0) and np.all(field.negative >= 0.0)

    untracked = ForceCalculator(_params(), np.zeros((2, 2))).compute(point_set, track_pressure=False)
    assert not untracked.positive.any()


@pytest.mark.parametrize("workers", [2, 4, 8])
def test_forces_do_not_depend_on_worker_count(workers):
    rng = np.random.default_rng(3)
    count = 24
    coords = rng.uniform(0.0, 100.0, size=(count, 2))
    neighbors = [list(rng.choice([j for j in range(count) if j != i], 4, replace=False)) for i in range(count)]
    original = rng.uniform(0.1, 1.0, size=(count, count))
    original = (original + original.T) / 2.0
    params = _params(ideal_distance=20.0, max_visual_distance=141.0)

    serial = ForceCalculator(params, original).compute(
        _point_set(coords, neighbors), track_pressure=True
    )
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        parallel = ForceCalculator(params, original, workers=workers, executor=executor).compute(
            _point_set(coords, neighbors), track_pressure=True
        )
    np.testing.assert_array_equal(serial.add_x, parallel.add_x)
    np.testing.assert_array_equal(serial.add_y, parallel.add_y)
    np.testing.assert_array_equal(serial.positive, parallel.positive)
    np.testing.assert_array_equal(serial.negative, parallel.negative)


def test_parameters_are_validated():
    with pytest.raises(ValueError):
        _params(ideal_distance=0.0)
    with pytest.raises(ValueError):
        _params(visual_density=1.5)
    with pytest.raises(ValueError):
        ForceCalculator(_params(), np.zeros((1, 1)), workers=2)
