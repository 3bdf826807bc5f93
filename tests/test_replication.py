import numpy as np
import pytest

from redgray.layout.point_set import ProjectedPointSet
from redgray.layout.projected_point import ProjectedPoint
from redgray.layout.replication import (
    mark_candidate,
    partition_neighbors,
    replicate_by_angles,
    select_candidate,
    strongest_axis,
)


@pytest.fixture
def star():
    """Point 0 at the origin linked to two points on each side of the y axis."""
    coords = [(0.0, 0.0), (1.0, 0.0), (-1.0, 0.0), (2.0, 0.1), (-2.0, 0.1)]
    point_set = ProjectedPointSet(len(coords))
    for i, (x, y) in enumerate(coords):
        point_set.add_point(ProjectedPoint(x=x, y=y, instance=i, neighbors=[0] if i else []))
    point_set[0].neighbors = [1, 2, 3, 4]
    return point_set


def test_split_partitions_neighbors_and_rewires(star):
    star[0].negative_pressure_history[0] = 5.0
    clone_index = replicate_by_angles(star, 0)

    assert clone_index == 5
    original, clone = star[0], star[clone_index]
    assert clone.instance == 0
    assert clone.projection_index == 1
    assert star.points_of(0) == [0, 5]
    assert clone.x == pytest.approx(1.5)
    assert clone.y == pytest.approx(0.05)

    assert sorted(original.neighbors + clone.neighbors) == [1, 2, 3, 4]
    assert original.neighbors == [2, 4]
    assert clone.neighbors == [1, 3]
    assert original.effective_weight == pytest.approx(2.0)
    assert clone.effective_weight == pytest.approx(2.0)

    assert star[1].neighbors == [5]
    assert star[3].neighbors == [5]
    assert star[2].neighbors == [0]
    assert star[4].neighbors == [0]


def test_kept_neighbor_closer_to_clone_moves_to_clone(star):
    star[0].negative_pressure_history[0] = 5.0
    star[1].x, star[1].y = 1.0, 10.0
    star[3].x, star[3].y = 1.0, 12.0
    # behind the split line, but next to where the clone lands
    star[2].x, star[2].y = -0.5, 11.0
    clone_index = replicate_by_angles(star, 0)

    assert clone_index == 5
    assert star[clone_index].neighbors == [1, 3, 2]
    assert star[0].neighbors == [4]
    assert star[clone_index].effective_weight == pytest.approx(2.0)
    assert star[0].effective_weight == pytest.approx(4.0)
    assert star[2].neighbors == [5]
    assert star[4].neighbors == [0]


def test_zero_history_marks_failure_without_new_point(star):
    before = len(star)
    assert replicate_by_angles(star, 0) is None
    assert star[0].replication_failed
    assert len(star) == before
    assert star.points_of(0) == [0]


def test_one_sided_neighborhood_fails(star):
    star[0].neighbors = [1, 3]
    star[0].negative_pressure_history[0] = 1.0
    assert replicate_by_angles(star, 0) is None
    assert star[0].replication_failed


def test_partition_keeps_points_on_the_line_and_drops_self(star):
    star[0].neighbors = [0, 1, 2]
    star[1].x, star[1].y = 0.0, 3.0
    star[2].x, star[2].y = 0.0, -3.0
    kept, moved = partition_neighbors(star, 0, 0)
    assert moved == []
    assert kept == [1, 2]


def test_strongest_axis_sums_opposite_bins():
    history = np.zeros(36)
    history[3] = 1.0
    history[21] = 1.0
    history[10] = 1.5
    assert strongest_axis(history) == 3
    assert strongest_axis(np.zeros(36)) is None


def test_select_candidate_skips_gray_failed_and_replicated(star):
    star[1].positive_pressures[4] = 9.0
    star[2].negative_pressures[7] = 5.0
    star[3].positive_pressures[2] = 3.0
    assert select_candidate(star) == (1, 4)
    mark_candidate(star, 1, angle_bin=4)
    assert star[1].gray and star[1].ineffective
    assert select_candidate(star) == (2, 7)
    star[2].mark_failed()
    assert select_candidate(star) == (3, 2)


def test_select_candidate_first_maximum_wins(star):
    for point in star.points:
        point.reset_pressures()
    assert select_candidate(star) == (0, 0)
