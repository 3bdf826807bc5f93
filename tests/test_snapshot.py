import math

import pytest

from redgray.errors import NonFiniteLayoutError
from redgray.layout.point_set import ProjectedPointSet
from redgray.layout.projected_point import ProjectedPoint
from redgray.layout.snapshot import ProjectionOutput, ProjectionStep
from redgray.layout.visualize_layout import log_projection_step


def _step(label, coords, red_and_gray=-1.0, red=-1.0):
    point_set = ProjectedPointSet(len(coords))
    for i, (x, y) in enumerate(coords):
        point_set.add_point(ProjectedPoint(x=x, y=y, instance=i))
    return ProjectionStep(label, point_set, red_and_gray, red)


def test_best_snapshots_pick_the_first_maximum():
    output = ProjectionOutput(
        "run",
        [
            _step("initial", [(0.0, 0.0)], 0.5, 0.7),
            _step("1", [(0.0, 0.0)], 0.9, 0.2),
            _step("2", [(0.0, 0.0)], 0.9, 0.8),
            _step("3", [(0.0, 0.0)], 0.1, 0.8),
        ],
    )
    index, best = output.best_red_and_gray()
    assert (index, best.label) == (1, "1")
    index, best = output.best_red()
    assert (index, best.label) == (2, "2")
    assert output.last().label == "3"


def test_empty_output_has_no_best():
    with pytest.raises(IndexError):
        ProjectionOutput("run").best_red()


def test_normalize_to_size_fits_the_frame():
    output = ProjectionOutput("run", [_step("initial", [(10.0, 10.0), (30.0, 20.0)])])
    output.normalize_to_size(100.0, 100.0)
    points = output[0].points
    assert (points[0].x, points[0].y) == (0.0, 0.0)
    assert points[1].x == pytest.approx(100.0)
    assert points[1].y == pytest.approx(50.0)
    box = output.containing_box()
    assert box.width == pytest.approx(100.0)


def test_non_finite_snapshot_is_reported():
    output = ProjectionOutput(
        "run",
        [_step("initial", [(0.0, 0.0)]), _step("1", [(math.nan, 0.0)])],
    )
    with pytest.raises(NonFiniteLayoutError) as info:
        output.check_non_finite()
    assert info.value.step_index == 1
    assert info.value.label == "1"


def test_scored_and_gray_count():
    step = _step("1", [(0.0, 0.0), (1.0, 1.0)])
    assert not step.scored
    step.points[1].gray = True
    assert step.gray_count == 1
    step.red_and_gray_trustworthiness = 0.8
    assert step.scored


def test_log_projection_step_without_viewer():
    step = _step("4", [(0.0, 0.0), (1.0, 2.0)], 0.9, 0.8)
    step.points[0].neighbors = [1]
    step.points[1].gray = True
    log_projection_step(step, sequence=4, labels=[3, 5])
