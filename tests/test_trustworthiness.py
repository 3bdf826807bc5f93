import concurrent.futures

import numpy as np
import pytest

from redgray.data.dataset import DataInstanceSet
from redgray.evaluation.trustworthiness import TrustworthinessEvaluator
from redgray.layout.point_set import ProjectedPointSet
from redgray.layout.projected_point import ProjectedPoint

LINE = np.array([[0.0, 0.0], [1.0, 0.0], [2.5, 0.0], [4.5, 0.0], [7.0, 0.0], [10.0, 0.0]])


def _layout(coords):
    point_set = ProjectedPointSet(len(coords))
    for i, (x, y) in enumerate(coords):
        point_set.add_point(ProjectedPoint(x=float(x), y=float(y), instance=i))
    return point_set


def test_identity_layout_is_perfectly_trustworthy():
    dataset = DataInstanceSet.from_features(LINE)
    score = TrustworthinessEvaluator(2).evaluate(_layout(LINE), dataset)
    assert score == pytest.approx(1.0)


def test_scrambled_layout_is_penalized():
    dataset = DataInstanceSet.from_features(LINE)
    scrambled = LINE[[0, 5, 1, 4, 2, 3]]
    score = TrustworthinessEvaluator(2).evaluate(_layout(scrambled), dataset)
    assert score < 1.0


def test_extra_point_counts_with_its_best_rank():
    dataset = DataInstanceSet.from_features(LINE)
    point_set = _layout(LINE)
    # a second point of instance 5 next to instance 0 makes 5 a visual neighbor of 0
    clone = point_set[5].clone()
    clone.x, clone.y = 0.2, 0.0
    point_set.add_point(clone)
    evaluator = TrustworthinessEvaluator(2)
    assert evaluator.evaluate(point_set, dataset) < 1.0

    clone.gray = True
    assert evaluator.evaluate(point_set, dataset, red_layer=True) == pytest.approx(1.0)


def test_red_layer_drops_instances_without_red_points():
    dataset = DataInstanceSet.from_features(LINE)
    point_set = _layout(LINE[[0, 5, 1, 4, 2, 3]])
    evaluator = TrustworthinessEvaluator(1)
    full = evaluator.evaluate(point_set, dataset)
    for index in (1, 3):
        point_set[index].gray = True
    red = evaluator.evaluate(point_set, dataset, red_layer=True)
    assert full < 1.0
    assert red <= 1.0
    both = evaluator.evaluate_layers(point_set, dataset)
    assert both[0] == pytest.approx(evaluator.evaluate(point_set, dataset))
    assert both[1] == pytest.approx(red)


def test_degenerate_normalizer_scores_one():
    dataset = DataInstanceSet.from_features(LINE[:3])
    assert TrustworthinessEvaluator(2).evaluate(_layout(LINE[[2, 0, 1]]), dataset) == 1.0


@pytest.mark.parametrize("workers", [2, 3, 7])
def test_score_does_not_depend_on_worker_count(clustered_dataset, workers):
    rng = np.random.default_rng(11)
    coords = rng.uniform(0.0, 100.0, size=(len(clustered_dataset), 2))
    point_set = _layout(coords)
    for index in (2, 9):
        clone = point_set[index].clone()
        clone.x, clone.y = rng.uniform(0.0, 100.0, size=2)
        clone.gray = True
        point_set.add_point(clone)

    serial = TrustworthinessEvaluator(4).evaluate_layers(point_set, clustered_dataset)
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        parallel = TrustworthinessEvaluator(4, workers=workers).evaluate_layers(
            point_set, clustered_dataset, executor=executor
        )
    own_pool = TrustworthinessEvaluator(4, workers=workers).evaluate_layers(point_set, clustered_dataset)
    assert serial == parallel == own_pool
    assert all(score <= 1.0 for score in serial)


def test_mismatched_instance_count_is_rejected(five_points):
    with pytest.raises(ValueError):
        TrustworthinessEvaluator(2).evaluate(_layout(LINE), five_points)
