"""
Shared fixtures: quiet console logging and small synthetic datasets.
"""
import numpy as np
import pytest

from redgray.data.dataset import DataInstanceSet
from redgray.logging import LOGGER


@pytest.fixture(autouse=True)
def quiet_logger():
    """Silence console events and drop interval counters between tests."""
    LOGGER.set_console(False)
    LOGGER.configure_intervals({})
    yield
    LOGGER.set_console(True)


@pytest.fixture
def five_points():
    coords = np.array([[0.0, 0.0], [1.0, 0.0], [3.0, 0.0], [0.0, 2.0], [6.0, 6.0]])
    return DataInstanceSet.from_features(coords, labels=[0, 0, 1, 1, 2])


@pytest.fixture
def clustered_dataset():
    rng = np.random.default_rng(7)
    centers = np.array([[0.0, 0.0, 0.0], [10.0, 0.0, 5.0], [0.0, 10.0, -5.0]])
    rows = []
    labels = []
    for label, center in enumerate(centers):
        for _ in range(6):
            rows.append(center + rng.normal(scale=0.8, size=3))
            labels.append(label)
    return DataInstanceSet.from_features(np.asarray(rows), labels=labels)
