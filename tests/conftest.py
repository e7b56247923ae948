"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def toy_data():
    """Five subjects: (1,1), (2,0), (3,1), (3,1), (5,0)."""
    time = np.array([1, 2, 3, 3, 5], dtype=np.float64)
    event = np.array([1, 0, 1, 1, 0], dtype=np.float64)
    return time, event


@pytest.fixture
def random_cohort(rng):
    """Two-arm cohort with exponential times and uniform censoring."""
    n = 300
    group = np.where(rng.random(n) < 0.5, "GI", "RMGI")
    rate = np.where(group == "GI", 0.3, 0.15)
    event_time = rng.exponential(1.0 / rate)
    censor_time = rng.uniform(0, 12, n)
    time = np.round(np.minimum(event_time, censor_time), 2)
    event = (event_time <= censor_time).astype(np.float64)
    return time, event, group
