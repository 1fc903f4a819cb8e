"""
Shared fixtures for integration tests.
"""

import random
import pytest
import numpy as np

from neatflow.run.config import Config


@pytest.fixture(autouse=True)
def set_random_seeds():
    """Set the global random seeds for reproducibility."""
    # Networks draw from their own random source, but callbacks
    # and shuffling helpers may still use the global ones
    np.random.seed(42)
    random.seed(42)

    yield

    np.random.seed(None)
    random.seed(None)


@pytest.fixture
def seeded_rng():
    """Random source shared by every network of a test."""
    return random.Random(42)


@pytest.fixture
def xor_data():
    """XOR dataset."""
    return [([0.0, 0.0], [0.0]),
            ([0.0, 1.0], [1.0]),
            ([1.0, 0.0], [1.0]),
            ([1.0, 1.0], [0.0])]


@pytest.fixture
def and_data():
    """AND dataset."""
    return [([0.0, 0.0], [0.0]),
            ([0.0, 1.0], [0.0]),
            ([1.0, 0.0], [0.0]),
            ([1.0, 1.0], [1.0])]


@pytest.fixture
def xor_config():
    """Configuration for small XOR runs."""
    config = Config()
    config.num_inputs = 2
    config.num_outputs = 1
    config.population_size = 30
    config.elitism = 3
    config.mutation_rate = 0.5
    config.max_number_generations = 15
    return config
