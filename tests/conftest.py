"""Pytest configuration and shared fixtures."""

import pytest
import random
import sys
from pathlib import Path

# Add the source directory to the Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


@pytest.fixture
def rng():
    """Seeded random source, for reproducible tests."""
    return random.Random(42)


@pytest.fixture
def config():
    """Default configuration."""
    from neatflow.run.config import Config
    return Config()


@pytest.fixture
def xor_dataset():
    """XOR truth table as (input, target) pairs."""
    return [([0.0, 0.0], [0.0]),
            ([0.0, 1.0], [1.0]),
            ([1.0, 0.0], [1.0]),
            ([1.0, 1.0], [0.0])]


@pytest.fixture
def and_dataset():
    """AND truth table as (input, target) pairs."""
    return [([0.0, 0.0], [0.0]),
            ([0.0, 1.0], [0.0]),
            ([1.0, 0.0], [0.0]),
            ([1.0, 1.0], [1.0])]
