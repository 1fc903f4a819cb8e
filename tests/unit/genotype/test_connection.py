"""
Unit tests for Connection class.
"""

import random
import pytest

from neatflow.genotype.connection import Connection


# ============================================================================
# Test Connection Initialization
# ============================================================================

class TestConnectionInit:
    """Test Connection initialization."""

    def test_explicit_weight(self):
        """Test that an explicit weight is kept."""
        conn = Connection(0, 3, weight=0.75)

        assert conn.from_id == 0
        assert conn.to_id == 3
        assert conn.weight == 0.75
        assert conn.gater_id is None

    def test_random_weight_range(self):
        """Test that a missing weight is drawn from [-0.1, 0.1]."""
        rng = random.Random(7)
        for _ in range(100):
            conn = Connection(0, 1, rng=rng)
            assert -0.1 <= conn.weight <= 0.1

    def test_traces_start_empty(self):
        """Test that training traces start at zero."""
        conn = Connection(0, 1, weight=1.0)

        assert conn.eligibility == 0.0
        assert conn.xtrace == {}
        assert conn.total_delta_weight == 0.0
        assert conn.previous_delta_weight == 0.0

    def test_is_self(self):
        """Test self-connection detection."""
        assert Connection(4, 4, weight=1.0).is_self
        assert not Connection(4, 5, weight=1.0).is_self

    def test_clear_traces(self):
        """Test that clear_traces resets eligibility and extended traces only."""
        conn = Connection(0, 1, weight=0.5)
        conn.eligibility = 2.0
        conn.xtrace = {3: 1.5}

        conn.clear_traces()

        assert conn.eligibility == 0.0
        assert conn.xtrace == {}
        assert conn.weight == 0.5


# ============================================================================
# Test Innovation ID
# ============================================================================

class TestInnovationId:
    """Test the Cantor pairing of node indices."""

    @pytest.mark.parametrize("a, b, expected", [(0, 0, 0),
                                                (1, 0, 1),
                                                (0, 1, 2),
                                                (2, 3, 18),
                                                (10, 4, 109)])
    def test_known_values(self, a, b, expected):
        """Test Cantor pairing values."""
        assert Connection.innovation_id(a, b) == expected

    def test_order_matters(self):
        """Test that (a, b) and (b, a) have different ids."""
        assert Connection.innovation_id(2, 5) != Connection.innovation_id(5, 2)

    def test_unique_over_grid(self):
        """Test that the pairing is injective on a grid of indices."""
        ids = {Connection.innovation_id(a, b) for a in range(30) for b in range(30)}
        assert len(ids) == 900
