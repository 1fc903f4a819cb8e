"""
Unit tests for the learning-rate policies.
"""

import pytest

from neatflow.methods import rate


class TestRatePolicies:
    """Test the learning-rate policies."""

    def test_fixed(self):
        """Test that the fixed policy ignores the iteration."""
        policy = rate.fixed()
        assert policy(0.3, 1) == 0.3
        assert policy(0.3, 10000) == 0.3

    def test_step(self):
        """Test that the step policy decays every step_size iterations."""
        policy = rate.step(gamma=0.5, step_size=10)
        assert policy(1.0, 9)  == pytest.approx(1.0)
        assert policy(1.0, 25) == pytest.approx(0.25)

    def test_exp(self):
        """Test exponential decay."""
        assert rate.exp(gamma=0.5)(1.0, 2) == pytest.approx(0.25)

    def test_inv(self):
        """Test inverse decay."""
        assert rate.inv(gamma=1.0, power=1.0)(1.0, 1) == pytest.approx(0.5)

    def test_module_level_fixed_policy(self):
        """Test the FIXED policy used by default in training."""
        assert rate.FIXED(0.1, 50) == 0.1
