"""
Unit tests for the parent selection strategies.
"""

import pytest

from neatflow.methods.selection import (FitnessProportionate, Power, Tournament,
                                        parse_selection, POWER, TOURNAMENT)


class TestSelectionStrategies:
    """Test the selection strategy values."""

    def test_defaults(self):
        """Test default strategy parameters."""
        assert POWER.power == 4.0
        assert TOURNAMENT.size == 5
        assert TOURNAMENT.probability == 0.5

    def test_names(self):
        """Test strategy names."""
        assert Power().name == "POWER"
        assert FitnessProportionate().name == "FITNESS_PROPORTIONATE"
        assert Tournament().name == "TOURNAMENT"


class TestParseSelection:
    """Test building strategies from their names."""

    def test_power(self):
        """Test parsing POWER with a custom exponent."""
        assert parse_selection("power", power=2.0) == Power(2.0)

    def test_fitness_proportionate(self):
        """Test parsing FITNESS_PROPORTIONATE."""
        assert parse_selection("FITNESS_PROPORTIONATE") == FitnessProportionate()

    def test_tournament(self):
        """Test parsing TOURNAMENT with custom parameters."""
        assert parse_selection("TOURNAMENT", size=3, probability=0.8) == Tournament(3, 0.8)

    def test_unknown_raises(self):
        """Test that an unknown strategy raises ValueError."""
        with pytest.raises(ValueError, match="Invalid selection strategy"):
            parse_selection("ROULETTE")
