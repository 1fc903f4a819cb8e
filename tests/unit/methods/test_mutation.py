"""
Unit tests for the mutation operator set.
"""

import dataclasses
import pytest

from neatflow.methods import mutation
from neatflow.methods.mutation import Mutation, MutationType, parse_mutations


# ============================================================================
# Test Operators
# ============================================================================

class TestOperators:
    """Test the predefined operators and presets."""

    def test_all_contains_every_operator_once(self):
        """Test that ALL holds each of the 14 operator types exactly once."""
        assert len(mutation.ALL) == 14
        assert {m.type for m in mutation.ALL} == set(MutationType)

    def test_ffw_excludes_recurrent_operators(self):
        """Test that FFW has no operator creating gates or recurrent connections."""
        types = {m.type for m in mutation.FFW}
        assert len(mutation.FFW) == 8
        for excluded in (MutationType.ADD_GATE, MutationType.ADD_SELF_CONN, MutationType.ADD_BACK_CONN):
            assert excluded not in types

    def test_default_parameters(self):
        """Test default perturbation bounds and flags."""
        assert mutation.MOD_WEIGHT.min == -1.0
        assert mutation.MOD_WEIGHT.max == 1.0
        assert mutation.SUB_NODE.keep_gates is True
        assert mutation.MOD_ACTIVATION.mutate_output is True
        assert mutation.ADD_NODE.random_activation is True

    def test_operators_are_immutable(self):
        """Test that predefined operators cannot be modified in place."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            mutation.MOD_WEIGHT.min = -5.0

    def test_customized_operator(self):
        """Test deriving a customized operator with dataclasses.replace."""
        strong = dataclasses.replace(mutation.MOD_WEIGHT, min=-3.0, max=3.0)

        assert strong.type == MutationType.MOD_WEIGHT
        assert strong.max == 3.0
        assert mutation.MOD_WEIGHT.max == 1.0

    def test_name_and_str(self):
        """Test that an operator is named after its type."""
        assert mutation.ADD_GATE.name == "ADD_GATE"
        assert str(mutation.ADD_GATE) == "ADD_GATE"


# ============================================================================
# Test parse_mutations
# ============================================================================

class TestParseMutations:
    """Test parsing of textual mutation sets."""

    def test_presets(self):
        """Test the preset names, case-insensitively."""
        assert parse_mutations("FFW") == mutation.FFW
        assert parse_mutations("all") == mutation.ALL

    def test_comma_separated_list(self):
        """Test a comma-separated list of operator names."""
        parsed = parse_mutations("add_node, MOD_WEIGHT")
        assert parsed == [mutation.ADD_NODE, mutation.MOD_WEIGHT]

    def test_list_is_returned_as_is(self):
        """Test that a list of operators passes through."""
        custom = [Mutation(MutationType.MOD_BIAS, min=-0.1, max=0.1)]
        assert parse_mutations(custom) == custom

    def test_unknown_operator_raises(self):
        """Test that an unknown name raises ValueError."""
        with pytest.raises(ValueError, match="Invalid mutation operator"):
            parse_mutations("ADD_NODE, GROW_WINGS")
