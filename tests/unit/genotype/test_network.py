"""
Unit tests for Network construction, activation and the local gradient rule.
"""

import math
import pytest
import numpy as np

from neatflow.errors import ConfigurationError, InvalidArgument
from neatflow.genotype import Network, NodeType
from neatflow.methods import mutation
from neatflow.run.config import Config


# ============================================================================
# Test Network Initialization
# ============================================================================

class TestNetworkInit:
    """Test Network construction."""

    def test_minimal_network_shape(self, rng):
        """Test that Network(2, 1) has 3 nodes, 2 connections and nothing else."""
        network = Network(2, 1, rng=rng)

        assert len(network.nodes) == 3
        assert len(network.connections) == 2
        assert len(network.selfconns) == 0
        assert len(network.gates) == 0

    def test_node_types_follow_order(self, rng):
        """Test that inputs come first and outputs last."""
        network = Network(3, 2, rng=rng)
        types = [node.type for node in network.nodes]

        assert types == [NodeType.INPUT] * 3 + [NodeType.OUTPUT] * 2

    def test_fully_connected_inputs_to_outputs(self, rng):
        """Test that every input is connected to every output."""
        network = Network(3, 2, rng=rng)
        pairs = {(conn.from_id, conn.to_id) for conn in network.connections}

        expected = {(i.id, o.id) for i in network.nodes[:3] for o in network.nodes[3:]}
        assert pairs == expected

    def test_initial_weights_range(self, rng):
        """Test the He-like initial weight range."""
        network = Network(4, 3, rng=rng)
        bound = 4 * math.sqrt(2 / 4)
        for conn in network.connections:
            assert 0.0 <= conn.weight < bound

    def test_node_ids_are_unique(self, rng):
        """Test that every node gets its own id."""
        network = Network(4, 3, rng=rng)
        assert len({node.id for node in network.nodes}) == 7

    def test_uses_configured_squash(self, rng):
        """Test that new nodes use the configured initial squash."""
        config = Config()
        config.activation_initial = "tanh"

        network = Network(1, 1, config=config, rng=rng)

        assert network.nodes[1].squash == "tanh"

    def test_unset_score(self, rng):
        """Test that a new network is unevaluated."""
        assert Network(1, 1, rng=rng).score is None

    @pytest.mark.parametrize("input_size, output_size", [(0, 1), (1, 0), (-2, 1), (None, 1), (1, None), (1.5, 1)])
    def test_invalid_sizes_raise(self, input_size, output_size):
        """Test that missing or non-positive sizes raise InvalidArgument."""
        with pytest.raises(InvalidArgument):
            Network(input_size, output_size)

    def test_numpy_integer_sizes(self, rng):
        """Test that numpy integer sizes are accepted and stored as plain ints."""
        network = Network(np.int64(2), np.int32(1), rng=rng)

        assert len(network.nodes) == 3
        assert type(network.input_size) is int
        assert type(network.output_size) is int

    def test_bool_size_raises(self):
        """Test that a boolean is not accepted as a size."""
        with pytest.raises(InvalidArgument):
            Network(True, 1)


# ============================================================================
# Test Activation
# ============================================================================

class TestActivation:
    """Test the forward pass."""

    def test_identity_network_adds_inputs(self, build_network):
        """Test that unit weights, zero biases and identity squash sum the inputs."""
        network = build_network(2, 1, ["input", "input", "output"], [(0, 2, 1.0), (1, 2, 1.0)])

        assert network.activate([0.3, 0.4]) == [pytest.approx(0.7)]
        assert network.activate([-1.0, 2.5]) == [pytest.approx(1.5)]

    def test_default_network_with_identity_squash(self, rng):
        """Test a constructed network after setting identity squash and unit weights."""
        network = Network(2, 1, rng=rng)
        network.set(bias=0.0, squash="identity")
        for conn in network.connections:
            conn.weight = 1.0

        assert network.activate([0.25, 0.5]) == [pytest.approx(0.75)]

    def test_bias_is_added(self, build_network, node_dict):
        """Test that the bias enters the node's state."""
        network = build_network(1, 1, ["input", node_dict("output", bias=0.5)], [(0, 1, 2.0)])
        assert network.activate([1.0]) == [pytest.approx(2.5)]

    def test_wrong_input_length_raises(self, rng):
        """Test that an input vector of the wrong length raises ConfigurationError."""
        network = Network(2, 1, rng=rng)

        with pytest.raises(ConfigurationError):
            network.activate([1.0])
        with pytest.raises(ConfigurationError):
            network.no_trace_activate([1.0, 2.0, 3.0])

    def test_self_connection_accumulates_state(self, build_network):
        """Test that a self-connection feeds the previous state back."""
        network = build_network(1, 1, ["input", "output"], [(0, 1, 1.0), (1, 1, 1.0)])

        assert network.activate([1.0]) == [pytest.approx(1.0)]
        assert network.activate([1.0]) == [pytest.approx(2.0)]
        assert network.activate([1.0]) == [pytest.approx(3.0)]

    def test_backward_connection_uses_previous_tick(self, build_network):
        """Test that a backward connection carries the activation of the previous tick."""
        network = build_network(1, 1,
                                ["input", "hidden", "output"],
                                [(0, 2, 1.0), (1, 2, 1.0), (2, 1, 1.0)])

        assert network.activate([1.0]) == [pytest.approx(1.0)]
        assert network.activate([1.0]) == [pytest.approx(2.0)]
        assert network.activate([1.0]) == [pytest.approx(3.0)]

    def test_gated_connection_is_scaled_by_gater(self, build_network):
        """Test that a gated connection is multiplied by the gater's activation."""
        network = build_network(1, 1,
                                ["input", "hidden", "output"],
                                [(0, 1, 1.0), (0, 2, 1.0, 1)])

        assert network.activate([2.0]) == [pytest.approx(4.0)]
        assert network.activate([3.0]) == [pytest.approx(9.0)]

    def test_clear_resets_recurrent_state(self, build_network):
        """Test that clear makes the network forget previous ticks."""
        network = build_network(1, 1, ["input", "output"], [(0, 1, 1.0), (1, 1, 1.0)])
        network.activate([1.0])
        network.activate([1.0])

        network.clear()

        assert network.activate([1.0]) == [pytest.approx(1.0)]

    def test_no_trace_activate_matches_activate(self, rng):
        """Test that both forward passes compute the same outputs."""
        network = Network(3, 2, rng=rng)
        for method in (mutation.ADD_NODE, mutation.ADD_SELF_CONN, mutation.ADD_GATE,
                       mutation.ADD_BACK_CONN, mutation.ADD_NODE):
            network.mutate(method)
        twin = network.clone()

        for sample in ([0.1, 0.2, 0.3], [1.0, -1.0, 0.5], [0.0, 0.0, 0.0]):
            assert network.activate(sample) == pytest.approx(twin.no_trace_activate(sample))

    def test_dropout_masks_hidden_nodes_while_training(self, build_network):
        """Test that training activation draws dropout masks for hidden nodes only."""
        network = build_network(1, 1,
                                ["input", "hidden", "output"],
                                [(0, 1, 1.0), (1, 2, 1.0), (0, 2, 1.0)])
        network.dropout = 1.0

        output = network.activate([1.0], training=True)

        assert network.nodes[1].mask == 0.0
        assert network.nodes[1].activation == 0.0
        assert network.nodes[2].mask == 1.0
        assert output == [pytest.approx(1.0)]

    def test_no_dropout_outside_training(self, build_network):
        """Test that masks are left alone when not training."""
        network = build_network(1, 1,
                                ["input", "hidden", "output"],
                                [(0, 1, 1.0), (1, 2, 1.0)])
        network.dropout = 1.0

        assert network.activate([1.0]) == [pytest.approx(1.0)]
        assert network.nodes[1].mask == 1.0


# ============================================================================
# Test Propagation
# ============================================================================

class TestPropagate:
    """Test the local gradient rule."""

    def test_single_connection_update(self, build_network):
        """Test the exact weight and bias change of a one-connection network."""
        network = build_network(1, 1, ["input", "output"], [(0, 1, 0.5)])
        conn = network.connections[0]
        output_node = network.nodes[1]

        network.activate([1.0])
        network.propagate(0.1, 0.0, True, [1.0])

        assert output_node.error_responsibility == pytest.approx(0.5)
        assert conn.weight == pytest.approx(0.55)
        assert output_node.bias == pytest.approx(0.05)

    def test_momentum(self, build_network):
        """Test that momentum adds a fraction of the previous change."""
        network = build_network(1, 1, ["input", "output"], [(0, 1, 0.5)])
        conn = network.connections[0]
        output_node = network.nodes[1]

        network.activate([1.0])
        network.propagate(0.1, 0.5, True, [1.0])
        network.activate([1.0])
        network.propagate(0.1, 0.5, True, [1.0])

        # Second step: error 0.4, change 0.04 + 0.5 * 0.05
        assert conn.weight == pytest.approx(0.615)
        assert output_node.bias == pytest.approx(0.115)

    def test_changes_accumulate_until_update(self, build_network):
        """Test mini-batch accumulation with update=False."""
        network = build_network(1, 1, ["input", "output"], [(0, 1, 0.5)])
        conn = network.connections[0]

        network.activate([1.0])
        network.propagate(0.1, 0.0, False, [1.0])
        network.propagate(0.1, 0.0, False, [1.0])

        assert conn.weight == 0.5
        assert conn.total_delta_weight == pytest.approx(0.1)

        network.propagate(0.1, 0.0, True, [1.0])

        assert conn.weight == pytest.approx(0.65)
        assert conn.total_delta_weight == 0.0

    def test_hidden_node_receives_error(self, build_network):
        """Test that the error reaches the weights feeding a hidden node."""
        network = build_network(1, 1,
                                ["input", "hidden", "output"],
                                [(0, 1, 0.5), (1, 2, 0.5)])
        first = network.connections[0]

        network.activate([1.0])
        network.propagate(0.1, 0.0, True, [1.0])

        # Output error 0.75. The output updates first, so the hidden node sees
        # the new weight 0.5375 and gets the error 0.75 * 0.5375
        assert network.nodes[1].error_responsibility == pytest.approx(0.403125)
        assert first.weight == pytest.approx(0.5403125)

    def test_constant_nodes_do_not_learn(self, build_network, node_dict):
        """Test that a constant node keeps its bias and incoming weights."""
        network = build_network(1, 1,
                                ["input", node_dict("constant", bias=0.2), "output"],
                                [(0, 1, 0.5), (1, 2, 0.5)])
        constant = network.nodes[1]

        network.activate([1.0])
        network.propagate(0.1, 0.0, True, [1.0])

        assert constant.bias == 0.2
        assert network.connections[0].weight == 0.5

    def test_gated_connection_learns(self, build_network):
        """Test that propagation through a gated network changes the gater's input weight."""
        network = build_network(1, 1,
                                ["input", "hidden", "output"],
                                [(0, 1, 0.5), (0, 2, 0.5, 1)])
        gater_input = network.connections[0]

        network.activate([1.0])
        network.propagate(0.1, 0.0, True, [1.0])

        assert gater_input.weight > 0.5

    def test_wrong_target_length_raises(self, rng):
        """Test that a target vector of the wrong length raises ConfigurationError."""
        network = Network(2, 1, rng=rng)
        network.activate([0.0, 1.0])

        with pytest.raises(ConfigurationError):
            network.propagate(0.1, 0.0, True, [1.0, 0.0])


# ============================================================================
# Test Bulk Operations
# ============================================================================

class TestBulkOperations:
    """Test set, clone and complexity."""

    def test_set(self, rng):
        """Test assigning bias and squash to every node."""
        network = Network(2, 2, rng=rng)
        network.set(bias=0.3, squash="tanh")

        assert all(node.bias == 0.3 for node in network.nodes)
        assert all(node.squash == "tanh" for node in network.nodes)

    def test_set_unknown_squash_raises(self, rng):
        """Test that an unknown squash raises InvalidArgument."""
        with pytest.raises(InvalidArgument):
            Network(1, 1, rng=rng).set(squash="swish")

    def test_clone_is_independent(self, rng):
        """Test that a clone shares no nodes or connections with its original."""
        network = Network(2, 1, rng=rng)
        network.score = 1.5
        twin = network.clone()

        assert twin.score is None
        assert all(a is not b for a, b in zip(network.nodes, twin.nodes))

        twin.connections[0].weight += 1.0
        assert network.connections[0].weight != twin.connections[0].weight

    def test_clone_computes_same_outputs(self, rng):
        """Test that a clone computes the same outputs."""
        network = Network(3, 2, rng=rng)
        twin = network.clone()

        assert network.activate([0.5, -0.5, 1.0]) == pytest.approx(twin.activate([0.5, -0.5, 1.0]))

    def test_complexity(self, build_network):
        """Test that complexity counts hidden nodes, connections and gates."""
        network = build_network(1, 1,
                                ["input", "hidden", "output"],
                                [(0, 1, 1.0), (1, 2, 1.0), (0, 2, 1.0, 1)])

        assert network.complexity() == 1 + 3 + 1

    def test_str(self, rng):
        """Test the textual summary."""
        assert "2 inputs, 1 outputs" in str(Network(2, 1, rng=rng))
