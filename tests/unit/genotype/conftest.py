"""
Shared fixtures for genotype tests.
"""

import pytest

from neatflow.genotype import Network


def _node(node_type, bias=0.0, squash="identity"):
    return {"bias": bias, "type": node_type, "squash": squash}


def _conn(source, target, weight=1.0, gater=None):
    return {"from": source, "to": target, "weight": weight, "gater": gater}


@pytest.fixture
def build_network(rng, config):
    """
    Factory building a network with an exact structure.

    Nodes are given as type strings (identity squash, zero bias) or as
    full node dicts; connections as (from, to, weight[, gater]) tuples.
    """
    def _build(input_size, output_size, nodes, connections):
        data = {"input_size" : input_size,
                "output_size": output_size,
                "nodes"      : [_node(node) if isinstance(node, str) else node for node in nodes],
                "connections": [_conn(*conn) for conn in connections]}
        return Network.from_json(data, config, rng)
    return _build


@pytest.fixture
def node_dict():
    """Build a node dict for 'build_network'."""
    return _node


def _assert_consistent(network):
    network._check_partition()

    node_ids = {node.id for node in network.nodes}
    pairs = [(conn.from_id, conn.to_id) for conn in network.connections]
    assert len(pairs) == len(set(pairs)), "duplicate connection"

    for conn in network.connections:
        assert not conn.is_self
        assert conn.from_id in node_ids and conn.to_id in node_ids
        source = network._node(conn.from_id)
        target = network._node(conn.to_id)
        assert any(c is conn for c in source.outgoing)
        assert any(c is conn for c in target.incoming)

    selfconn_nodes = [node for node in network.nodes if node.has_self_connection()]
    assert len(selfconn_nodes) == len(network.selfconns)
    for node in selfconn_nodes:
        assert any(c is node.self_connection for c in network.selfconns)

    gated = [conn for conn in network.connections + network.selfconns if conn.gater_id is not None]
    assert len(gated) == len(network.gates)
    for conn in network.gates:
        assert conn.gater_id in node_ids
        assert any(c is conn for c in network._node(conn.gater_id).gated)

    for node in network.nodes:
        for conn in node.gated:
            assert conn.gater_id == node.id


@pytest.fixture
def assert_consistent():
    """Check the structural invariants of a network (partition, adjacency, gates)."""
    return _assert_consistent
