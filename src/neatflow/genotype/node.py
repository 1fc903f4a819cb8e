"""
Node Module.

This module implements the Node class and NodeType enumeration.

Classes:
    NodeType: Enumeration for node types (INPUT, HIDDEN, OUTPUT, CONSTANT)
    Node:     A computational unit of a Network
"""

import random
from enum import Enum

from neatflow.activations         import activations, derivatives
from neatflow.genotype.connection import Connection

class NodeType(Enum):
    """
    Nodes come in four types: input, hidden, output, constant.
    Constant nodes are computed like hidden nodes but never learn.
    """
    INPUT    = "input"
    HIDDEN   = "hidden"
    OUTPUT   = "output"
    CONSTANT = "constant"

class Node:
    """
    A node of a Network.

    A node holds its parameters (bias and squash function), its runtime
    state (activation, pre-squash state, dropout mask) and the traces used
    by the local gradient rule. It also keeps the adjacency lists of its
    incoming, outgoing and gated connections; these are maintained by the
    owning Network, which is the only place structural edits happen.

    Every node has a self-connection slot. A self-connection weight of 0
    means the node has no self-connection.

    Public Attributes:
        id:                   Id of this node, unique within its Network
        type:                 NodeType
        bias:                 Bias added to the node's weighted input
        squash:               Name of the activation function
        activation:           Last computed output
        state:                Last computed pre-squash sum
        old:                  State before the last activation
        mask:                 Dropout multiplier (0 or 1 while training)
        derivative:           Derivative of the squash at the last state
        error_responsibility: Error signal (projected + gated)
        error_projected:      Error signal coming through outgoing connections
        error_gated:          Error signal coming through gated connections
        incoming:             Ordinary connections into this node
        outgoing:             Ordinary connections out of this node
        gated:                Connections gated by this node
        self_connection:      This node's self-connection slot
        self_connected:       Whether the self-connection slot is in use (its weight may be 0)
    """

    def __init__(self,
                 node_id  : int,
                 node_type: NodeType,
                 bias     : float         | None = None,
                 squash   : str                  = "logistic",
                 rng      : random.Random | None = None):
        """
        Initialize a node.

        Parameters:
            node_id:   Id of this node, unique within its Network
            node_type: NodeType
            bias:      Bias of the node. If None, input nodes get 0
                       and other nodes a value drawn from U(-0.1, 0.1)
            squash:    Name of the activation function
            rng:       Random source used when the bias has to be drawn
        """
        if bias is None:
            bias = 0.0 if node_type == NodeType.INPUT else (rng or random).uniform(-0.1, 0.1)

        self.id    : int      = node_id
        self.type  : NodeType = node_type
        self.bias  : float    = float(bias)
        self.squash: str      = squash

        self.activation: float = 0.0
        self.state     : float = 0.0
        self.old       : float = 0.0
        self.mask      : float = 1.0
        self.derivative: float = 0.0

        self.error_responsibility: float = 0.0
        self.error_projected     : float = 0.0
        self.error_gated         : float = 0.0

        self.total_delta_bias   : float = 0.0
        self.previous_delta_bias: float = 0.0

        self.incoming       : list[Connection] = []
        self.outgoing       : list[Connection] = []
        self.gated          : list[Connection] = []
        self.self_connection: Connection       = Connection(node_id, node_id, weight=0.0)
        self.self_connected : bool             = False

    def squash_value(self, x: float) -> float:
        return float(activations[self.squash](x))

    def squash_derivative(self, x: float) -> float:
        return float(derivatives[self.squash](float(x)))

    def has_self_connection(self) -> bool:
        return self.self_connected

    def connection_to(self, node_id: int) -> Connection | None:
        """
        Return the connection from this node to the node with the given id,
        or None if there is none. Covers the self-connection.
        """
        if node_id == self.id:
            return self.self_connection if self.has_self_connection() else None
        for conn in self.outgoing:
            if conn.to_id == node_id:
                return conn
        return None

    def is_projecting_to(self, node_id: int) -> bool:
        return self.connection_to(node_id) is not None

    def clear(self):
        """Reset runtime state and traces; parameters are left untouched."""
        for conn in self.incoming:
            conn.clear_traces()
        self.self_connection.clear_traces()

        self.error_responsibility = 0.0
        self.error_projected      = 0.0
        self.error_gated          = 0.0

        self.old        = 0.0
        self.state      = 0.0
        self.activation = 0.0

    def to_json(self) -> dict:
        return {"bias"  : self.bias,
                "type"  : self.type.value,
                "squash": self.squash,
                "mask"  : self.mask}

    def __str__(self):
        return f"[{self.id:>3}] {self.type.value:<8} bias={self.bias:+.4f} squash={self.squash}"

    def __repr__(self):
        return f"Node({self.id}, {self.type}, bias={self.bias!r}, squash={self.squash!r})"
