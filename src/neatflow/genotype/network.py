"""
Network Module

This module implements the Network class: a genome made of an ordered
sequence of nodes and the connections between them. Connections may be
gated by a third node and may point backwards (recurrent) or to their own
source (self-connections).

A Network can be:
- activated, one input vector per tick, keeping recurrent state between ticks
- trained in isolation, with a local real-time gradient rule (see 'propagate')
- structurally mutated (see 'possible' and 'mutate')
- recombined with another Network (see 'cross_over' and 'merge')
- exported to / rebuilt from a structural form ('to_json') or a flattened
  numeric form ('serialize')

Node order invariant: nodes[0, input_size) are input nodes,
nodes[len - output_size, len) are output nodes, everything in between is
hidden or constant.

Classes:
    Network: A variable-topology neural network genome
"""

import copy
import math
import numbers
import random
import time
import warnings

from neatflow.activations         import activations, squash_names
from neatflow.errors              import (ConfigurationError,
                                          InfeasibleMutationWarning,
                                          InvalidArgument,
                                          StructuralViolation)
from neatflow.genotype.connection import Connection
from neatflow.genotype.node       import Node, NodeType
from neatflow.methods.cost        import get_cost
from neatflow.methods.mutation    import Mutation, MutationType
from neatflow.methods.rate        import FIXED
from neatflow.run.config          import Config

class Network:
    """
    A variable-topology neural network genome.

    Public Attributes:
        input_size:  Number of input nodes (fixed for the lifetime of the network)
        output_size: Number of output nodes (fixed for the lifetime of the network)
        dropout:     Probability of a hidden node being masked while training
        nodes:       Ordered list of nodes (input, hidden/constant, output)
        connections: Ordinary (non-self) connections
        selfconns:   Self-connections
        gates:       Gated connections (ordinary or self)
        score:       Fitness assigned by the population manager (None = unevaluated)

    Public Methods:
        activate(input, training):                Forward pass, keeping training traces
        no_trace_activate(input):                 Forward pass for inference only
        propagate(rate, momentum, update, target): Local gradient update
        clear():                                  Reset runtime state
        connect(), disconnect(), gate(), ungate(), remove(): Structural editing
        possible(method), mutate(method):         Mutation operators
        train(), test(), evolve():                Supervised training, evaluation, neuro-evolution
        set(), clone():                           Bulk parameter assignment, copying
        to_json(), from_json():                   Structural form
        serialize(), deserialize():               Flattened numeric form
        cross_over(), merge():                    Recombination of two networks
    """

    def __init__(self,
                 input_size : int,
                 output_size: int,
                 config     : Config        | None = None,
                 rng        : random.Random | None = None):
        """
        Create a network with every input node connected to every output node.

        Parameters:
            input_size:  Number of input nodes (positive)
            output_size: Number of output nodes (positive)
            config:      Configuration (defaults are used if None)
            rng:         Random source for every stochastic operation on this network
        """
        for name, size in (("input_size", input_size), ("output_size", output_size)):
            if not isinstance(size, numbers.Integral) or isinstance(size, bool) or size <= 0:
                raise InvalidArgument(f"'{name}' must be a positive integer, got {size!r}")

        input_size, output_size = int(input_size), int(output_size)
        self._init_state(input_size, output_size, config, rng)

        for i in range(input_size + output_size):
            node_type = NodeType.INPUT if i < input_size else NodeType.OUTPUT
            self._append_node(Node(self._new_node_id(),
                                   node_type,
                                   squash = self._config.activation_initial,
                                   rng    = self._rng))

        # He-like initialization of the input -> output weights
        for source in self.nodes[:input_size]:
            for target in self.nodes[input_size:]:
                weight = self._rng.random() * input_size * math.sqrt(2 / input_size)
                self.connect(source, target, weight)

    def _init_state(self, input_size, output_size, config, rng):
        self.input_size : int           = input_size
        self.output_size: int           = output_size
        self._config    : Config        = config if config is not None else Config()
        self._rng       : random.Random = rng    if rng    is not None else random.Random()
        self.dropout    : float         = self._config.dropout

        self.nodes       : list[Node]       = []
        self._nodes_by_id: dict[int, Node]  = {}
        self.connections : list[Connection] = []
        self.selfconns   : list[Connection] = []
        self.gates       : list[Connection] = []
        self.score       : float | None     = None
        self._next_id    : int              = 0

    @classmethod
    def _blank(cls, input_size, output_size, config=None, rng=None) -> "Network":
        """Create a network without any nodes or connections."""
        network = cls.__new__(cls)
        network._init_state(int(input_size), int(output_size), config, rng)
        return network

    @property
    def config(self) -> Config:
        return self._config

    @property
    def rng(self) -> random.Random:
        return self._rng

    # ------------------------------------------------------------------
    # Node bookkeeping
    # ------------------------------------------------------------------

    def _new_node_id(self) -> int:
        node_id = self._next_id
        self._next_id += 1
        return node_id

    def _append_node(self, node: Node):
        self.nodes.append(node)
        self._nodes_by_id[node.id] = node

    def _insert_node(self, position: int, node: Node):
        self.nodes.insert(position, node)
        self._nodes_by_id[node.id] = node

    def _node(self, node_id: int) -> Node:
        return self._nodes_by_id[node_id]

    def _check_member(self, node: Node):
        if self._nodes_by_id.get(node.id) is not node:
            raise StructuralViolation("This node is not part of the network")

    def _owns_connection(self, connection: Connection) -> bool:
        if connection.is_self:
            return any(conn is connection for conn in self.selfconns)
        return any(conn is connection for conn in self.connections)

    def _check_partition(self):
        n = len(self.nodes)
        if n < self.input_size + self.output_size:
            raise StructuralViolation("Network has fewer nodes than inputs and outputs")
        for i, node in enumerate(self.nodes):
            is_input  = i < self.input_size
            is_output = i >= n - self.output_size
            if is_input != (node.type == NodeType.INPUT) or is_output != (node.type == NodeType.OUTPUT):
                raise StructuralViolation(f"Node {i} of type '{node.type.value}' breaks the input/hidden/output order")

    def _gain(self, connection: Connection) -> float:
        if connection.gater_id is None:
            return 1.0
        return self._nodes_by_id[connection.gater_id].activation

    def _warn(self, message: str):
        if self._config.warnings:
            warnings.warn(message, InfeasibleMutationWarning, stacklevel=3)

    def complexity(self) -> int:
        """Number of hidden nodes, connections and gates (the size penalized by 'growth')."""
        return len(self.nodes) - self.input_size - self.output_size + len(self.connections) + len(self.gates)

    # ------------------------------------------------------------------
    # Activation and training
    # ------------------------------------------------------------------

    def activate(self, input, training: bool = False) -> list[float]:
        """
        Activate the network, keeping the traces needed by 'propagate'.

        Nodes are processed in their stored order. A connection whose source
        has not been recomputed yet in this tick carries the source's
        activation from the previous tick.

        Parameters:
            input:    Input vector (length 'input_size')
            training: If True, hidden nodes draw a fresh dropout mask

        Returns:
            Activations of the output nodes
        """
        if len(input) != self.input_size:
            raise ConfigurationError(f"Expected {self.input_size} inputs, got {len(input)}")

        first_output = len(self.nodes) - self.output_size
        output = []
        for i, node in enumerate(self.nodes):
            if i < self.input_size:
                node.activation = float(input[i])
            elif i >= first_output:
                output.append(self._activate_node(node))
            else:
                if training:
                    node.mask = 0.0 if self._rng.random() < self.dropout else 1.0
                self._activate_node(node)
        return output

    def _activate_node(self, node: Node) -> float:
        selfconn  = node.self_connection
        self_gain = self._gain(selfconn) * selfconn.weight

        node.old = node.state
        state = self_gain * node.state + node.bias
        for conn in node.incoming:
            state += self._nodes_by_id[conn.from_id].activation * conn.weight * self._gain(conn)
        node.state      = state
        node.activation = node.squash_value(state) * node.mask
        node.derivative = node.squash_derivative(state)

        # How much this node, as a gater, influences the state of each gated node
        influences: dict[int, float] = {}
        for conn in node.gated:
            target = self._nodes_by_id[conn.to_id]
            value  = conn.weight * self._nodes_by_id[conn.from_id].activation
            if target.id in influences:
                influences[target.id] += value
            else:
                influences[target.id] = value + (target.old if target.self_connection.gater_id == node.id else 0.0)

        # The self gain is re-read: this node may gate its own self-connection
        self_gain = self._gain(selfconn) * selfconn.weight
        for conn in node.incoming:
            conn.eligibility = self_gain * conn.eligibility + \
                               self._nodes_by_id[conn.from_id].activation * self._gain(conn)
            for target_id, influence in influences.items():
                contribution = node.derivative * conn.eligibility * influence
                if target_id in conn.xtrace:
                    target_self = self._nodes_by_id[target_id].self_connection
                    conn.xtrace[target_id] = self._gain(target_self) * target_self.weight * conn.xtrace[target_id] + contribution
                else:
                    conn.xtrace[target_id] = contribution

        return node.activation

    def no_trace_activate(self, input) -> list[float]:
        """
        Activate the network without keeping training traces.
        Numerically identical to 'activate(input, training=False)', but cheaper.
        """
        if len(input) != self.input_size:
            raise ConfigurationError(f"Expected {self.input_size} inputs, got {len(input)}")

        first_output = len(self.nodes) - self.output_size
        output = []
        for i, node in enumerate(self.nodes):
            if i < self.input_size:
                node.activation = float(input[i])
                continue

            selfconn = node.self_connection
            state = self._gain(selfconn) * selfconn.weight * node.state + node.bias
            for conn in node.incoming:
                state += self._nodes_by_id[conn.from_id].activation * conn.weight * self._gain(conn)
            node.state      = state
            node.activation = node.squash_value(state) * node.mask

            if i >= first_output:
                output.append(node.activation)
        return output

    def propagate(self, rate: float, momentum: float, update: bool, target):
        """
        Apply the local real-time gradient rule after an 'activate' call.

        Output nodes receive the error 'target - activation'; other nodes
        collect the responsibility of everything they feed or gate. Weight and
        bias changes accumulate and are only applied when 'update' is True,
        which allows mini-batch training.

        Parameters:
            rate:     Learning rate
            momentum: Fraction of the previous change added to the current one
            update:   Whether to apply the accumulated changes
            target:   Target vector (length 'output_size')
        """
        if len(target) != self.output_size:
            raise ConfigurationError(f"Expected {self.output_size} targets, got {len(target)}")

        n            = len(self.nodes)
        first_output = n - self.output_size
        for i in range(n - 1, first_output - 1, -1):
            self._propagate_node(self.nodes[i], rate, momentum, update, float(target[i - first_output]))
        for i in range(first_output - 1, self.input_size - 1, -1):
            self._propagate_node(self.nodes[i], rate, momentum, update)

    def _propagate_node(self, node: Node, rate, momentum, update, target=None):
        if target is not None:
            node.error_responsibility = node.error_projected = target - node.activation
        else:
            error = 0.0
            for conn in node.outgoing:
                to = self._nodes_by_id[conn.to_id]
                error += to.error_responsibility * conn.weight * self._gain(conn)
            node.error_projected = node.derivative * error

            error = 0.0
            for conn in node.gated:
                to = self._nodes_by_id[conn.to_id]
                influence  = to.old if to.self_connection.gater_id == node.id else 0.0
                influence += conn.weight * self._nodes_by_id[conn.from_id].activation
                error += to.error_responsibility * influence
            node.error_gated = node.derivative * error

            node.error_responsibility = node.error_projected + node.error_gated

        if node.type == NodeType.CONSTANT:
            return

        for conn in node.incoming:
            gradient = node.error_projected * conn.eligibility
            for target_id, value in conn.xtrace.items():
                gradient += self._nodes_by_id[target_id].error_responsibility * value

            conn.total_delta_weight += rate * gradient * node.mask
            if update:
                conn.total_delta_weight   += momentum * conn.previous_delta_weight
                conn.weight               += conn.total_delta_weight
                conn.previous_delta_weight = conn.total_delta_weight
                conn.total_delta_weight    = 0.0

        node.total_delta_bias += rate * node.error_responsibility
        if update:
            node.total_delta_bias   += momentum * node.previous_delta_bias
            node.bias               += node.total_delta_bias
            node.previous_delta_bias = node.total_delta_bias
            node.total_delta_bias    = 0.0

    def clear(self):
        """Reset activations, states and traces of every node (parameters are kept)."""
        for node in self.nodes:
            node.clear()

    # ------------------------------------------------------------------
    # Structural editing
    # ------------------------------------------------------------------

    def connect(self, from_node: Node, to, weight: float | None = None) -> list[Connection]:
        """
        Connect a node to another node, or to each node of a group.

        Parameters:
            from_node: Source node
            to:        Target node, or a list/tuple of target nodes
            weight:    Connection weight. If None, ordinary connections get a
                       weight drawn from U(-0.1, 0.1) and self-connections get 1

        Returns:
            The created connections
        """
        targets = list(to) if isinstance(to, (list, tuple)) else [to]

        self._check_member(from_node)
        for target in targets:
            self._check_member(target)
            if from_node.is_projecting_to(target.id):
                raise StructuralViolation(f"Node {from_node.id} is already projecting a connection to node {target.id}")

        created = []
        for target in targets:
            if target is from_node:
                conn = from_node.self_connection
                conn.weight = 1.0 if weight is None else float(weight)
                from_node.self_connected = True
                self.selfconns.append(conn)
            else:
                conn = Connection(from_node.id, target.id, weight, self._rng)
                from_node.outgoing.append(conn)
                target.incoming.append(conn)
                self.connections.append(conn)
            created.append(conn)
        return created

    def disconnect(self, from_node: Node, to_node: Node):
        """
        Remove the connection from 'from_node' to 'to_node', ungating it first if gated.
        """
        self._check_member(from_node)
        self._check_member(to_node)

        if from_node is to_node:
            conn = from_node.self_connection
            if not from_node.has_self_connection():
                raise StructuralViolation(f"Node {from_node.id} has no self-connection")
            if conn.gater_id is not None:
                self.ungate(conn)
            self.selfconns.remove(conn)
            conn.weight = 0.0
            from_node.self_connected = False
            conn.clear_traces()
            return

        conn = from_node.connection_to(to_node.id)
        if conn is None:
            raise StructuralViolation(f"No connection from node {from_node.id} to node {to_node.id}")
        if conn.gater_id is not None:
            self.ungate(conn)
        self.connections.remove(conn)
        from_node.outgoing.remove(conn)
        to_node.incoming.remove(conn)

    def gate(self, node: Node, connection: Connection):
        """
        Let 'node' gate 'connection'. Gating an already gated connection is
        skipped (with a warning if warnings are enabled).
        """
        self._check_member(node)
        if not self._owns_connection(connection):
            raise StructuralViolation("This connection is not part of the network")
        if connection.gater_id is not None:
            self._warn("This connection is already gated")
            return

        connection.gater_id = node.id
        node.gated.append(connection)
        self.gates.append(connection)

    def ungate(self, connection: Connection):
        if not any(conn is connection for conn in self.gates):
            raise StructuralViolation("This connection is not gated")

        self.gates.remove(connection)
        self._nodes_by_id[connection.gater_id].gated.remove(connection)
        connection.gater_id = None

    def remove(self, node: Node, keep_gates: bool = True):
        """
        Remove a hidden (or constant) node.

        The node's neighbours are bridged: every former source gets connected
        to every former target (unless already connected). If 'keep_gates' is
        True, the gates of the severed connections are moved at random onto
        the bridging connections.

        Parameters:
            node:       The node to remove
            keep_gates: Whether gates displaced by the removal are re-placed
        """
        self._check_member(node)
        if node.type in (NodeType.INPUT, NodeType.OUTPUT):
            raise StructuralViolation(f"Cannot remove {node.type.value} node {node.id}")

        if node.has_self_connection():
            self.disconnect(node, node)

        gaters = []
        sources = []
        for conn in reversed(list(node.incoming)):
            if keep_gates and conn.gater_id is not None and conn.gater_id != node.id:
                gaters.append(self._node(conn.gater_id))
            sources.append(self._node(conn.from_id))
            self.disconnect(sources[-1], node)

        targets = []
        for conn in reversed(list(node.outgoing)):
            if keep_gates and conn.gater_id is not None and conn.gater_id != node.id:
                gaters.append(self._node(conn.gater_id))
            targets.append(self._node(conn.to_id))
            self.disconnect(node, targets[-1])

        bridges = []
        for source in sources:
            for target in targets:
                if not source.is_projecting_to(target.id):
                    bridges.extend(self.connect(source, target))

        for gater in gaters:
            if not bridges:
                break
            self.gate(gater, bridges.pop(self._rng.randrange(len(bridges))))

        for conn in reversed(list(node.gated)):
            self.ungate(conn)

        self.nodes.remove(node)
        del self._nodes_by_id[node.id]

        for conn in self.connections + self.selfconns:
            conn.xtrace.pop(node.id, None)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _allowed_squashes(self, method: Mutation) -> list[str]:
        return list(method.allowed) if method.allowed else list(self._config.activation_options)

    def possible(self, method: Mutation) -> list | None:
        """
        List the candidates of a mutation operator.

        Parameters:
            method: The mutation operator

        Returns:
            The candidates (connections, nodes or node pairs, depending on
            the operator), or None if the operator cannot be applied
        """
        kind         = method.type
        n            = len(self.nodes)
        first_output = n - self.output_size
        index        = {node.id: i for i, node in enumerate(self.nodes)}

        def strands_nothing(conn):
            return (len(self._node(conn.from_id).outgoing) > 1 and
                    len(self._node(conn.to_id).incoming)   > 1)

        if kind == MutationType.ADD_NODE:
            candidates = list(self.connections)

        elif kind == MutationType.SUB_NODE:
            candidates = self.nodes[self.input_size:first_output]

        elif kind == MutationType.ADD_CONN:
            candidates = [(self.nodes[i], self.nodes[j])
                          for i in range(first_output)
                          for j in range(max(i + 1, self.input_size), n)
                          if not self.nodes[i].is_projecting_to(self.nodes[j].id)]

        elif kind == MutationType.SUB_CONN:
            candidates = [conn for conn in self.connections
                          if strands_nothing(conn) and index[conn.to_id] > index[conn.from_id]]

        elif kind == MutationType.ADD_BACK_CONN:
            candidates = [(self.nodes[i], self.nodes[j])
                          for i in range(self.input_size, n)
                          for j in range(self.input_size, i)
                          if not self.nodes[i].is_projecting_to(self.nodes[j].id)]

        elif kind == MutationType.SUB_BACK_CONN:
            candidates = [conn for conn in self.connections
                          if strands_nothing(conn) and index[conn.from_id] > index[conn.to_id]]

        elif kind == MutationType.MOD_WEIGHT:
            candidates = self.connections + self.selfconns

        elif kind == MutationType.MOD_BIAS:
            candidates = self.nodes[self.input_size:]

        elif kind == MutationType.MOD_ACTIVATION:
            allowed = self._allowed_squashes(method)
            end     = n if method.mutate_output else first_output
            candidates = [node for node in self.nodes[self.input_size:end]
                          if any(squash != node.squash for squash in allowed)]

        elif kind == MutationType.ADD_SELF_CONN:
            candidates = [node for node in self.nodes[self.input_size:] if not node.has_self_connection()]

        elif kind == MutationType.SUB_SELF_CONN:
            candidates = list(self.selfconns)

        elif kind == MutationType.ADD_GATE:
            candidates = [conn for conn in self.connections + self.selfconns if conn.gater_id is None]

        elif kind == MutationType.SUB_GATE:
            candidates = list(self.gates)

        elif kind == MutationType.SWAP_NODES:
            end        = n if method.mutate_output else first_output
            candidates = self.nodes[self.input_size:end]
            if len(candidates) < 2:
                candidates = []

        else:
            raise ValueError(f"Unknown mutation operator {method!r}")

        return candidates if candidates else None

    def mutate(self, method: Mutation) -> bool:
        """
        Apply a mutation operator to a candidate drawn uniformly at random.

        Parameters:
            method: The mutation operator

        Returns:
            True if the network was mutated, False if the operator had no
            candidate (reported as an InfeasibleMutationWarning when warnings
            are enabled)
        """
        candidates = self.possible(method)
        if candidates is None:
            self._warn(f"Mutation {method.name} is not possible on this network")
            return False

        self._mutators[method.type](self, method, candidates)
        return True

    def _mutate_add_node(self, method, candidates):
        conn   = self._rng.choice(candidates)
        gater  = self._node(conn.gater_id) if conn.gater_id is not None else None
        source = self._node(conn.from_id)
        target = self._node(conn.to_id)
        self.disconnect(source, target)

        squash = self._config.activation_initial
        if method.random_activation:
            squash = self._rng.choice(self._allowed_squashes(method))
        node = Node(self._new_node_id(), NodeType.HIDDEN, squash=squash, rng=self._rng)

        position = min(self.nodes.index(target), len(self.nodes) - self.output_size)
        self._insert_node(max(position, self.input_size), node)

        first  = self.connect(source, node)[0]
        second = self.connect(node, target)[0]
        if gater is not None:
            self.gate(gater, first if self._rng.random() < 0.5 else second)

    def _mutate_sub_node(self, method, candidates):
        self.remove(self._rng.choice(candidates), keep_gates=method.keep_gates)

    def _mutate_add_conn(self, method, candidates):
        source, target = self._rng.choice(candidates)
        self.connect(source, target)

    def _mutate_sub_conn(self, method, candidates):
        conn = self._rng.choice(candidates)
        self.disconnect(self._node(conn.from_id), self._node(conn.to_id))

    def _mutate_mod_weight(self, method, candidates):
        self._rng.choice(candidates).weight += self._rng.uniform(method.min, method.max)

    def _mutate_mod_bias(self, method, candidates):
        self._rng.choice(candidates).bias += self._rng.uniform(method.min, method.max)

    def _mutate_mod_activation(self, method, candidates):
        node = self._rng.choice(candidates)
        node.squash = self._rng.choice([squash for squash in self._allowed_squashes(method) if squash != node.squash])

    def _mutate_add_self_conn(self, method, candidates):
        node = self._rng.choice(candidates)
        self.connect(node, node)

    def _mutate_add_gate(self, method, candidates):
        conn  = self._rng.choice(candidates)
        gater = self._rng.choice(self.nodes[self.input_size:])
        self.gate(gater, conn)

    def _mutate_sub_gate(self, method, candidates):
        self.ungate(self._rng.choice(candidates))

    def _mutate_swap_nodes(self, method, candidates):
        node1, node2 = self._rng.sample(candidates, 2)
        node1.bias,   node2.bias   = node2.bias,   node1.bias
        node1.squash, node2.squash = node2.squash, node1.squash

    _mutators = {
        MutationType.ADD_NODE      : _mutate_add_node,
        MutationType.SUB_NODE      : _mutate_sub_node,
        MutationType.ADD_CONN      : _mutate_add_conn,
        MutationType.SUB_CONN      : _mutate_sub_conn,
        MutationType.MOD_WEIGHT    : _mutate_mod_weight,
        MutationType.MOD_BIAS      : _mutate_mod_bias,
        MutationType.MOD_ACTIVATION: _mutate_mod_activation,
        MutationType.ADD_SELF_CONN : _mutate_add_self_conn,
        MutationType.SUB_SELF_CONN : _mutate_sub_conn,
        MutationType.ADD_GATE      : _mutate_add_gate,
        MutationType.SUB_GATE      : _mutate_sub_gate,
        MutationType.ADD_BACK_CONN : _mutate_add_conn,
        MutationType.SUB_BACK_CONN : _mutate_sub_conn,
        MutationType.SWAP_NODES    : _mutate_swap_nodes
        }

    # ------------------------------------------------------------------
    # Supervised training and evaluation
    # ------------------------------------------------------------------

    def _check_dataset(self, dataset):
        if len(dataset) == 0:
            raise ConfigurationError("The dataset is empty")
        for sample_input, sample_target in dataset:
            if len(sample_input) != self.input_size or len(sample_target) != self.output_size:
                raise ConfigurationError("Dataset input/output size should be same as network input/output size")

    def _apply_dropout_scaling(self):
        """Replace the hidden nodes' dropout masks by their expected value."""
        if self.dropout:
            for node in self.nodes:
                if node.type in (NodeType.HIDDEN, NodeType.CONSTANT):
                    node.mask = 1 - self.dropout

    def test(self, dataset, cost="MSE") -> dict:
        """
        Evaluate the network on a dataset without training it.

        Parameters:
            dataset: Sequence of (input, target) pairs
            cost:    Cost function, by name or as a callable (target, output) -> float

        Returns:
            {"error": mean cost over the dataset, "time": elapsed seconds}
        """
        self._check_dataset(dataset)
        cost  = get_cost(cost)
        start = time.perf_counter()

        self._apply_dropout_scaling()

        error = 0.0
        for sample_input, sample_target in dataset:
            output = self.no_trace_activate(sample_input)
            error += cost(sample_target, output)

        return {"error": error / len(dataset), "time": time.perf_counter() - start}

    def train(self,
              dataset,
              iterations    : int   | None = 1000,
              error         : float | None = 0.05,
              cost                         = "MSE",
              rate          : float        = 0.3,
              rate_policy                  = FIXED,
              dropout       : float        = 0.0,
              momentum      : float        = 0.0,
              batch_size    : int          = 1,
              cross_validate: dict  | None = None,
              clear         : bool         = False,
              shuffle       : bool         = False,
              log           : int          = 0,
              schedule      : dict  | None = None) -> dict:
        """
        Train the network on a dataset with the local gradient rule.

        Training stops when the error drops to 'error' or after 'iterations'
        passes over the dataset. Pass 'error=None' to always run 'iterations'
        passes, or 'iterations=None' to run until the error target is met.

        Parameters:
            dataset:        Sequence of (input, target) pairs
            iterations:     Maximum number of passes over the dataset
            error:          Target error
            cost:           Cost function, by name or as a callable
            rate:           Base learning rate
            rate_policy:    Callable (base_rate, iteration) -> rate (see 'rate.py')
            dropout:        Dropout rate of hidden nodes during training
            momentum:       Momentum of the weight updates
            batch_size:     Number of samples between weight updates
            cross_validate: {"test_size": fraction held out, "test_error": target
                            error on the held-out part}. Training stops when the
                            held-out error reaches the target.
            clear:          Reset recurrent state after every pass
            shuffle:        Shuffle the dataset after every pass
            log:            Print progress every 'log' iterations (0 = silent)
            schedule:       {"iterations": n, "function": f}; f({"error", "iteration"})
                            is called every n iterations

        Returns:
            {"error": final error, "iterations": passes done, "time": elapsed seconds}
        """
        self._check_dataset(dataset)
        if batch_size > len(dataset):
            raise ConfigurationError("Batch size must be smaller or equal to dataset length")
        if iterations is None and error is None:
            raise ConfigurationError("At least one of 'iterations' and 'error' must be given")

        cost         = get_cost(cost)
        target_error = -1.0 if error is None else error
        start        = time.perf_counter()

        self.dropout = dropout

        dataset = list(dataset)
        if cross_validate:
            num_train = math.ceil((1 - cross_validate["test_size"]) * len(dataset))
            train_set = dataset[:num_train]
            test_set  = dataset[num_train:]

        current_error = 1.0
        iteration     = 0
        while current_error > target_error and (iterations is None or iteration < iterations):
            if cross_validate and current_error <= cross_validate["test_error"]:
                break

            iteration += 1
            current_rate = rate_policy(rate, iteration)

            if cross_validate:
                self._train_set(train_set, batch_size, current_rate, momentum, cost)
                if clear:
                    self.clear()
                current_error = self.test(test_set, cost)["error"]
            else:
                current_error = self._train_set(dataset, batch_size, current_rate, momentum, cost)
            if clear:
                self.clear()

            if shuffle:
                self._rng.shuffle(dataset)

            if log and iteration % log == 0:
                print(f"iteration {iteration:>6} | error {current_error:.6f} | rate {current_rate:.6f}")

            if schedule and iteration % schedule["iterations"] == 0:
                schedule["function"]({"error": current_error, "iteration": iteration})

        if clear:
            self.clear()
        self._apply_dropout_scaling()

        return {"error"     : current_error,
                "iterations": iteration,
                "time"      : time.perf_counter() - start}

    def _train_set(self, dataset, batch_size, current_rate, momentum, cost) -> float:
        """One pass over the dataset. Returns the mean cost."""
        error_sum = 0.0
        for i, (sample_input, sample_target) in enumerate(dataset):
            update = (i + 1) % batch_size == 0 or i + 1 == len(dataset)
            output = self.activate(sample_input, training=True)
            self.propagate(current_rate, momentum, update, sample_target)
            error_sum += cost(sample_target, output)
        return error_sum / len(dataset)

    def evolve(self,
               dataset,
               iterations: int   | None = None,
               error     : float | None = None,
               fitness                  = None,
               log       : int          = 0,
               schedule  : dict  | None = None,
               **options) -> dict:
        """
        Improve this network by neuro-evolution.

        A population seeded with copies of this network is evolved until the
        error reaches 'error' or 'iterations' generations have passed; this
        network then takes over the structure and parameters of the best genome.
        If neither limit is given, the defaults are error 0.05 and 1000 generations.

        Parameters:
            dataset:    Sequence of (input, target) pairs
            iterations: Maximum number of generations
            error:      Target error
            fitness:    Fitness function (dataset, genome) -> score.
                        Defaults to minus the mean cost with a growth penalty
            log:        Print progress every 'log' generations (0 = silent)
            schedule:   {"iterations": n, "function": f}; f({"fitness", "error", "iteration"})
                        is called every n generations
            options:    Overrides of configuration attributes (e.g. population_size=100,
                        mutation_options="ALL")

        Returns:
            {"error": final error, "iterations": generations done, "time": elapsed seconds}
        """
        # Import here to avoid circular import
        from neatflow.pool.neat import Neat

        self._check_dataset(dataset)
        if iterations is None and error is None:
            iterations, error = 1000, 0.05

        config = copy.copy(self._config)
        for key, value in options.items():
            if not hasattr(config, key):
                raise ConfigurationError(f"Unknown configuration option '{key}'")
            setattr(config, key, value)

        target_error = -1.0 if error is None else error
        start        = time.perf_counter()

        neat = Neat(self.input_size,
                    self.output_size,
                    dataset  = dataset,
                    config   = config,
                    fitness  = fitness,
                    template = self,
                    rng      = self._rng)

        current_error = math.inf
        best_fitness  = -math.inf
        best_genome   = None
        while current_error > target_error and (iterations is None or neat.generation < iterations):
            fittest = neat.evolve()
            current_error = -(fittest.score + fittest.complexity() * config.growth)

            if fittest.score > best_fitness:
                best_fitness = fittest.score
                best_genome  = fittest

            if log and neat.generation % log == 0:
                print(f"iteration {neat.generation:>6} | fitness {fittest.score:.6f} | error {current_error:.6f}")

            if schedule and neat.generation % schedule["iterations"] == 0:
                schedule["function"]({"fitness"  : fittest.score,
                                      "error"    : current_error,
                                      "iteration": neat.generation})

        if best_genome is not None:
            self._adopt(best_genome)
            if config.clear:
                self.clear()

        return {"error"     : current_error,
                "iterations": neat.generation,
                "time"      : time.perf_counter() - start}

    def _adopt(self, other: "Network"):
        """Take over the nodes and connections of another network."""
        self.nodes        = other.nodes
        self._nodes_by_id = other._nodes_by_id
        self.connections  = other.connections
        self.selfconns    = other.selfconns
        self.gates        = other.gates
        self._next_id     = other._next_id

    def set(self, bias: float | None = None, squash: str | None = None):
        """Assign a bias and/or a squash function to every node."""
        if squash is not None and squash not in activations:
            raise InvalidArgument(f"Unknown activation function '{squash}'")
        for node in self.nodes:
            if bias is not None:
                node.bias = float(bias)
            if squash is not None:
                node.squash = squash

    def clone(self) -> "Network":
        """Structural copy of this network (runtime state is not copied, score is unset)."""
        return Network.from_json(self.to_json(), self._config, self._rng)

    # ------------------------------------------------------------------
    # Structural and flattened forms
    # ------------------------------------------------------------------

    def to_json(self) -> dict:
        """
        Structural form of the network (plain dicts and lists).
        Self-connections are listed with the other connections, with 'from' == 'to'.
        """
        index = {node.id: i for i, node in enumerate(self.nodes)}

        def gater_index(conn):
            return index[conn.gater_id] if conn.gater_id is not None else None

        data = {"input_size" : self.input_size,
                "output_size": self.output_size,
                "dropout"    : self.dropout,
                "nodes"      : [],
                "connections": []}

        for i, node in enumerate(self.nodes):
            node_data = node.to_json()
            node_data["index"] = i
            data["nodes"].append(node_data)

            if node.has_self_connection():
                data["connections"].append({"from"  : i,
                                            "to"    : i,
                                            "weight": node.self_connection.weight,
                                            "gater" : gater_index(node.self_connection)})

        for conn in self.connections:
            data["connections"].append({"from"  : index[conn.from_id],
                                        "to"    : index[conn.to_id],
                                        "weight": conn.weight,
                                        "gater" : gater_index(conn)})
        return data

    @classmethod
    def from_json(cls,
                  data  : dict,
                  config: Config        | None = None,
                  rng   : random.Random | None = None) -> "Network":
        """Rebuild a network from its structural form (see 'to_json')."""
        network = cls._blank(data["input_size"], data["output_size"], config, rng)
        network.dropout = data.get("dropout", 0.0)

        for node_data in data["nodes"]:
            node = Node(network._new_node_id(),
                        NodeType(node_data["type"]),
                        bias   = node_data["bias"],
                        squash = node_data["squash"])
            node.mask = node_data.get("mask", 1.0)
            network._append_node(node)
        network._check_partition()

        for conn_data in data["connections"]:
            source = network.nodes[conn_data["from"]]
            target = network.nodes[conn_data["to"]]
            conn   = network.connect(source, target, conn_data["weight"])[0]
            if conn_data["gater"] is not None:
                network.gate(network.nodes[conn_data["gater"]], conn)

        return network

    def serialize(self) -> tuple[list[float], list[float], list[float]]:
        """
        Flattened numeric form of the network.

        Returns:
            (activations, states, conns), where 'conns' is
            [input_size, output_size, then for every non-input node:
             index, bias, squash code, self weight, self gater index (-1 if none),
             one (from index, weight, gater index or -1) triple per incoming connection,
             -2]
            The squash code is the position of the squash in 'squash_names'.
        """
        index = {node.id: i for i, node in enumerate(self.nodes)}

        def gater_index(conn):
            return index[conn.gater_id] if conn.gater_id is not None else -1

        activations_ = [node.activation for node in self.nodes]
        states       = [node.state      for node in self.nodes]
        conns        = [self.input_size, self.output_size]

        for i, node in enumerate(self.nodes[self.input_size:], start=self.input_size):
            conns += [i,
                      node.bias,
                      squash_names.index(node.squash),
                      node.self_connection.weight,
                      gater_index(node.self_connection)]
            for conn in node.incoming:
                conns += [index[conn.from_id], conn.weight, gater_index(conn)]
            conns.append(-2)

        return activations_, states, conns

    @classmethod
    def deserialize(cls,
                    activations_,
                    states,
                    conns,
                    config: Config        | None = None,
                    rng   : random.Random | None = None) -> "Network":
        """
        Rebuild a network from its flattened numeric form (see 'serialize').
        Activations and states are restored, so recurrent context is preserved.
        """
        input_size  = int(conns[0])
        output_size = int(conns[1])
        total       = len(activations_)

        network = cls._blank(input_size, output_size, config, rng)
        for i in range(total):
            if i < input_size:
                node_type = NodeType.INPUT
            elif i >= total - output_size:
                node_type = NodeType.OUTPUT
            else:
                node_type = NodeType.HIDDEN
            node = Node(network._new_node_id(), node_type, bias=0.0)
            node.activation = float(activations_[i])
            node.state      = float(states[i])
            network._append_node(node)

        position = 2
        while position < len(conns):
            node = network.nodes[int(conns[position])]
            node.bias   = float(conns[position + 1])
            node.squash = squash_names[int(conns[position + 2])]
            self_weight = float(conns[position + 3])
            self_gater  = int(conns[position + 4])
            position += 5

            if self_weight != 0:
                selfconn = network.connect(node, node, self_weight)[0]
                if self_gater != -1:
                    network.gate(network.nodes[self_gater], selfconn)

            while conns[position] != -2:
                source = network.nodes[int(conns[position])]
                conn   = network.connect(source, node, float(conns[position + 1]))[0]
                gater  = int(conns[position + 2])
                if gater != -1:
                    network.gate(network.nodes[gater], conn)
                position += 3
            position += 1

        return network

    # ------------------------------------------------------------------
    # Recombination
    # ------------------------------------------------------------------

    @staticmethod
    def cross_over(network1: "Network",
                   network2: "Network",
                   equal   : bool                 = False,
                   rng     : random.Random | None = None) -> "Network":
        """
        Create an offspring from two parent networks.

        Connection genes are aligned by the innovation id of their
        (from index, to index) pair. Genes present in both parents are taken
        from either parent at random; the others are inherited from the
        fitter parent only, or from both if 'equal' is True.

        Parameters:
            network1: First parent
            network2: Second parent
            equal:    Treat both parents as equally fit
            rng:      Random source (defaults to the first parent's)

        Returns:
            The offspring network
        """
        if network1.input_size != network2.input_size or network1.output_size != network2.output_size:
            raise ConfigurationError("Networks don't have the same input/output size")

        rng = rng if rng is not None else network1.rng
        offspring = Network._blank(network1.input_size, network1.output_size, network1.config, rng)
        offspring.dropout = network1.dropout

        score1 = network1.score if network1.score is not None else 0.0
        score2 = network2.score if network2.score is not None else 0.0
        len1   = len(network1.nodes)
        len2   = len(network2.nodes)

        if equal or score1 == score2:
            size = rng.randint(min(len1, len2), max(len1, len2))
        elif score1 > score2:
            size = len1
        else:
            size = len2

        output_size = network1.output_size
        for i in range(size):
            if i < size - output_size:
                chosen, fallback = (network1, network2) if rng.random() >= 0.5 else (network2, network1)
                node = chosen.nodes[i] if i < len(chosen.nodes) else None
                if node is None or node.type == NodeType.OUTPUT:
                    node = fallback.nodes[i]
            else:
                if rng.random() >= 0.5:
                    node = network1.nodes[len1 + i - size]
                else:
                    node = network2.nodes[len2 + i - size]

            offspring._append_node(Node(offspring._new_node_id(), node.type, bias=node.bias, squash=node.squash))

        genes1 = Network._connection_genes(network1)
        genes2 = Network._connection_genes(network2)

        inherited = []
        for key in reversed(list(genes1)):
            if key in genes2:
                inherited.append(genes1[key] if rng.random() >= 0.5 else genes2[key])
                del genes2[key]
            elif score1 >= score2 or equal:
                inherited.append(genes1[key])
        if score2 >= score1 or equal:
            inherited.extend(genes2[key] for key in reversed(list(genes2)))

        for gene in inherited:
            if gene["from"] < size and gene["to"] < size:
                source = offspring.nodes[gene["from"]]
                target = offspring.nodes[gene["to"]]
                conn   = offspring.connect(source, target, gene["weight"])[0]
                if gene["gater"] != -1 and gene["gater"] < size:
                    offspring.gate(offspring.nodes[gene["gater"]], conn)

        return offspring

    @staticmethod
    def _connection_genes(network: "Network") -> dict[int, dict]:
        """Connection genes (ordinary and self) keyed by innovation id."""
        index = {node.id: i for i, node in enumerate(network.nodes)}
        genes = {}
        for conn in network.connections + network.selfconns:
            gene = {"weight": conn.weight,
                    "from"  : index[conn.from_id],
                    "to"    : index[conn.to_id],
                    "gater" : index[conn.gater_id] if conn.gater_id is not None else -1}
            genes[Connection.innovation_id(gene["from"], gene["to"])] = gene
        return genes

    @staticmethod
    def merge(network1: "Network", network2: "Network") -> "Network":
        """
        Compose two networks in series: the outputs of 'network1' feed the
        connections that left the inputs of 'network2'.

        Input node k of 'network2' is replaced by node len(network1.nodes) - 1 - k
        of 'network1' (its output nodes, in mirrored order); the former output
        nodes of 'network1' become hidden. Neither argument is modified.

        Returns:
            A new network with network1's inputs and network2's outputs
        """
        if network1.output_size != network2.input_size:
            raise ConfigurationError("Output size of network1 should be the same as the input size of network2")

        data1 = network1.to_json()
        data2 = network2.to_json()
        len1  = len(data1["nodes"])
        in2   = network2.input_size

        def mapped(i):
            return len1 - 1 - i if i < in2 else len1 + i - in2

        nodes = data1["nodes"]
        for node_data in nodes[len1 - network1.output_size:]:
            node_data["type"] = NodeType.HIDDEN.value
        nodes += data2["nodes"][in2:]

        connections = data1["connections"]
        for conn_data in data2["connections"]:
            if conn_data["from"] == conn_data["to"] and conn_data["from"] < in2:
                continue
            connections.append({"from"  : mapped(conn_data["from"]),
                                "to"    : mapped(conn_data["to"]),
                                "weight": conn_data["weight"],
                                "gater" : mapped(conn_data["gater"]) if conn_data["gater"] is not None else None})

        merged = {"input_size" : network1.input_size,
                  "output_size": network2.output_size,
                  "dropout"    : network1.dropout,
                  "nodes"      : nodes,
                  "connections": connections}
        return Network.from_json(merged, network1.config, network1.rng)

    def __str__(self):
        s  = f"Network: {self.input_size} inputs, {self.output_size} outputs, "
        s += f"{len(self.nodes)} nodes, {len(self.connections)} connections, "
        s += f"{len(self.selfconns)} self-connections, {len(self.gates)} gates\n"
        for node in self.nodes:
            s += f"  {node}\n"
        for conn in self.connections + self.selfconns:
            s += f"  {conn}\n"
        return s
