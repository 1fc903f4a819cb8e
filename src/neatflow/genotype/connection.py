"""
Connection Module

This module implements the Connection class, the weighted (and optionally
gated) edge between two nodes of a Network.

Connections do not hold references to nodes. The source, target and gater
are stored as node ids, which the owning Network resolves. This keeps the
node/connection graph free of ownership cycles.

Classes:
    Connection: A weighted, optionally gated edge between two nodes
"""

import random

class Connection:
    """
    A weighted edge between two nodes of the same Network.

    A connection whose source and target coincide is a self-connection:
    it feeds a node's previous state back into it. If the connection is
    gated, its signal is multiplied by the gater node's activation (its gain).

    Public Attributes:
        from_id:               Id of the source node
        to_id:                 Id of the target node
        gater_id:              Id of the gating node, or None if not gated
        weight:                Connection weight
        eligibility:           Eligibility trace (local gradient rule)
        xtrace:                Extended eligibility traces, keyed by the id of
                               each node whose state this connection influences
                               through a gate
        total_delta_weight:    Weight change accumulated since the last update
        previous_delta_weight: Weight change applied at the last update (momentum)

    Public Methods:
        innovation_id(a, b): Cantor pairing of two node indices
    """

    def __init__(self,
                 from_id: int,
                 to_id  : int,
                 weight : float         | None = None,
                 rng    : random.Random | None = None):
        """
        Initialize a connection.

        Parameters:
            from_id: Id of the source node
            to_id:   Id of the target node
            weight:  Connection weight, drawn uniformly from [-0.1, 0.1] if None
            rng:     Random source used when the weight has to be drawn
        """
        if weight is None:
            weight = (rng or random).uniform(-0.1, 0.1)

        self.from_id              : int              = from_id
        self.to_id                : int              = to_id
        self.gater_id             : int | None       = None
        self.weight               : float            = float(weight)
        self.eligibility          : float            = 0.0
        self.xtrace               : dict[int, float] = {}
        self.total_delta_weight   : float            = 0.0
        self.previous_delta_weight: float            = 0.0

    @property
    def is_self(self) -> bool:
        return self.from_id == self.to_id

    @staticmethod
    def innovation_id(a: int, b: int) -> int:
        """
        Cantor pairing function of two node indices.

        The pairing is a bijection of ordered pairs, so (a, b) and (b, a)
        get different ids when a != b.
        """
        return (a + b) * (a + b + 1) // 2 + b

    def clear_traces(self):
        self.eligibility = 0.0
        self.xtrace      = {}

    def __str__(self):
        gater = f" gated by {self.gater_id}" if self.gater_id is not None else ""
        return f"[{self.from_id}->{self.to_id}] w={self.weight:+.4f}{gater}"

    def __repr__(self):
        return f"Connection({self.from_id}, {self.to_id}, weight={self.weight!r})"
