"""
neatflow - Neuro-evolution of gated, recurrent networks.

This package evolves variable-topology neural networks with a NEAT-style
genetic algorithm: networks are grown and pruned by structural mutations,
recombined by innovation-aligned crossover and selected by fitness. Networks
may contain gated and recurrent connections, and can also be trained in
isolation with a local real-time gradient rule.

Main components:
- genotype: The genome (nodes, connections, networks)
- pool: The population manager driving the generational loop
- methods: Mutation operators, selection strategies, cost functions, learning-rate policies
- run: Configuration and trial drivers
- activations: Activation (squash) functions

Example:
    >>> import random
    >>> from neatflow import Network
    >>> xor = [([0, 0], [0]), ([0, 1], [1]), ([1, 0], [1]), ([1, 1], [0])]
    >>> network = Network(2, 1, rng=random.Random(42))
    >>> result = network.evolve(xor, iterations=100, error=0.03)
"""

__version__ = "0.1.0"

# Import main classes for convenient access
from neatflow.run.config      import Config
from neatflow.run.trial       import Trial
from neatflow.run.trial_grad  import TrialGrad
from neatflow.genotype        import Connection, Network, Node, NodeType
from neatflow.pool            import GenerationSummary, Neat
from neatflow.methods         import mutation, selection, cost, rate
from neatflow.errors          import (ConfigurationError,
                                      InfeasibleMutationWarning,
                                      InvalidArgument,
                                      InvalidCallback,
                                      StructuralViolation)

__all__ = [
    "Config",
    "Trial",
    "TrialGrad",
    "Connection",
    "Network",
    "Node",
    "NodeType",
    "GenerationSummary",
    "Neat",
    "mutation",
    "selection",
    "cost",
    "rate",
    "ConfigurationError",
    "InfeasibleMutationWarning",
    "InvalidArgument",
    "InvalidCallback",
    "StructuralViolation",
]
