"""
Errors and warnings raised by neatflow.

Classes:
    InvalidArgument:           A constructor received unusable arguments
    StructuralViolation:       A graph edit would break the network's structure
    ConfigurationError:        Sizes or settings that do not fit together
    InvalidCallback:           A user supplied callback returned the wrong thing
    InfeasibleMutationWarning: A mutation (or cap-limited operation) was skipped
"""

class InvalidArgument(ValueError):
    """Raised when a network is constructed with missing or non-positive sizes."""

class StructuralViolation(ValueError):
    """
    Raised when a structural edit cannot be carried out without breaking
    the network graph: duplicate connections, missing connections on
    disconnect/ungate, or nodes which are not part of the network.
    """

class ConfigurationError(ValueError):
    """
    Raised when sizes or settings are incompatible (dataset vs network,
    parent vs parent, elitism + provenance vs population size).
    Always raised before any state has been modified.
    """

class InvalidCallback(TypeError):
    """Raised when a filter, adjuster or evaluator callback misbehaves."""

class InfeasibleMutationWarning(UserWarning):
    """Issued when a requested mutation has no candidates or would exceed a cap."""
