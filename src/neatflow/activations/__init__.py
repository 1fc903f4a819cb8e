"""
Activations Package

This package provides the squash (activation) functions used by network nodes.
Functions are selected by name; the network never stores function objects.

Exported:
    activations:      Dictionary mapping squash names to functions
    derivatives:      Dictionary mapping squash names to their derivatives
    activation_codes: Dictionary mapping squash names to 3-letter codes
    squash_names:     Squash names in registry order (flattened-form codes)
"""

from neatflow.activations.basic_activations import (
    activations,
    derivatives,
    activation_codes,
    squash_names
)

__all__ = [
    'activations',
    'derivatives',
    'activation_codes',
    'squash_names'
]
