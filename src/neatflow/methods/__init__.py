"""
Methods Package

Pluggable methods used by networks and by the population manager.

Modules:
    mutation:  Mutation operators (Mutation, MutationType) and the FFW / ALL presets
    selection: Parent selection strategies (Power, FitnessProportionate, Tournament)
    cost:      Cost functions selected by name (MSE, MAE, CROSS_ENTROPY, ...)
    rate:      Learning-rate policies for supervised training
"""

from neatflow.methods import cost, mutation, rate, selection
from neatflow.methods.mutation  import Mutation, MutationType
from neatflow.methods.selection import Power, FitnessProportionate, Tournament

__all__ = ['cost',
           'mutation',
           'rate',
           'selection',
           'Mutation',
           'MutationType',
           'Power',
           'FitnessProportionate',
           'Tournament']
