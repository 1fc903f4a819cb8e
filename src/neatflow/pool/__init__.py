"""
Pool Package

This package implements the population manager that evolves a population
of Network genomes generation by generation.

Modules:
    neat: Neat population manager, GenerationSummary and the default fitness function
"""

from neatflow.pool.neat import GenerationSummary, Neat, default_fitness

__all__ = ['GenerationSummary',
           'Neat',
           'default_fitness']
