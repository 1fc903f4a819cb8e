"""
Genotype Package

This package implements the genome: a variable-topology network of nodes
and (optionally gated, optionally recurrent) connections.

Modules:
    node:       NodeType enumeration and Node class
    connection: Connection class
    network:    Network class (activation, local training, mutation, crossover, serialization)

Exported Classes:
    NodeType:   Enumeration for node types (INPUT, HIDDEN, OUTPUT, CONSTANT)
    Node:       A computational unit
    Connection: A weighted, optionally gated edge between two nodes
    Network:    A complete genome
"""

from neatflow.genotype.connection import Connection
from neatflow.genotype.network    import Network
from neatflow.genotype.node       import NodeType, Node

__all__ = ['Connection',
           'Network',
           'Node',
           'NodeType']
