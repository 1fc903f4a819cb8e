"""
Learning-rate policies for Network.train().

A policy is a callable: (base_rate, iteration) -> rate.
"""

import math

def fixed():
    def policy(base_rate: float, iteration: int) -> float:
        return base_rate
    return policy

def step(gamma: float = 0.9, step_size: int = 100):
    def policy(base_rate: float, iteration: int) -> float:
        return base_rate * gamma ** math.floor(iteration / step_size)
    return policy

def exp(gamma: float = 0.999):
    def policy(base_rate: float, iteration: int) -> float:
        return base_rate * gamma ** iteration
    return policy

def inv(gamma: float = 0.001, power: float = 2.0):
    def policy(base_rate: float, iteration: int) -> float:
        return base_rate * (1 + gamma * iteration) ** -power
    return policy

FIXED = fixed()
