"""
Parent Selection Module

Selection strategies used by the population manager to draw parents for
crossover. Each strategy is a frozen dataclass holding its own parameters;
the drawing itself is done by 'Neat.get_parent'.

Classes:
    Power:                Rank-biased draw: index = floor(random() ** power * popsize)
    FitnessProportionate: Roulette wheel over scores shifted by the population minimum
    Tournament:           Best-of-'size' with acceptance probability 'probability'
"""

from dataclasses import dataclass

@dataclass(frozen=True)
class Power:
    power: float = 4.0

    @property
    def name(self) -> str:
        return "POWER"

@dataclass(frozen=True)
class FitnessProportionate:

    @property
    def name(self) -> str:
        return "FITNESS_PROPORTIONATE"

@dataclass(frozen=True)
class Tournament:
    size       : int   = 5
    probability: float = 0.5

    @property
    def name(self) -> str:
        return "TOURNAMENT"

Selection = Power | FitnessProportionate | Tournament

POWER                 = Power()
FITNESS_PROPORTIONATE = FitnessProportionate()
TOURNAMENT            = Tournament()

def parse_selection(name: str,
                    power      : float = 4.0,
                    size       : int   = 5,
                    probability: float = 0.5) -> Selection:
    """
    Build a selection strategy from its name and parameters.

    Parameters:
        name:        "POWER", "FITNESS_PROPORTIONATE" or "TOURNAMENT"
        power:       exponent used by the power strategy
        size:        tournament size
        probability: probability of accepting the best remaining tournament entrant

    Returns:
        The selection strategy
    """
    key = name.strip().upper()
    if key == "POWER":
        return Power(power)
    if key == "FITNESS_PROPORTIONATE":
        return FitnessProportionate()
    if key == "TOURNAMENT":
        return Tournament(size, probability)
    raise ValueError(f"Invalid selection strategy '{name}'")
