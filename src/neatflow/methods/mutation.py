"""
Mutation Operators Module

This module defines the closed set of structural and parametric mutation
operators that can be applied to a Network. Each operator is a frozen
'Mutation' value: the 'type' selects the behaviour (see Network.mutate) and
the remaining fields hold operator-specific parameters. Customized operators
are derived with 'dataclasses.replace', e.g.:

    >>> from dataclasses import replace
    >>> strong_weights = replace(MOD_WEIGHT, min=-2.0, max=2.0)

Classes:
    MutationType: Enumeration of the available operators
    Mutation:     An operator together with its parameters

Presets:
    FFW: operators that keep a network feed-forward
    ALL: every operator, including recurrent and gating ones
"""

from dataclasses import dataclass
from enum        import Enum

class MutationType(Enum):
    ADD_NODE       = "ADD_NODE"
    SUB_NODE       = "SUB_NODE"
    ADD_CONN       = "ADD_CONN"
    SUB_CONN       = "SUB_CONN"
    MOD_WEIGHT     = "MOD_WEIGHT"
    MOD_BIAS       = "MOD_BIAS"
    MOD_ACTIVATION = "MOD_ACTIVATION"
    ADD_SELF_CONN  = "ADD_SELF_CONN"
    SUB_SELF_CONN  = "SUB_SELF_CONN"
    ADD_GATE       = "ADD_GATE"
    SUB_GATE       = "SUB_GATE"
    ADD_BACK_CONN  = "ADD_BACK_CONN"
    SUB_BACK_CONN  = "SUB_BACK_CONN"
    SWAP_NODES     = "SWAP_NODES"

@dataclass(frozen=True)
class Mutation:
    """
    A mutation operator and its parameters.

    Attributes:
        type:              Which operator this is
        min:               Lower bound of the additive perturbation (MOD_WEIGHT, MOD_BIAS)
        max:               Upper bound of the additive perturbation (MOD_WEIGHT, MOD_BIAS)
        mutate_output:     Whether output nodes are eligible (MOD_ACTIVATION, SWAP_NODES)
        keep_gates:        Whether gates displaced by a node removal are re-placed (SUB_NODE)
        random_activation: Whether a node added by ADD_NODE gets a random squash
        allowed:           Squash names MOD_ACTIVATION may pick from
                           (empty: use the network configuration's 'activation_options')
    """
    type             : MutationType
    min              : float           = -1.0
    max              : float           = 1.0
    mutate_output    : bool            = True
    keep_gates       : bool            = True
    random_activation: bool            = True
    allowed          : tuple[str, ...] = ()

    @property
    def name(self) -> str:
        return self.type.value

    def __str__(self):
        return self.name

ADD_NODE       = Mutation(MutationType.ADD_NODE)
SUB_NODE       = Mutation(MutationType.SUB_NODE)
ADD_CONN       = Mutation(MutationType.ADD_CONN)
SUB_CONN       = Mutation(MutationType.SUB_CONN)
MOD_WEIGHT     = Mutation(MutationType.MOD_WEIGHT)
MOD_BIAS       = Mutation(MutationType.MOD_BIAS)
MOD_ACTIVATION = Mutation(MutationType.MOD_ACTIVATION)
ADD_SELF_CONN  = Mutation(MutationType.ADD_SELF_CONN)
SUB_SELF_CONN  = Mutation(MutationType.SUB_SELF_CONN)
ADD_GATE       = Mutation(MutationType.ADD_GATE)
SUB_GATE       = Mutation(MutationType.SUB_GATE)
ADD_BACK_CONN  = Mutation(MutationType.ADD_BACK_CONN)
SUB_BACK_CONN  = Mutation(MutationType.SUB_BACK_CONN)
SWAP_NODES     = Mutation(MutationType.SWAP_NODES)

ALL = [ADD_NODE,
       SUB_NODE,
       ADD_CONN,
       SUB_CONN,
       MOD_WEIGHT,
       MOD_BIAS,
       MOD_ACTIVATION,
       ADD_GATE,
       SUB_GATE,
       ADD_SELF_CONN,
       SUB_SELF_CONN,
       ADD_BACK_CONN,
       SUB_BACK_CONN,
       SWAP_NODES]

FFW = [ADD_NODE,
       SUB_NODE,
       ADD_CONN,
       SUB_CONN,
       MOD_WEIGHT,
       MOD_BIAS,
       MOD_ACTIVATION,
       SWAP_NODES]

_by_name = {mutation.name: mutation for mutation in ALL}

def parse_mutations(raw_options) -> list[Mutation]:
    """
    Parse a mutation set from its textual description.

    Parameters:
        raw_options: "FFW", "ALL", a comma-separated list of operator
                     names, or already a list of Mutation objects

    Returns:
        List of Mutation operators
    """
    if isinstance(raw_options, (list, tuple)):
        return list(raw_options)

    if raw_options.strip().upper() == "FFW":
        return list(FFW)
    if raw_options.strip().upper() == "ALL":
        return list(ALL)

    parsed = []
    for name in raw_options.split(','):
        name = name.strip().upper()
        if name not in _by_name:
            raise ValueError(f"Invalid mutation operator '{name}' in mutation_options")
        parsed.append(_by_name[name])
    return parsed
