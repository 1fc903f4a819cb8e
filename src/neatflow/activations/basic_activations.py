import autograd.numpy as np  # type: ignore
from autograd import grad    # type: ignore

def logistic_activation(z):
    z = np.clip(z, -100, 100)   # to prevent under/overflow when calculating exp
    return 1.0 / (1.0 + np.exp(-z))

def tanh_activation(z):
    return np.tanh(z)

def identity_activation(z):
    return z

def step_activation(z):
    return np.where(z > 0, 1.0, 0.0)

def relu_activation(z):
    return np.maximum(0.0, z)

def softsign_activation(z):
    return z / (1.0 + np.abs(z))

def sinusoid_activation(z):
    return np.sin(z)

def gaussian_activation(z):
    z = np.clip(z, -1e10, 1e10)
    return np.exp(-z ** 2)

def bent_identity_activation(z):
    return (np.sqrt(z ** 2 + 1.0) - 1.0) / 2.0 + z

def bipolar_activation(z):
    return np.where(z > 0, 1.0, -1.0)

def bipolar_sigmoid_activation(z):
    z = np.clip(z, -100, 100)
    return 2.0 / (1.0 + np.exp(-z)) - 1.0

def hard_tanh_activation(z):
    return np.clip(z, -1.0, 1.0)

def absolute_activation(z):
    return np.abs(z)

def inverse_activation(z):
    return 1.0 - z

def selu_activation(z):
    alpha = 1.6732632423543772848170429916717
    scale = 1.0507009873554804934193349852946
    z_neg = np.minimum(z, 0.0)   # exp is only evaluated where it is used
    return scale * np.where(z > 0, z, alpha * (np.exp(z_neg) - 1.0))

# The order of this dictionary is the squash code used by Network.serialize()
activations = {
    "logistic"       : logistic_activation,
    "tanh"           : tanh_activation,
    "identity"       : identity_activation,
    "step"           : step_activation,
    "relu"           : relu_activation,
    "softsign"       : softsign_activation,
    "sinusoid"       : sinusoid_activation,
    "gaussian"       : gaussian_activation,
    "bent_identity"  : bent_identity_activation,
    "bipolar"        : bipolar_activation,
    "bipolar_sigmoid": bipolar_sigmoid_activation,
    "hard_tanh"      : hard_tanh_activation,
    "absolute"       : absolute_activation,
    "inverse"        : inverse_activation,
    "selu"           : selu_activation
    }

squash_names = list(activations.keys())

def _zero_derivative(z):
    return 0.0

# Derivatives are obtained by automatic differentiation.
# Piecewise-constant functions have a zero derivative everywhere it exists.
derivatives = {name: grad(function) for name, function in activations.items()}
derivatives["step"]    = _zero_derivative
derivatives["bipolar"] = _zero_derivative

# 3-letter identifiers for each activation function
activation_codes = {
    "logistic"       : "LOG",
    "tanh"           : "TNH",
    "identity"       : "IDN",
    "step"           : "STP",
    "relu"           : "RLU",
    "softsign"       : "SSN",
    "sinusoid"       : "SIN",
    "gaussian"       : "GAU",
    "bent_identity"  : "BID",
    "bipolar"        : "BIP",
    "bipolar_sigmoid": "BPS",
    "hard_tanh"      : "HTH",
    "absolute"       : "ABS",
    "inverse"        : "INV",
    "selu"           : "SLU"
    }
