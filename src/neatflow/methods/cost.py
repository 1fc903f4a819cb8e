import numpy as np

def mse_cost(target, output):
    target = np.asarray(target, dtype=float)
    output = np.asarray(output, dtype=float)
    return float(np.mean((target - output) ** 2))

def mae_cost(target, output):
    target = np.asarray(target, dtype=float)
    output = np.asarray(output, dtype=float)
    return float(np.mean(np.abs(target - output)))

def cross_entropy_cost(target, output):
    target = np.asarray(target, dtype=float)
    output = np.clip(np.asarray(output, dtype=float), 1e-15, 1 - 1e-15)   # avoid log(0)
    return float(-np.mean(target * np.log(output) + (1 - target) * np.log(1 - output)))

def binary_cost(target, output):
    target = np.asarray(target, dtype=float)
    output = np.asarray(output, dtype=float)
    return float(np.sum(np.round(target * 2) != np.round(output * 2)))

def mape_cost(target, output):
    target = np.asarray(target, dtype=float)
    output = np.asarray(output, dtype=float)
    return float(np.mean(np.abs((output - target) / np.maximum(np.abs(target), 1e-15))))

def msle_cost(target, output):
    target = np.asarray(target, dtype=float)
    output = np.asarray(output, dtype=float)
    diff = np.log(np.maximum(target, 1e-15)) - np.log(np.maximum(output, 1e-15))
    return float(np.mean(diff))

def hinge_cost(target, output):
    target = np.asarray(target, dtype=float)
    output = np.asarray(output, dtype=float)
    return float(np.mean(np.maximum(0.0, 1.0 - target * output)))

costs = {
    "MSE"          : mse_cost,
    "MAE"          : mae_cost,
    "CROSS_ENTROPY": cross_entropy_cost,
    "BINARY"       : binary_cost,
    "MAPE"         : mape_cost,
    "MSLE"         : msle_cost,
    "HINGE"        : hinge_cost
    }

def get_cost(cost):
    """Resolve a cost given by name (case-insensitive) or return a callable unchanged."""
    if callable(cost):
        return cost
    try:
        return costs[cost.upper()]
    except KeyError:
        raise ValueError(f"Unknown cost function '{cost}'") from None
