"""
Recency weights for the curve fit.
"""
import numpy as np


def recency_weights(n: int, recency_factor: float) -> np.ndarray:
    """
    Generate per-observation weights favoring recent data.

    weight_i = ((i + 1) / n) ^ (1 + 4 * recency_factor), rescaled to mean 1.
    Note that recency_factor = 0 still gives a linear ramp, not flat weights.

    Args:
        n: Number of observations (chronological order)
        recency_factor: Strength of the recency preference in [0, 1]

    Returns:
        Array of n weights whose mean is 1
    """
    if n <= 0:
        return np.zeros(0)

    exponent = 1 + 4 * recency_factor
    weights = np.power(np.arange(1, n + 1) / n, exponent)
    return weights * n / weights.sum()
