"""
Response curves for the ROAS optimizer.

This module holds the saturating (Hill) revenue response model and its
analytic derivative, the marginal return (mROAS), together with helpers that
generate curve series for charting.
"""
import numpy as np
from typing import Dict, Any, Union
from dataclasses import dataclass

ArrayLike = Union[float, np.ndarray]

# Floor for K and gamma so neither is ever used as literal zero
MIN_PARAM = 1e-9


@dataclass(frozen=True)
class HillParams:
    """Parameters of the saturating response curve."""
    alpha: float  # Saturation ceiling
    gamma: float  # Shape
    K: float      # Half-saturation spend

    def to_dict(self) -> Dict[str, float]:
        return {"alpha": self.alpha, "gamma": self.gamma, "K": self.K}


def _as_output(values: np.ndarray) -> ArrayLike:
    return float(values) if np.ndim(values) == 0 else values


def hill_value(spend: ArrayLike, params: HillParams) -> ArrayLike:
    """
    Expected revenue at a spend level.

    value = alpha * r^gamma / (1 + r^gamma), with r = spend / K

    Args:
        spend: Spend level or array of spend levels
        params: Response curve parameters

    Returns:
        Revenue, same shape as spend
    """
    ratio = np.asarray(spend, dtype=float) / max(params.K, MIN_PARAM)
    with np.errstate(invalid="ignore", over="ignore"):
        powered = np.power(ratio, params.gamma)
        value = params.alpha * powered / (1.0 + powered)
    return _as_output(value)


def hill_derivative(spend: ArrayLike, params: HillParams) -> ArrayLike:
    """
    Marginal return (d revenue / d spend) at a spend level.

    derivative = alpha * gamma * r^(gamma - 1) / (K * (1 + r^gamma)^2)

    Returns 0 wherever the denominator is not positive.
    """
    ratio = np.asarray(spend, dtype=float) / max(params.K, MIN_PARAM)
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        powered = np.power(ratio, max(params.gamma, MIN_PARAM))
        numerator = params.alpha * params.gamma * np.power(ratio, params.gamma - 1)
        denominator = params.K * np.power(1.0 + powered, 2)
        marginal = np.where(denominator > 0, numerator / np.where(denominator > 0, denominator, 1.0), 0.0)
    return _as_output(marginal)


def generate_curve(params: HillParams,
                   max_spend: float,
                   num_points: int = 120,
                   seasonal_factor: float = 1.0,
                   min_spend: float = 0.0) -> Dict[str, Any]:
    """
    Generate a response curve series for charting.

    Args:
        params: Fitted response curve parameters
        max_spend: Right edge of the spend range
        num_points: Number of points in the curve
        seasonal_factor: Multiplier bringing deseasonalized output back to "now"
        min_spend: Left edge of the spend range

    Returns:
        Dictionary with spend levels, expected revenue and marginal return
    """
    if num_points < 2:
        raise ValueError("num_points must be at least 2")

    spend_levels = np.linspace(min_spend, max(max_spend, min_spend), num_points)
    revenue = np.asarray(hill_value(spend_levels, params)) * seasonal_factor
    marginal = np.asarray(hill_derivative(spend_levels, params)) * seasonal_factor

    return {
        "spend_levels": spend_levels.tolist(),
        "expected_revenue": revenue.tolist(),
        "marginal_return": marginal.tolist(),
        "seasonal_factor": seasonal_factor,
        "model_parameters": params.to_dict()
    }
