"""
Upper bound estimation for the optimal spend search.
"""
from typing import Sequence

from roas_optimizer.config.settings import settings
from roas_optimizer.model.response_curves import HillParams, hill_derivative


def estimate_search_bound(spend: Sequence[float],
                          params: HillParams,
                          required_marginal_return: float,
                          seasonal_factor: float = 1.0) -> float:
    """
    Find a spend level safely past the target marginal return.

    Starts from a multiple of the observed spend and K, and grows the bound
    while the marginal return there is still above the target. The growth is
    capped both in iterations and by a ceiling.

    Args:
        spend: Observed spend values
        params: Fitted response curve parameters
        required_marginal_return: Target marginal return
        seasonal_factor: Current seasonal multiplier

    Returns:
        Upper bound for the spend search
    """
    cfg = settings.search
    max_hist = max(max(spend, default=0.0), 1.0)

    hi = max(cfg.bound_spend_multiplier * max_hist, cfg.bound_k_multiplier * params.K, 1.0)
    ceiling = max(cfg.ceiling_spend_multiplier * max_hist, cfg.ceiling_k_multiplier * params.K)

    for _ in range(cfg.bound_max_iterations):
        marginal = hill_derivative(hi, params) * seasonal_factor
        if not marginal > required_marginal_return or hi >= ceiling:
            break
        hi *= cfg.bound_growth

    return min(hi, ceiling)
