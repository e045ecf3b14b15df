"""
Weighted grid search fit of the response curve.

The hypothesis space is a fixed 3x5x5 grid scaled by the observed data. The
search is anytime: when the time (or evaluation) budget runs out it returns
the best combination found so far.
"""
import time
from typing import Callable, Optional, Sequence
from dataclasses import dataclass
import numpy as np
import structlog

from roas_optimizer.config.settings import settings
from roas_optimizer.model.response_curves import HillParams, hill_value
from roas_optimizer.utils.exceptions import OptimizationError

logger = structlog.get_logger()


@dataclass
class CurveFit:
    params: HillParams
    sse: float
    evaluated: int
    timed_out: bool


class CurveFitter:
    """Fits HillParams by minimizing weighted squared error over a grid."""

    def __init__(self,
                 time_budget_seconds: float = None,
                 max_evaluations: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.time_budget_seconds = (
            settings.fit.time_budget_seconds if time_budget_seconds is None else time_budget_seconds
        )
        self.max_evaluations = settings.fit.max_evaluations if max_evaluations is None else max_evaluations
        self.clock = clock
        self.grid = settings.get_fit_grid_config()

    def fit(self,
            spend: Sequence[float],
            revenue: Sequence[float],
            weights: Optional[Sequence[float]] = None) -> CurveFit:
        """
        Run the grid search.

        Args:
            spend: Observed spend values
            revenue: Observed (deseasonalized) revenue values
            weights: Optional per-observation weights, 1 where not supplied

        Returns:
            CurveFit with the best parameters and search diagnostics

        Raises:
            OptimizationError: Every evaluated combination had a non-finite error
        """
        spend = np.asarray(spend, dtype=float)
        revenue = np.asarray(revenue, dtype=float)
        if spend.size == 0 or spend.size != revenue.size:
            raise ValueError("spend and revenue must be non-empty and of equal length")

        w = np.ones_like(spend) if weights is None else np.asarray(weights, dtype=float)

        max_revenue = float(revenue.max())
        max_spend = max(float(spend.max()), 1.0)

        alphas = [m * max_revenue for m in self.grid["alpha"]]
        gammas = list(self.grid["gamma"])
        ks = [m * max_spend for m in self.grid["K"]]

        best_params = HillParams(alpha=alphas[0], gamma=1.6, K=ks[len(ks) // 2])
        best_sse = float("inf")
        evaluated = 0
        timed_out = False
        start = self.clock()

        for alpha in alphas:
            for gamma in gammas:
                for k in ks:
                    if self._budget_exhausted(start, evaluated):
                        timed_out = True
                        break

                    params = HillParams(alpha=alpha, gamma=gamma, K=k)
                    errors = hill_value(spend, params) - revenue
                    sse = float(np.sum(w * errors * errors))
                    evaluated += 1

                    if sse < best_sse:
                        best_sse = sse
                        best_params = params
                if timed_out:
                    break
            if timed_out:
                break

        if evaluated and not np.isfinite(best_sse):
            raise OptimizationError(
                f"No finite fit error across {evaluated} grid combinations; check for non-numeric or negative data"
            )

        if timed_out:
            logger.warning("Curve fit budget exhausted, returning best so far",
                           evaluated=evaluated,
                           time_budget_seconds=self.time_budget_seconds)

        logger.debug("Curve fit completed",
                     alpha=best_params.alpha, gamma=best_params.gamma, K=best_params.K,
                     sse=best_sse, evaluated=evaluated)

        return CurveFit(params=best_params, sse=best_sse, evaluated=evaluated, timed_out=timed_out)

    def _budget_exhausted(self, start: float, evaluated: int) -> bool:
        if self.max_evaluations is not None and evaluated >= self.max_evaluations:
            return True
        return self.clock() - start > self.time_budget_seconds
