"""
Spend optimization module for the ROAS optimizer.
Finds the daily spend whose marginal return equals the required mROAS.
"""
from typing import Dict, List, Optional, Any, Sequence
from dataclasses import dataclass, asdict, replace
import numpy as np
import structlog

from roas_optimizer.config.settings import settings
from roas_optimizer.model.curve_fitter import CurveFitter, CurveFit
from roas_optimizer.model.observations import Observation, MarginConfig, RunSettings
from roas_optimizer.model.response_curves import HillParams, hill_value, hill_derivative, generate_curve
from roas_optimizer.model.seasonality import SeasonalAdjuster
from roas_optimizer.model.weighting import recency_weights
from roas_optimizer.optimization.bounds import estimate_search_bound
from roas_optimizer.utils.exceptions import InsufficientDataError, NonPositiveMarginError

logger = structlog.get_logger()


@dataclass
class OptimizationResult:
    optimal_spend: float
    expected_revenue: float
    marginal_return_at_optimal: float
    total_return_at_optimal: float
    feasible: bool
    # Only set when a current spend baseline is supplied
    current_marginal_return: Optional[float] = None
    delta_spend: Optional[float] = None
    revenue_lift: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EntityFit:
    """Everything fitted for one entity before the spend search."""
    curve: CurveFit
    seasonal_factor: float
    spend: List[float]
    revenue: List[float]

    @property
    def params(self) -> HillParams:
        return self.curve.params


class SpendOptimizer:
    """Locates the spend level whose marginal return equals a target."""

    def __init__(self,
                 peak_samples: int = None,
                 bisection_iterations: int = None):
        self.peak_samples = settings.search.peak_samples if peak_samples is None else peak_samples
        self.bisection_iterations = (
            settings.search.bisection_iterations if bisection_iterations is None else bisection_iterations
        )

    def find_optimal_spend(self,
                           target_marginal_return: float,
                           params: HillParams,
                           max_search_spend: float,
                           seasonal_factor: float = 1.0) -> OptimizationResult:
        """
        Find the optimal spend on the declining branch of the mROAS curve.

        The marginal return is assumed unimodal on [0, max_search_spend]. The
        peak is located on a fixed sample grid, then bisection runs on
        [peak, max_search_spend] where the marginal return is non-increasing.

        Args:
            target_marginal_return: Required mROAS
            params: Fitted response curve parameters
            max_search_spend: Upper bound of the search
            seasonal_factor: Current seasonal multiplier

        Returns:
            OptimizationResult (infeasible when the peak is below the target)
        """
        def marginal(spend):
            return hill_derivative(spend, params) * seasonal_factor

        samples = np.linspace(0.0, max_search_spend, self.peak_samples + 1)
        curve = np.nan_to_num(np.asarray(marginal(samples), dtype=float), nan=-np.inf)
        peak_idx = int(np.argmax(curve))
        peak_spend = float(samples[peak_idx])
        peak_marginal = float(curve[peak_idx])

        if peak_marginal < target_marginal_return:
            return OptimizationResult(
                optimal_spend=0.0,
                expected_revenue=0.0,
                marginal_return_at_optimal=peak_marginal,
                total_return_at_optimal=0.0,
                feasible=False
            )

        low, high = peak_spend, max_search_spend
        for _ in range(self.bisection_iterations):
            mid = (low + high) / 2
            if marginal(mid) >= target_marginal_return:
                low = mid
            else:
                high = mid

        expected_revenue = hill_value(low, params) * seasonal_factor

        return OptimizationResult(
            optimal_spend=low,
            expected_revenue=expected_revenue,
            marginal_return_at_optimal=marginal(low),
            total_return_at_optimal=expected_revenue / max(low, 1.0),
            feasible=True
        )


class SingleEntityOptimizer:
    """End-to-end optimization of one product's spend."""

    def __init__(self,
                 curve_fitter: CurveFitter = None,
                 spend_optimizer: SpendOptimizer = None,
                 min_observations: int = None):
        self.curve_fitter = curve_fitter or CurveFitter()
        self.spend_optimizer = spend_optimizer or SpendOptimizer()
        self.min_observations = (
            settings.portfolio.min_observations if min_observations is None else min_observations
        )

    def fit_curve(self,
                  observations: Sequence[Observation],
                  run_settings: RunSettings,
                  weighted: bool = True) -> EntityFit:
        """
        Sort, deseasonalize and fit the response curve.

        Args:
            observations: Raw observations for one entity
            run_settings: Seasonality mode and recency factor
            weighted: Apply recency weights to the fit

        Returns:
            EntityFit with the fitted curve and the current seasonal factor
        """
        self._check_observations(observations)

        ordered = sorted(observations, key=lambda obs: obs.date)
        adjustment = SeasonalAdjuster(run_settings.seasonality).adjust(ordered)

        spend = [float(obs.spend) for obs in ordered]
        revenue = adjustment.adjusted_revenue
        weights = recency_weights(len(ordered), run_settings.recency) if weighted else None

        curve = self.curve_fitter.fit(spend, revenue, weights)

        return EntityFit(
            curve=curve,
            seasonal_factor=adjustment.current_factor,
            spend=spend,
            revenue=revenue
        )

    def optimize(self,
                 observations: Sequence[Observation],
                 margin_config: MarginConfig,
                 run_settings: RunSettings) -> OptimizationResult:
        """
        Optimize spend for one entity.

        Raises:
            InsufficientDataError: Fewer observations than the minimum
            NonPositiveMarginError: Contribution margin is not positive
        """
        result, _ = self.optimize_with_fit(observations, margin_config, run_settings)
        return result

    def optimize_with_fit(self,
                          observations: Sequence[Observation],
                          margin_config: MarginConfig,
                          run_settings: RunSettings):
        """Optimize and also return the EntityFit used, for curve rendering."""
        self._check_observations(observations)
        if not margin_config.is_optimizable:
            raise NonPositiveMarginError(
                "Contribution margin must be positive",
                contribution_margin_pct=margin_config.contribution_margin_pct
            )

        target = margin_config.required_marginal_return
        fit = self.fit_curve(observations, run_settings)
        factor = fit.seasonal_factor

        max_search_spend = estimate_search_bound(fit.spend, fit.params, target, factor)
        result = self.spend_optimizer.find_optimal_spend(target, fit.params, max_search_spend, factor)

        current_spend = run_settings.current_spend
        if current_spend and current_spend > 0:
            current_revenue = hill_value(current_spend, fit.params) * factor
            result = replace(
                result,
                current_marginal_return=hill_derivative(current_spend, fit.params) * factor,
                delta_spend=result.optimal_spend - current_spend,
                revenue_lift=result.expected_revenue - current_revenue
            )

        logger.info("Entity optimization completed",
                    observations=len(observations),
                    required_marginal_return=target,
                    optimal_spend=result.optimal_spend,
                    feasible=result.feasible,
                    search_bound=max_search_spend)

        return result, fit

    def _check_observations(self, observations: Sequence[Observation]):
        if len(observations) < self.min_observations:
            raise InsufficientDataError(
                f"At least {self.min_observations} data points required",
                observed=len(observations),
                required=self.min_observations
            )


def chart_curve(fit: EntityFit,
                result: OptimizationResult,
                run_settings: RunSettings,
                num_points: int = None) -> Dict[str, Any]:
    """
    Curve series covering the run's max spend and the recommendation.

    The fitted points are included as scatter data, in chronological order and
    on the deseasonalized scale the curve was fitted on.
    """
    max_x = max(run_settings.max_spend, result.optimal_spend * 1.2, 1.0)
    curve = generate_curve(
        fit.params,
        max_spend=max_x,
        num_points=settings.defaults.curve_points if num_points is None else num_points,
        seasonal_factor=fit.seasonal_factor
    )
    curve["observed_spend"] = list(fit.spend)
    curve["observed_revenue"] = [float(value) for value in fit.revenue]
    return curve


def optimize_single(observations: Sequence[Observation],
                    margin_config: MarginConfig,
                    run_settings: RunSettings = None) -> OptimizationResult:
    """Optimize spend for a single entity with default components."""
    return SingleEntityOptimizer().optimize(observations, margin_config, run_settings or RunSettings())
