"""
Mathematical model validation tests for the ROAS optimizer.
Tests the response curve, seasonal adjustment, weights and the curve fit.
"""
import pytest
import numpy as np

from roas_optimizer.model.curve_fitter import CurveFitter
from roas_optimizer.model.observations import Observation
from roas_optimizer.model.response_curves import HillParams, hill_value, hill_derivative, generate_curve
from roas_optimizer.model.seasonality import SeasonalAdjuster, SeasonalityMode
from roas_optimizer.model.weighting import recency_weights
from roas_optimizer.utils.exceptions import OptimizationError


class TestResponseCurve:
    """Test the saturating response curve and its derivative."""

    @pytest.mark.parametrize("params", [
        HillParams(alpha=1000.0, gamma=2.0, K=100.0),
        HillParams(alpha=50.0, gamma=1.1, K=3.0),
        HillParams(alpha=1e6, gamma=2.5, K=750.0),
    ])
    def test_value_is_zero_at_zero_spend(self, params):
        assert hill_value(0.0, params) == 0.0

    def test_value_strictly_increasing(self, known_params):
        spend = np.linspace(0, 1000, 50)
        values = hill_value(spend, known_params)
        assert np.all(np.diff(values) > 0)

    def test_value_saturates_at_alpha(self, known_params):
        assert hill_value(1e9, known_params) == pytest.approx(known_params.alpha, rel=1e-9)
        assert hill_value(known_params.K, known_params) == pytest.approx(known_params.alpha / 2)

    @pytest.mark.parametrize("spend", [5.0, 50.0, 100.0, 250.0, 900.0])
    def test_derivative_matches_finite_difference(self, known_params, spend):
        h = 1e-4
        numeric = (hill_value(spend + h, known_params) - hill_value(spend - h, known_params)) / (2 * h)
        assert hill_derivative(spend, known_params) == pytest.approx(numeric, rel=1e-5)

    def test_derivative_vectorized_matches_scalar(self, known_params):
        spend = np.array([0.0, 10.0, 100.0, 500.0])
        vector = hill_derivative(spend, known_params)
        for value, s in zip(vector, spend):
            assert value == pytest.approx(hill_derivative(float(s), known_params))

    def test_zero_k_is_clamped(self):
        params = HillParams(alpha=100.0, gamma=2.0, K=0.0)
        assert np.isfinite(hill_value(10.0, params))
        # Non-positive denominator returns zero instead of raising
        assert hill_derivative(10.0, params) == 0.0

    def test_generate_curve(self, known_params):
        curve = generate_curve(known_params, max_spend=500, num_points=11, seasonal_factor=2.0)

        assert len(curve["spend_levels"]) == 11
        assert curve["spend_levels"][0] == 0.0
        assert curve["spend_levels"][-1] == 500.0
        assert curve["expected_revenue"][-1] == pytest.approx(2.0 * hill_value(500.0, known_params))
        assert curve["model_parameters"] == {"alpha": 1000.0, "gamma": 2.0, "K": 100.0}


class TestSeasonalAdjuster:
    """Test seasonal factor computation."""

    @pytest.fixture
    def two_weeks(self):
        # 2025-08-04 is a Monday; weekends earn double
        observations = []
        for day in range(14):
            date = f"2025-08-{4 + day:02d}"
            weekend = day % 7 in (5, 6)
            observations.append(Observation(date=date, spend=100, ad_revenue=200.0 if weekend else 100.0))
        return observations

    def test_none_mode_is_identity(self, three_day_observations):
        adjustment = SeasonalAdjuster("none").adjust(three_day_observations)

        assert adjustment.adjusted_revenue == [2600.0, 3000.0, 3300.0]
        assert adjustment.current_factor == 1.0

    def test_weekly_factors(self, two_weeks):
        adjustment = SeasonalAdjuster(SeasonalityMode.WEEKLY).adjust(two_weeks)
        overall = (10 * 100 + 4 * 200) / 14

        assert adjustment.factors[0] == pytest.approx(100 / overall)  # Monday
        assert adjustment.factors[6] == pytest.approx(200 / overall)  # Sunday
        np.testing.assert_allclose(adjustment.adjusted_revenue, overall)
        # 2025-08-17 is a Sunday
        assert adjustment.current_factor == pytest.approx(200 / overall)

    def test_monthly_factors(self):
        observations = [
            Observation(date="2025-01-15", spend=10, ad_revenue=100.0),
            Observation(date="2025-01-16", spend=10, ad_revenue=100.0),
            Observation(date="2025-02-15", spend=10, ad_revenue=400.0),
        ]
        adjustment = SeasonalAdjuster("monthly").adjust(observations)
        overall = 600 / 3

        assert adjustment.factors == pytest.approx({0: 0.5, 1: 2.0})
        assert adjustment.current_factor == pytest.approx(400 / overall)
        np.testing.assert_allclose(adjustment.adjusted_revenue, [200.0, 200.0, 200.0])

    def test_non_positive_bucket_defaults_to_one(self):
        observations = [
            Observation(date="2025-01-15", spend=10, ad_revenue=0.0),
            Observation(date="2025-02-15", spend=10, ad_revenue=300.0),
        ]
        adjustment = SeasonalAdjuster("monthly").adjust(observations)

        assert adjustment.factors[0] == 1.0
        assert adjustment.adjusted_revenue[0] == 0.0

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            SeasonalAdjuster("hourly")


class TestRecencyWeights:
    """Test recency weighting."""

    @pytest.mark.parametrize("n", [1, 2, 7, 30, 365])
    @pytest.mark.parametrize("recency", [0.0, 0.3, 1.0])
    def test_mean_is_one(self, n, recency):
        weights = recency_weights(n, recency)
        assert len(weights) == n
        assert weights.mean() == pytest.approx(1.0)

    def test_zero_recency_is_linear_ramp(self):
        weights = recency_weights(4, 0.0)
        np.testing.assert_allclose(weights, [0.4, 0.8, 1.2, 1.6])

    def test_recent_observations_weigh_more(self):
        weights = recency_weights(10, 0.5)
        assert np.all(np.diff(weights) > 0)


class TestCurveFitter:
    """Test the grid search fit."""

    @pytest.fixture
    def grid_point_data(self):
        """
        Data generated exactly from a grid combination.

        The last point only pins the max revenue (and so the alpha grid) and
        carries zero weight.
        """
        spend = [100.0 * i for i in range(1, 11)]
        max_revenue = 1e6
        true_params = HillParams(alpha=1.1 * max_revenue, gamma=2.0, K=0.5 * 1000.0)
        revenue = list(hill_value(np.array(spend), true_params))

        weights = [1.0] * len(spend) + [0.0]
        return spend + [500.0], revenue + [max_revenue], weights, true_params

    def test_recovers_grid_combination(self, grid_point_data):
        spend, revenue, weights, true_params = grid_point_data

        fit = CurveFitter(time_budget_seconds=60).fit(spend, revenue, weights)

        assert not fit.timed_out
        assert fit.evaluated == 75
        assert fit.params.alpha == pytest.approx(true_params.alpha)
        assert fit.params.gamma == true_params.gamma
        assert fit.params.K == pytest.approx(true_params.K)
        assert fit.sse == pytest.approx(0.0, abs=1e-6)

    def test_unweighted_fit_uses_unit_weights(self, three_day_observations):
        spend = [obs.spend for obs in three_day_observations]
        revenue = [obs.ad_revenue for obs in three_day_observations]
        fitter = CurveFitter(time_budget_seconds=60)

        unweighted = fitter.fit(spend, revenue)
        unit = fitter.fit(spend, revenue, [1.0, 1.0, 1.0])

        assert unweighted.params == unit.params
        assert unweighted.sse == pytest.approx(unit.sse)

    def test_fit_is_deterministic(self, daily_observations):
        spend = [obs.spend for obs in daily_observations]
        revenue = [obs.ad_revenue for obs in daily_observations]
        weights = recency_weights(len(spend), 0.3)
        fitter = CurveFitter(time_budget_seconds=60)

        assert fitter.fit(spend, revenue, weights).params == fitter.fit(spend, revenue, weights).params

    def test_time_budget_returns_best_so_far(self, three_day_observations):
        ticks = iter(range(1000))
        fitter = CurveFitter(time_budget_seconds=8, clock=lambda: float(next(ticks)))

        fit = fitter.fit([300, 400, 500], [2600, 3000, 3300])

        assert fit.timed_out
        assert fit.evaluated == 8
        assert np.isfinite(fit.sse)

    def test_evaluation_budget(self):
        fit = CurveFitter(max_evaluations=10).fit([300, 400, 500], [2600, 3000, 3300])

        assert fit.timed_out
        assert fit.evaluated == 10

    def test_zero_budget_keeps_default_params(self):
        fit = CurveFitter(max_evaluations=0).fit([300, 400, 500], [2600, 3000, 3300])

        assert fit.evaluated == 0
        assert fit.params == HillParams(alpha=1.05 * 3300, gamma=1.6, K=0.75 * 500)

    def test_non_finite_errors_raise(self):
        with pytest.raises(OptimizationError):
            CurveFitter().fit([300, 400, 500], [2600, float("nan"), 3300])

    def test_mismatched_inputs(self):
        with pytest.raises(ValueError):
            CurveFitter().fit([1, 2, 3], [1, 2])
