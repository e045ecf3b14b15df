"""
Portfolio optimization: independent per-entity spend recommendations.

Each entity (product) is optimized on its own. A failure for one entity is
reported in that entity's row and never aborts the batch.
"""
from typing import Dict, List, Optional, Any, Sequence
from dataclasses import dataclass, asdict, replace
from enum import Enum
from concurrent.futures import ThreadPoolExecutor
import structlog

from roas_optimizer.config.settings import settings
from roas_optimizer.model.observations import Observation, MarginConfig, RunSettings
from roas_optimizer.model.response_curves import hill_value
from roas_optimizer.optimization.optimizer import SingleEntityOptimizer

logger = structlog.get_logger()


class EntityOutcome(Enum):
    SUCCESS = "success"
    INSUFFICIENT_DATA = "insufficient_data"
    NON_POSITIVE_MARGIN = "non_positive_margin"
    ERROR = "error"


class RecommendedAction(Enum):
    INCREASE = "Increase"
    DECREASE = "Decrease"
    PAUSE = "Pause"


INSUFFICIENT_DATA_LABEL = "Insufficient data (< {min_observations} points)"
NON_POSITIVE_MARGIN_LABEL = "Non-positive contribution margin"


@dataclass
class PortfolioRow:
    entity_id: str
    outcome: EntityOutcome
    action: str
    feasible: bool = False
    recommended_action: Optional[RecommendedAction] = None
    contribution_margin_pct: Optional[float] = None
    required_marginal_return: Optional[float] = None
    optimal_spend: Optional[float] = None
    expected_revenue: Optional[float] = None
    total_return: Optional[float] = None
    marginal_return: Optional[float] = None
    current_spend: Optional[float] = None
    current_marginal_return: Optional[float] = None
    delta_spend: Optional[float] = None
    revenue_lift: Optional[float] = None
    organic_share_pct: Optional[float] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["outcome"] = self.outcome.value
        data["recommended_action"] = self.recommended_action.value if self.recommended_action else None
        return data


def group_by_entity(observations: Sequence[Observation],
                    unknown_entity_id: str = None) -> Dict[str, List[Observation]]:
    """Group observations by entity id, keeping discovery order."""
    sentinel = unknown_entity_id or settings.portfolio.unknown_entity_id
    groups: Dict[str, List[Observation]] = {}
    for obs in observations:
        groups.setdefault(obs.entity_id or sentinel, []).append(obs)
    return groups


def organic_share(observations: Sequence[Observation]) -> Optional[float]:
    """
    Share of total revenue not attributed to ads, in percent.

    Only observations that report total revenue take part (zero counts as
    reported). Returns None when nothing is reported or the total is zero.
    """
    reported = [obs for obs in observations if obs.total_revenue is not None]
    total = sum(obs.total_revenue for obs in reported)
    if not reported or total == 0:
        return None
    ad = sum(obs.ad_revenue for obs in reported)
    return (total - ad) / total * 100


def resolve_margin(ordered: Sequence[Observation], global_margin: MarginConfig) -> MarginConfig:
    """Entity margins from the earliest observation, else the global margin."""
    first = ordered[0]
    if first.gross_margin_pct is not None and first.required_net_pct is not None:
        return MarginConfig.from_percentages(first.gross_margin_pct, first.required_net_pct)
    return global_margin


class PortfolioOptimizer:
    """Runs the single entity pipeline for every entity in a portfolio."""

    def __init__(self,
                 entity_optimizer: SingleEntityOptimizer = None,
                 max_workers: int = None):
        self.entity_optimizer = entity_optimizer or SingleEntityOptimizer()
        self.max_workers = settings.portfolio.max_workers if max_workers is None else max_workers
        self.min_observations = self.entity_optimizer.min_observations

    def optimize(self,
                 observations: Sequence[Observation],
                 margin_config: MarginConfig,
                 run_settings: RunSettings) -> List[PortfolioRow]:
        """
        Optimize every entity independently.

        Args:
            observations: Observations for all entities
            margin_config: Global margins, used where an entity has none
            run_settings: Seasonality and recency settings

        Returns:
            One row per entity, in the order entities were first seen
        """
        groups = group_by_entity(observations)
        items = list(groups.items())

        logger.info("Starting portfolio optimization",
                    entities=len(items), observations=len(observations),
                    max_workers=self.max_workers)

        def run(item):
            entity_id, entity_observations = item
            return self._optimize_entity(entity_id, entity_observations, margin_config, run_settings)

        if self.max_workers > 1 and len(items) > 1:
            # map() yields in submission order
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                rows = list(executor.map(run, items))
        else:
            rows = [run(item) for item in items]

        logger.info("Portfolio optimization completed",
                    entities=len(rows),
                    **{outcome.value: sum(1 for row in rows if row.outcome == outcome)
                       for outcome in EntityOutcome})
        return rows

    def _optimize_entity(self,
                         entity_id: str,
                         entity_observations: List[Observation],
                         margin_config: MarginConfig,
                         run_settings: RunSettings) -> PortfolioRow:
        try:
            if len(entity_observations) < self.min_observations:
                return PortfolioRow(
                    entity_id=entity_id,
                    outcome=EntityOutcome.INSUFFICIENT_DATA,
                    action=INSUFFICIENT_DATA_LABEL.format(min_observations=self.min_observations)
                )

            ordered = sorted(entity_observations, key=lambda obs: obs.date)
            margin = resolve_margin(ordered, margin_config)

            if not margin.is_optimizable:
                return PortfolioRow(
                    entity_id=entity_id,
                    outcome=EntityOutcome.NON_POSITIVE_MARGIN,
                    action=NON_POSITIVE_MARGIN_LABEL,
                    contribution_margin_pct=margin.contribution_margin_pct
                )

            current_spend = float(ordered[-1].spend)
            result = self.entity_optimizer.optimize(
                ordered, margin, replace(run_settings, current_spend=current_spend)
            )

            # Separate unweighted fit so current revenue is comparable across entities
            baseline_fit = self.entity_optimizer.fit_curve(ordered, run_settings, weighted=False)
            current_revenue = hill_value(current_spend, baseline_fit.params)

            if not result.feasible:
                action = RecommendedAction.PAUSE
            elif result.optimal_spend > current_spend:
                action = RecommendedAction.INCREASE
            else:
                action = RecommendedAction.DECREASE

            return PortfolioRow(
                entity_id=entity_id,
                outcome=EntityOutcome.SUCCESS,
                action=action.value,
                feasible=result.feasible,
                recommended_action=action,
                contribution_margin_pct=margin.contribution_margin_pct,
                required_marginal_return=margin.required_marginal_return,
                optimal_spend=result.optimal_spend,
                expected_revenue=result.expected_revenue,
                total_return=result.total_return_at_optimal,
                marginal_return=result.marginal_return_at_optimal,
                current_spend=current_spend,
                current_marginal_return=result.current_marginal_return,
                delta_spend=result.optimal_spend - current_spend,
                revenue_lift=result.expected_revenue - current_revenue,
                organic_share_pct=organic_share(ordered)
            )

        except Exception as e:
            logger.warning("Entity optimization failed", entity_id=entity_id, error=str(e))
            return PortfolioRow(
                entity_id=entity_id,
                outcome=EntityOutcome.ERROR,
                action=f"Error: {e}",
                error=str(e)
            )


def optimize_portfolio(observations: Sequence[Observation],
                       margin_config: MarginConfig,
                       run_settings: RunSettings = None) -> List[PortfolioRow]:
    """Optimize every entity with default components."""
    return PortfolioOptimizer().optimize(observations, margin_config, run_settings or RunSettings())


def summarize_actions(rows: Sequence[PortfolioRow]) -> Dict[str, int]:
    """Counts of Increase / Decrease / Pause recommendations."""
    return {
        action.value: sum(1 for row in rows if row.recommended_action == action)
        for action in RecommendedAction
    }
