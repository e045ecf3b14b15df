"""
Input records and run configuration for the optimizer.
"""
from typing import Optional
from dataclasses import dataclass

from roas_optimizer.config.settings import settings


@dataclass(frozen=True)
class Observation:
    """One day of advertising data for one entity (product)."""
    date: str  # YYYY-MM-DD
    spend: float
    ad_revenue: float
    entity_id: Optional[str] = None
    total_revenue: Optional[float] = None
    gross_margin_pct: Optional[float] = None
    required_net_pct: Optional[float] = None


@dataclass(frozen=True)
class MarginConfig:
    gross_margin_pct: float
    required_net_pct: float
    contribution_margin_pct: float
    required_marginal_return: Optional[float]

    @classmethod
    def from_percentages(cls, gross_margin_pct: float, required_net_pct: float) -> "MarginConfig":
        """Derive contribution margin and required mROAS from the two inputs."""
        contribution = gross_margin_pct - required_net_pct
        return cls(
            gross_margin_pct=gross_margin_pct,
            required_net_pct=required_net_pct,
            contribution_margin_pct=contribution,
            required_marginal_return=1 / (contribution / 100) if contribution > 0 else None
        )

    @property
    def contribution_margin(self) -> float:
        return self.contribution_margin_pct / 100

    @property
    def is_optimizable(self) -> bool:
        return self.required_marginal_return is not None


@dataclass(frozen=True)
class RunSettings:
    current_spend: float = settings.defaults.current_spend
    max_spend: float = settings.defaults.max_spend  # chart range only
    seasonality: str = settings.defaults.seasonality
    recency: float = settings.defaults.recency
