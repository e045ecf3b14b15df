"""
Pydantic schemas for API request/response validation.
"""
from pydantic import BaseModel, Field, field_validator
import datetime
from typing import Dict, List, Optional, Any
from enum import Enum

from roas_optimizer.config.settings import settings
from roas_optimizer.data.processor import coerce_date
from roas_optimizer.model.observations import Observation, MarginConfig, RunSettings


class SeasonalityEnum(str, Enum):
    NONE = "none"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ModeEnum(str, Enum):
    SINGLE = "single"
    PORTFOLIO = "portfolio"


class ObservationSchema(BaseModel):
    asin: Optional[str] = Field(None, description="Entity (product) identifier")
    date: str = Field(..., description="Date as YYYY-MM-DD")
    spend: float = Field(..., description="Ad spend for the day")
    ad_sales: float = Field(..., description="Ad-attributed revenue for the day")
    total_sales: Optional[float] = Field(None, description="Total revenue for the day")
    gross_margin: Optional[float] = Field(None, description="Entity gross margin %")
    required_net: Optional[float] = Field(None, description="Entity required net margin %")

    @field_validator("date", mode="before")
    @classmethod
    def validate_date(cls, v):
        """Accepts the same date forms as CSV uploads, normalized to YYYY-MM-DD."""
        text = coerce_date(v)
        try:
            return datetime.date.fromisoformat(text).isoformat()
        except ValueError:
            raise ValueError(f"Unrecognized date: {v!r}")

    def to_observation(self) -> Observation:
        return Observation(
            entity_id=self.asin,
            date=self.date,
            spend=self.spend,
            ad_revenue=self.ad_sales,
            total_revenue=self.total_sales,
            gross_margin_pct=self.gross_margin,
            required_net_pct=self.required_net
        )

    @classmethod
    def from_observation(cls, obs: Observation) -> "ObservationSchema":
        return cls(
            asin=obs.entity_id,
            date=obs.date,
            spend=obs.spend,
            ad_sales=obs.ad_revenue,
            total_sales=obs.total_revenue,
            gross_margin=obs.gross_margin_pct,
            required_net=obs.required_net_pct
        )


class MarginSchema(BaseModel):
    gross_margin: float = Field(settings.defaults.gross_margin_pct, description="Gross margin %")
    required_net: float = Field(settings.defaults.required_net_pct, description="Required net margin %")

    def to_margin_config(self) -> MarginConfig:
        return MarginConfig.from_percentages(self.gross_margin, self.required_net)


class RunSettingsSchema(BaseModel):
    current_spend: float = Field(settings.defaults.current_spend, ge=0, description="Current daily spend")
    max_spend: float = Field(settings.defaults.max_spend, gt=0, description="Chart spend range")
    seasonality: SeasonalityEnum = Field(SeasonalityEnum.NONE, description="Seasonal adjustment mode")
    recency: float = Field(settings.defaults.recency, description="Recency preference (0-1)")

    @field_validator("recency")
    @classmethod
    def validate_recency(cls, v):
        if not 0 <= v <= 1:
            raise ValueError("recency must be between 0 and 1")
        return v

    def to_run_settings(self) -> RunSettings:
        return RunSettings(
            current_spend=self.current_spend,
            max_spend=self.max_spend,
            seasonality=self.seasonality.value,
            recency=self.recency
        )


class OptimizationRequestSchema(BaseModel):
    observations: List[ObservationSchema] = Field(..., description="Daily observations")
    margins: MarginSchema = Field(default_factory=MarginSchema)
    settings: RunSettingsSchema = Field(default_factory=RunSettingsSchema)


class ParseRequestSchema(BaseModel):
    csv: str = Field(..., description="CSV text with a header row")
    mode: ModeEnum = Field(ModeEnum.SINGLE, description="single or portfolio")


class ParseResponseSchema(BaseModel):
    observations: List[ObservationSchema]
    warnings: List[Dict[str, Any]]


class MarginResponseSchema(BaseModel):
    gross_margin: float
    required_net: float
    contribution_margin: float
    required_mroas: Optional[float]


class OptimizationResultSchema(BaseModel):
    optimal_spend: float
    expected_revenue: float
    marginal_return_at_optimal: float
    total_return_at_optimal: float
    feasible: bool
    current_marginal_return: Optional[float] = None
    delta_spend: Optional[float] = None
    revenue_lift: Optional[float] = None


class SingleOptimizationResponseSchema(BaseModel):
    result: OptimizationResultSchema
    margins: MarginResponseSchema
    response_curve: Dict[str, Any]


class PortfolioRowSchema(BaseModel):
    entity_id: str
    outcome: str
    action: str
    feasible: bool
    recommended_action: Optional[str] = None
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


class PortfolioResponseSchema(BaseModel):
    rows: List[PortfolioRowSchema]
    summary: Dict[str, int]
