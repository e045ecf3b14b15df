"""
Data validation module for the ROAS optimizer.
Checks normalized uploads before they are turned into observations.
"""
from typing import List, Optional, Sequence
import pandas as pd
from enum import Enum
from dataclasses import dataclass

from roas_optimizer.config.settings import settings


class ValidationErrorCode(Enum):
    ERROR_001 = "Missing required columns"
    ERROR_002 = "No data rows found"
    ERROR_003 = "Invalid date"
    WARNING_001 = "Negative spend detected"
    WARNING_002 = "Negative ad revenue detected"
    WARNING_003 = "Too few data points"


@dataclass
class ValidationIssue:
    code: ValidationErrorCode
    message: str
    column: Optional[str] = None
    entity_id: Optional[str] = None
    severity: str = "error"  # "error" or "warning"

    def to_dict(self):
        return {
            "code": self.code.name,
            "message": self.message,
            "column": self.column,
            "entity_id": self.entity_id,
            "severity": self.severity
        }


class DataValidator:
    """Validates normalized upload frames according to optimizer requirements."""

    def __init__(self, mode: str = "single"):
        self.mode = mode
        self.required_columns = list(
            settings.ingestion.required_portfolio if mode == "portfolio"
            else settings.ingestion.required_single
        )
        self.min_observations = settings.portfolio.min_observations

    def validate_structure(self, df: pd.DataFrame) -> List[ValidationIssue]:
        """Checks the frame has rows and every required column."""
        issues = []

        if df.empty:
            issues.append(ValidationIssue(
                code=ValidationErrorCode.ERROR_002,
                message="No data found"
            ))
            return issues

        missing_cols = [col for col in self.required_columns if col not in df.columns]
        if missing_cols:
            issues.append(ValidationIssue(
                code=ValidationErrorCode.ERROR_001,
                message=f"Missing required columns: {', '.join(missing_cols)}"
            ))

        return issues

    def validate_dates(self, observations: Sequence) -> List[ValidationIssue]:
        """Dates that did not coerce to YYYY-MM-DD are errors."""
        dates = pd.Series([obs.date for obs in observations], dtype=object)
        parsed = pd.to_datetime(dates, format="%Y-%m-%d", errors="coerce")
        invalid = dates[parsed.isna()].tolist()
        if not invalid:
            return []
        return [ValidationIssue(
            code=ValidationErrorCode.ERROR_003,
            message=f"Unrecognized dates in {len(invalid)} rows (first: {invalid[0]!r})",
            column="date"
        )]

    def validate_observations(self, observations: Sequence) -> List[ValidationIssue]:
        """Data quality warnings on aggregated observations."""
        issues = []

        negative_spend = [obs for obs in observations if obs.spend < 0]
        if negative_spend:
            issues.append(ValidationIssue(
                code=ValidationErrorCode.WARNING_001,
                message=f"Negative spend detected in {len(negative_spend)} rows",
                column="spend",
                severity="warning"
            ))

        negative_revenue = [obs for obs in observations if obs.ad_revenue < 0]
        if negative_revenue:
            issues.append(ValidationIssue(
                code=ValidationErrorCode.WARNING_002,
                message=f"Negative ad revenue detected in {len(negative_revenue)} rows",
                column="ad_sales",
                severity="warning"
            ))

        counts = {}
        for obs in observations:
            counts[obs.entity_id] = counts.get(obs.entity_id, 0) + 1
        for entity_id, count in counts.items():
            if count < self.min_observations:
                issues.append(ValidationIssue(
                    code=ValidationErrorCode.WARNING_003,
                    message=f"Only {count} data points (need at least {self.min_observations})",
                    entity_id=entity_id,
                    severity="warning"
                ))

        return issues
