"""
Data processing module for the ROAS optimizer.
Handles header normalization, value coercion and duplicate aggregation.
"""
import re
from datetime import date, datetime
from typing import List, Tuple, Optional, Union, IO
from pathlib import Path
import math
import pandas as pd
import structlog

from roas_optimizer.config.settings import settings
from roas_optimizer.data.validator import DataValidator, ValidationIssue
from roas_optimizer.model.observations import Observation
from roas_optimizer.utils.exceptions import DataValidationError, FileProcessingError

logger = structlog.get_logger()

ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$")
LEADING_NUMBER = re.compile(r"-?(\d+\.?\d*|\.\d+)")
EXCEL_EPOCH = pd.Timestamp("1899-12-30")


def normalize_key(key) -> str:
    """Lower-case, trim and snake-case a header."""
    return re.sub(r"\s+", "_", str(key).strip().lower())


def coerce_date(value) -> str:
    """Coerce a date-like value to YYYY-MM-DD."""
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        # Excel serial date
        return (EXCEL_EPOCH + pd.to_timedelta(value, unit="D")).strftime("%Y-%m-%d")

    text = str(value).strip()
    try:
        iso = ISO_DATE.match(text)
        if iso:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3))).isoformat()
        us = US_DATE.match(text)
        if us:
            year = int(us.group(3))
            year = year + 2000 if year < 100 else year
            return date(year, int(us.group(1)), int(us.group(2))).isoformat()
    except ValueError:
        pass
    return text[:10]


def coerce_number(value) -> float:
    """Coerce currency-like text to a float, 0 when nothing parses."""
    if value is None or value == "":
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value) if math.isfinite(value) else 0.0

    cleaned = re.sub(r"[^0-9.\-]", "", str(value))
    match = LEADING_NUMBER.match(cleaned)
    return float(match.group(0)) if match else 0.0


def _is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


class DataProcessor:
    """Turns raw upload frames into aggregated observations."""

    def __init__(self, mode: str = "single"):
        if mode not in ("single", "portfolio"):
            raise ValueError(f"Unknown mode: {mode}")
        self.mode = mode
        self.header_aliases = settings.ingestion.header_aliases
        self.validator = DataValidator(mode)

    def load_csv(self, source: Union[str, Path, IO]) -> Tuple[List[Observation], List[ValidationIssue]]:
        """
        Reads a CSV file (path or buffer) and processes it.

        Raises:
            FileProcessingError: The CSV cannot be read
            DataValidationError: Required columns are missing or no rows found
        """
        try:
            df = pd.read_csv(source, dtype=str, keep_default_na=False, skipinitialspace=True)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise FileProcessingError(f"Could not read CSV: {e}") from e
        return self.process_data(df)

    def process_data(self, df: pd.DataFrame) -> Tuple[List[Observation], List[ValidationIssue]]:
        """
        Processes a raw DataFrame into observations.

        Args:
            df: Raw DataFrame with arbitrary (aliased) headers

        Returns:
            Tuple of (observations sorted by date, validation warnings)
        """
        frame = self._normalize_headers(df)

        errors = self.validator.validate_structure(frame)
        if errors:
            raise DataValidationError(errors[0].message, errors=errors)

        observations = self._aggregate(frame)
        errors = self.validator.validate_dates(observations)
        if errors:
            raise DataValidationError(errors[0].message, errors=errors)

        warnings = self.validator.validate_observations(observations)

        logger.info("Processed upload", mode=self.mode, rows=len(frame),
                    observations=len(observations), warnings=len(warnings))
        return observations, warnings

    def _normalize_headers(self, df: pd.DataFrame) -> pd.DataFrame:
        """Normalizes header names and applies aliases."""
        frame = df.copy()
        frame.columns = [normalize_key(col) for col in frame.columns]
        frame = frame.loc[:, ~frame.columns.duplicated()]

        for alias, target in self.header_aliases.items():
            if alias in frame.columns and target not in frame.columns:
                frame[target] = frame[alias]

        return frame

    def _aggregate(self, frame: pd.DataFrame) -> List[Observation]:
        """Sums duplicate keys ((asin, date) or date) into one observation."""
        rows = pd.DataFrame({
            "date": frame["date"].map(coerce_date),
            "spend": frame["spend"].map(coerce_number),
            "ad_revenue": frame["ad_sales"].map(coerce_number),
        })
        rows["entity_id"] = (
            frame["asin"].map(lambda v: "" if _is_blank(v) else str(v).strip())
            if self.mode == "portfolio" else ""
        )
        rows["total_revenue"] = self._optional_column(frame, "total_sales")
        rows["gross_margin_pct"] = self._optional_column(frame, "gross_margin", zero_is_blank=True)
        rows["required_net_pct"] = self._optional_column(frame, "required_net", zero_is_blank=True)

        grouped = rows.groupby(["entity_id", "date"], sort=False).agg(
            spend=("spend", "sum"),
            ad_revenue=("ad_revenue", "sum"),
            total_revenue=("total_revenue", lambda s: s.dropna().sum() if s.notna().any() else None),
            gross_margin_pct=("gross_margin_pct", lambda s: s.iloc[0]),
            required_net_pct=("required_net_pct", lambda s: s.iloc[0]),
        ).reset_index()
        grouped = grouped.sort_values("date", kind="stable")

        return [
            Observation(
                date=row.date,
                spend=float(row.spend),
                ad_revenue=float(row.ad_revenue),
                entity_id=row.entity_id or None,
                total_revenue=_optional_float(row.total_revenue),
                gross_margin_pct=_optional_float(row.gross_margin_pct),
                required_net_pct=_optional_float(row.required_net_pct),
            )
            for row in grouped.itertuples(index=False)
        ]

    def _optional_column(self, frame: pd.DataFrame, column: str, zero_is_blank: bool = False) -> pd.Series:
        """Coerced values, NaN where the cell (or whole column) is blank."""
        if column not in frame.columns:
            return pd.Series(float("nan"), index=frame.index)

        def convert(value):
            if _is_blank(value):
                return float("nan")
            number = coerce_number(value)
            if zero_is_blank and number == 0:
                return float("nan")
            return number

        return frame[column].map(convert).astype(float)


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)
