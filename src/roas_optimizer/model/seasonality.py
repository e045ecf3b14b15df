"""
Seasonal adjustment of ad revenue.

Revenue is divided by a per-period multiplicative factor before fitting and
model outputs are multiplied by the factor of the current (latest) period.
"""
from typing import Dict, List, Sequence
from dataclasses import dataclass, field
from enum import Enum
import pandas as pd


class SeasonalityMode(Enum):
    NONE = "none"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass
class SeasonalAdjustment:
    adjusted_revenue: List[float]
    current_factor: float
    factors: Dict[int, float] = field(default_factory=dict)


class SeasonalAdjuster:
    """Removes weekly or monthly effects from ad revenue."""

    def __init__(self, mode="none"):
        self.mode = SeasonalityMode(mode) if not isinstance(mode, SeasonalityMode) else mode

    def adjust(self, observations: Sequence) -> SeasonalAdjustment:
        """
        Deseasonalize chronologically sorted observations.

        Args:
            observations: Observations sorted by date ascending

        Returns:
            SeasonalAdjustment with adjusted revenue, per-bucket factors and
            the factor of the latest observation's bucket
        """
        revenue = [float(obs.ad_revenue) for obs in observations]

        if self.mode == SeasonalityMode.NONE or not observations:
            return SeasonalAdjustment(adjusted_revenue=revenue, current_factor=1.0)

        buckets = self._buckets([obs.date for obs in observations])
        frame = pd.DataFrame({"bucket": buckets, "revenue": revenue})

        overall_avg = frame["revenue"].sum() / max(len(frame), 1)
        group_avg = frame.groupby("bucket", sort=False)["revenue"].mean()

        factors = {}
        for bucket, avg in group_avg.items():
            factors[int(bucket)] = float(avg / overall_avg) if avg > 0 else 1.0

        adjusted = [
            value / (factors.get(bucket) or 1.0)
            for value, bucket in zip(revenue, buckets)
        ]
        current_factor = factors.get(buckets[-1]) or 1.0

        return SeasonalAdjustment(
            adjusted_revenue=adjusted,
            current_factor=current_factor,
            factors=factors
        )

    def _buckets(self, dates: Sequence[str]) -> List[int]:
        """Day of week (0-6, Monday first) or month (0-11) for each date."""
        parsed = pd.to_datetime(pd.Series(list(dates)), format="mixed")
        if self.mode == SeasonalityMode.WEEKLY:
            return parsed.dt.dayofweek.astype(int).tolist()
        return (parsed.dt.month - 1).astype(int).tolist()
