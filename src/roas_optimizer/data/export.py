"""
Tabular display and CSV export of portfolio recommendations.
"""
from typing import Optional, Sequence, Union, IO
from pathlib import Path
import pandas as pd

from roas_optimizer.optimization.portfolio import EntityOutcome, PortfolioRow

EXPORT_COLUMNS = [
    "asin", "contribution_margin", "required_mroas", "optimal_spend",
    "expected_ad_sales", "total_roas", "mroas", "current_spend",
    "delta_spend", "lift_vs_current", "organic_share", "action"
]


def _pct(value: Optional[float]) -> Optional[str]:
    return None if value is None else f"{value:.1f}%"


def _ratio(value: Optional[float]) -> Optional[str]:
    return None if value is None else f"{value:.2f}x"


def _money(value: Optional[float]) -> Optional[int]:
    return None if value is None else int(round(value))


def rows_to_frame(rows: Sequence[PortfolioRow]) -> pd.DataFrame:
    """Formats portfolio rows for display, one line per entity."""
    records = []
    for row in rows:
        if row.outcome != EntityOutcome.SUCCESS:
            records.append({"asin": row.entity_id, "action": row.action})
            continue
        records.append({
            "asin": row.entity_id,
            "contribution_margin": _pct(row.contribution_margin_pct),
            "required_mroas": _ratio(row.required_marginal_return),
            "optimal_spend": _money(row.optimal_spend),
            "expected_ad_sales": _money(row.expected_revenue),
            "total_roas": _ratio(row.total_return),
            "mroas": _ratio(row.marginal_return),
            "current_spend": _money(row.current_spend),
            "delta_spend": _money(row.delta_spend),
            "lift_vs_current": _money(row.revenue_lift),
            "organic_share": _pct(row.organic_share_pct) or "—",
            "action": row.action,
        })

    frame = pd.DataFrame.from_records(records, columns=EXPORT_COLUMNS)
    money_columns = ["optimal_spend", "expected_ad_sales", "current_spend", "delta_spend", "lift_vs_current"]
    frame[money_columns] = frame[money_columns].astype("Int64")
    return frame


def export_portfolio_csv(rows: Sequence[PortfolioRow],
                         destination: Union[str, Path, IO, None] = None) -> Optional[str]:
    """
    Writes portfolio recommendations as CSV.

    Args:
        rows: Portfolio rows
        destination: File path or buffer; when None the CSV text is returned

    Returns:
        CSV text if no destination was given
    """
    return rows_to_frame(rows).to_csv(destination, index=False)
