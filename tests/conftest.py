"""
Pytest configuration and fixtures for ROAS optimizer tests.
"""
import pytest
import numpy as np
import pandas as pd
from fastapi.testclient import TestClient

from roas_optimizer.api.main import app
from roas_optimizer.model.observations import Observation, MarginConfig, RunSettings
from roas_optimizer.model.response_curves import HillParams


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def default_margins():
    """Gross 25% / required net 14% -> 11% contribution margin."""
    return MarginConfig.from_percentages(25, 14)


@pytest.fixture
def run_settings():
    return RunSettings(current_spend=0, max_spend=3000, seasonality="none", recency=0.3)


@pytest.fixture
def three_day_observations():
    """Minimal single-product dataset."""
    return [
        Observation(date="2025-08-01", spend=300, ad_revenue=2600, total_revenue=4200),
        Observation(date="2025-08-02", spend=400, ad_revenue=3000, total_revenue=4700),
        Observation(date="2025-08-03", spend=500, ad_revenue=3300, total_revenue=5200),
    ]


@pytest.fixture
def known_params():
    return HillParams(alpha=1000.0, gamma=2.0, K=100.0)


@pytest.fixture
def portfolio_observations():
    """Entity A1 has 2 rows, A2 has 5 rows."""
    rows = [
        Observation(entity_id="A1", date="2025-08-01", spend=300, ad_revenue=2600, total_revenue=4200),
        Observation(entity_id="A1", date="2025-08-02", spend=400, ad_revenue=3000, total_revenue=4700),
    ]
    a2 = [(200, 1600), (300, 2000), (400, 2300), (500, 2500), (600, 2650)]
    for day, (spend, revenue) in enumerate(a2, start=1):
        rows.append(Observation(
            entity_id="A2",
            date=f"2025-08-{day:02d}",
            spend=spend,
            ad_revenue=revenue,
            total_revenue=revenue * 1.6
        ))
    return rows


@pytest.fixture
def daily_observations():
    """Sixty days of noisy saturating data for one product."""
    rng = np.random.default_rng(42)
    dates = pd.date_range("2025-06-01", periods=60, freq="D")
    params = HillParams(alpha=5000.0, gamma=1.6, K=400.0)

    observations = []
    for day in dates:
        spend = float(rng.uniform(100, 800))
        ratio = (spend / params.K) ** params.gamma
        revenue = params.alpha * ratio / (1 + ratio) * float(rng.normal(1.0, 0.05))
        observations.append(Observation(
            date=day.strftime("%Y-%m-%d"),
            spend=spend,
            ad_revenue=revenue,
            total_revenue=revenue * 1.5
        ))
    return observations


@pytest.fixture
def sample_csv_text():
    """Portfolio CSV in the upload template format."""
    return (
        "asin,date,spend,ad_sales,total_sales,gross_margin,required_net\n"
        "A1,2025-08-01,300,2600,4200,25,14\n"
        "A1,2025-08-02,400,3000,4700,25,14\n"
        "A1,2025-08-03,500,3300,5200,25,14\n"
        "A2,2025-08-01,200,1600,2600,30,14\n"
        "A2,2025-08-02,260,1800,2900,30,14\n"
    )
