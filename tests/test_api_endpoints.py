"""
API endpoint tests for the ROAS optimizer.
"""
import pytest
from fastapi import status


def _payload(rows, **extra):
    payload = {"observations": rows}
    payload.update(extra)
    return payload


@pytest.fixture
def single_rows():
    return [
        {"date": "2025-08-01", "spend": 300, "ad_sales": 2600, "total_sales": 4200},
        {"date": "2025-08-02", "spend": 400, "ad_sales": 3000, "total_sales": 4700},
        {"date": "2025-08-03", "spend": 500, "ad_sales": 3300, "total_sales": 5200},
    ]


@pytest.fixture
def portfolio_rows(single_rows):
    rows = [dict(row, asin="A1") for row in single_rows]
    rows += [
        {"asin": "A2", "date": "2025-08-01", "spend": 200, "ad_sales": 1600},
        {"asin": "A2", "date": "2025-08-02", "spend": 260, "ad_sales": 1800},
    ]
    return rows


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_basic_health_check(self, client):
        response = client.get("/api/health/")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "version" in data
        assert data["min_observations"] == 3
        assert data["fit_grid_size"] == 75

    def test_readiness_check(self, client):
        response = client.get("/api/health/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "ready"
        assert response.json()["fit_grid_size"] == 75

    def test_liveness_check(self, client):
        response = client.get("/api/health/live")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "alive"


class TestDataEndpoints:
    """Test CSV parsing."""

    def test_parse_portfolio_csv(self, client, sample_csv_text):
        response = client.post("/api/data/parse", json={"csv": sample_csv_text, "mode": "portfolio"})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data["observations"]) == 5
        assert data["observations"][0]["asin"] == "A1"
        assert data["observations"][0]["ad_sales"] == 2600
        assert [warning["code"] for warning in data["warnings"]] == ["WARNING_003"]

    def test_parse_missing_columns(self, client):
        response = client.post("/api/data/parse", json={"csv": "date,spend\n2025-08-01,10\n"})

        assert response.status_code == 422
        assert response.json()["issues"][0]["code"] == "ERROR_001"

    def test_parse_invalid_mode(self, client, sample_csv_text):
        response = client.post("/api/data/parse", json={"csv": sample_csv_text, "mode": "hourly"})

        assert response.status_code == 422


class TestOptimizationEndpoints:
    """Test single and portfolio optimization."""

    def test_single_optimization(self, client, single_rows):
        response = client.post("/api/optimization/single", json=_payload(
            single_rows,
            margins={"gross_margin": 25, "required_net": 14},
            settings={"current_spend": 0, "max_spend": 3000, "seasonality": "none", "recency": 0.3}
        ))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["margins"]["contribution_margin"] == 11
        assert data["margins"]["required_mroas"] == pytest.approx(9.0909, rel=1e-4)
        assert isinstance(data["result"]["feasible"], bool)
        assert data["result"]["delta_spend"] is None
        assert len(data["response_curve"]["spend_levels"]) == 120
        assert data["response_curve"]["spend_levels"][-1] >= 3000

    def test_single_with_current_spend(self, client, single_rows):
        response = client.post("/api/optimization/single", json=_payload(
            single_rows, settings={"current_spend": 400}
        ))

        assert response.status_code == status.HTTP_200_OK
        result = response.json()["result"]
        assert result["delta_spend"] == pytest.approx(result["optimal_spend"] - 400)

    def test_single_insufficient_data(self, client, single_rows):
        response = client.post("/api/optimization/single", json=_payload(single_rows[:2]))

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_single_non_positive_margin(self, client, single_rows):
        response = client.post("/api/optimization/single", json=_payload(
            single_rows, margins={"gross_margin": 10, "required_net": 14}
        ))

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_invalid_date_is_rejected(self, client, single_rows):
        rows = [dict(row) for row in single_rows]
        rows[1]["date"] = "not-a-date"

        for seasonality in ("weekly", "none"):
            response = client.post("/api/optimization/single", json=_payload(
                rows, settings={"seasonality": seasonality}
            ))
            assert response.status_code == 422

    def test_dates_are_normalized(self, client, single_rows):
        rows = [dict(row) for row in single_rows]
        rows[0]["date"] = "8/1/2025"
        rows[1]["date"] = "2025-8-2"

        response = client.post("/api/optimization/single", json=_payload(
            rows, settings={"seasonality": "weekly"}
        ))

        assert response.status_code == status.HTTP_200_OK

    def test_unfittable_data(self, client):
        body = (
            '{"observations": ['
            '{"date": "2025-08-01", "spend": 300, "ad_sales": NaN},'
            '{"date": "2025-08-02", "spend": 400, "ad_sales": NaN},'
            '{"date": "2025-08-03", "spend": 500, "ad_sales": NaN}]}'
        )

        response = client.post(
            "/api/optimization/single", content=body, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 422
        assert response.json()["error"] == "Optimization failed"

    def test_invalid_recency(self, client, single_rows):
        response = client.post("/api/optimization/single", json=_payload(
            single_rows, settings={"recency": 1.5}
        ))

        assert response.status_code == 422

    def test_portfolio_optimization(self, client, portfolio_rows):
        response = client.post("/api/optimization/portfolio", json=_payload(portfolio_rows))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [row["entity_id"] for row in data["rows"]] == ["A1", "A2"]

        success, insufficient = data["rows"]
        assert success["outcome"] == "success"
        assert success["current_spend"] == 500
        assert success["organic_share_pct"] is not None
        assert insufficient["outcome"] == "insufficient_data"
        assert insufficient["optimal_spend"] is None
        assert sum(data["summary"].values()) == 1

    def test_portfolio_export(self, client, portfolio_rows):
        response = client.post("/api/optimization/portfolio/export", json=_payload(portfolio_rows))

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]

        lines = response.text.splitlines()
        assert lines[0].startswith("asin,contribution_margin,required_mroas")
        assert len(lines) == 3
        assert lines[2].startswith("A2,")
