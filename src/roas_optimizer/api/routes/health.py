"""
Health check endpoints.
"""
from fastapi import APIRouter, HTTPException
from typing import Dict, Any
from datetime import datetime, timezone
import math

from roas_optimizer.config.settings import settings
from roas_optimizer.model.response_curves import HillParams, hill_derivative, hill_value

router = APIRouter()

# value(K) = alpha / 2 and value'(K) = alpha * gamma / (4 * K)
_CHECK_PARAMS = HillParams(alpha=1000.0, gamma=2.0, K=100.0)


def _grid_size() -> int:
    grid = settings.get_fit_grid_config()
    return len(grid["alpha"]) * len(grid["gamma"]) * len(grid["K"])


@router.get("/")
async def health_check() -> Dict[str, Any]:
    """Service status with the active fitting configuration."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.env.value,
        "version": "1.0.0",
        "fit_grid_size": _grid_size(),
        "fit_time_budget_seconds": settings.fit.time_budget_seconds,
        "min_observations": settings.portfolio.min_observations,
        "portfolio_workers": settings.portfolio.max_workers
    }


@router.get("/ready")
async def readiness_check() -> Dict[str, Any]:
    """Ready once the response curve evaluates to its closed-form values."""
    value = hill_value(_CHECK_PARAMS.K, _CHECK_PARAMS)
    slope = hill_derivative(_CHECK_PARAMS.K, _CHECK_PARAMS)
    if not (math.isclose(value, 500.0) and math.isclose(slope, 5.0)):
        raise HTTPException(status_code=503, detail="Response curve self-check failed")
    return {"status": "ready", "fit_grid_size": _grid_size()}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    return {"status": "alive"}
