"""
Spend optimization endpoints.
"""
import asyncio
from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
import structlog

from roas_optimizer.api.schemas import (
    OptimizationRequestSchema,
    SingleOptimizationResponseSchema,
    PortfolioResponseSchema,
)
from roas_optimizer.data.export import export_portfolio_csv
from roas_optimizer.optimization.optimizer import SingleEntityOptimizer, chart_curve
from roas_optimizer.optimization.portfolio import PortfolioOptimizer, summarize_actions
from roas_optimizer.utils.exceptions import ValidationError

router = APIRouter()
logger = structlog.get_logger()


@router.post("/single", response_model=SingleOptimizationResponseSchema)
async def optimize_single_entity(request: OptimizationRequestSchema):
    """
    Recommend the optimal daily spend for one product.

    Args:
        request: Observations, margins and run settings

    Returns:
        Optimization result, resolved margins and response curve series
    """
    margin_config = request.margins.to_margin_config()
    run_settings = request.settings.to_run_settings()
    observations = [obs.to_observation() for obs in request.observations]

    logger.info("Starting single optimization",
                observations=len(observations),
                contribution_margin_pct=margin_config.contribution_margin_pct)

    optimizer = SingleEntityOptimizer()
    try:
        result, fit = await asyncio.to_thread(
            optimizer.optimize_with_fit, observations, margin_config, run_settings
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "result": result.to_dict(),
        "margins": {
            "gross_margin": margin_config.gross_margin_pct,
            "required_net": margin_config.required_net_pct,
            "contribution_margin": margin_config.contribution_margin_pct,
            "required_mroas": margin_config.required_marginal_return
        },
        "response_curve": chart_curve(fit, result, run_settings)
    }


@router.post("/portfolio", response_model=PortfolioResponseSchema)
async def optimize_portfolio_entities(request: OptimizationRequestSchema):
    """Recommend spend per product. Failing products are reported as rows."""
    rows = await _run_portfolio(request)
    return {
        "rows": [row.to_dict() for row in rows],
        "summary": summarize_actions(rows)
    }


@router.post("/portfolio/export")
async def export_portfolio(request: OptimizationRequestSchema) -> Response:
    """Portfolio recommendations as a CSV download."""
    rows = await _run_portfolio(request)
    return Response(
        content=export_portfolio_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=portfolio_recommendations.csv"}
    )


async def _run_portfolio(request: OptimizationRequestSchema):
    observations = [obs.to_observation() for obs in request.observations]
    optimizer = PortfolioOptimizer()
    return await asyncio.to_thread(
        optimizer.optimize,
        observations,
        request.margins.to_margin_config(),
        request.settings.to_run_settings()
    )
