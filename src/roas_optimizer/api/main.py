"""
Main FastAPI application for the ROAS optimizer.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog
import traceback
import time
from contextlib import asynccontextmanager

from roas_optimizer.config.settings import settings
from roas_optimizer.api.routes import data, optimization, health
from roas_optimizer.utils.exceptions import DataValidationError, OptimizationError, ValidationError
from roas_optimizer.utils.logging import setup_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Reload workers import the app directly, not through the CLI
    setup_logging()
    logger.info("Starting ROAS optimizer API server", environment=settings.env.value)
    yield
    logger.info("Shutting down ROAS optimizer API server")


app = FastAPI(
    title="ROAS Spend Optimizer API",
    description="Recommends the daily ad spend whose marginal ROAS meets the required return",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development() else None,
    redoc_url="/redoc" if settings.is_development() else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.cors_origins,
    allow_credentials=True,
    allow_methods=settings.api.cors_methods,
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    start_time = time.time()

    response = await call_next(request)

    logger.info(
        "HTTP request processed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        process_time=time.time() - start_time
    )

    return response


@app.exception_handler(DataValidationError)
async def data_validation_exception_handler(request: Request, exc: DataValidationError):
    """Upload problems are returned with their issue codes."""
    logger.warning("Data validation failed", url=str(request.url), issues=len(exc.errors))
    return JSONResponse(
        status_code=422,
        content={"error": str(exc), "issues": [issue.to_dict() for issue in exc.errors]}
    )


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError):
    """Validation errors that escape a route are client errors."""
    logger.warning("Validation error", url=str(request.url), error=str(exc))
    return JSONResponse(status_code=400, content={"error": "Validation error", "detail": str(exc)})


@app.exception_handler(OptimizationError)
async def optimization_exception_handler(request: Request, exc: OptimizationError):
    """Data that cannot be fitted is reported as unprocessable."""
    logger.warning("Optimization failed", url=str(request.url), error=str(exc))
    return JSONResponse(status_code=422, content={"error": "Optimization failed", "detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        method=request.method,
        url=str(request.url)
    )

    if settings.is_development():
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc),
                "traceback": traceback.format_exc()
            }
        )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred"
        }
    )


app.include_router(health.router, prefix="/api/health", tags=["health"])
app.include_router(data.router, prefix="/api/data", tags=["data"])
app.include_router(optimization.router, prefix="/api/optimization", tags=["optimization"])


@app.get("/api/info")
async def api_info():
    """API information endpoint."""
    return {
        "message": "ROAS Spend Optimizer API",
        "version": "1.0.0",
        "environment": settings.env.value,
        "min_observations": settings.portfolio.min_observations,
        "seasonality_modes": ["none", "weekly", "monthly"],
        "fit_grid": settings.get_fit_grid_config()
    }
