"""
Data ingestion endpoints.
"""
from io import StringIO
from fastapi import APIRouter, HTTPException
import structlog

from roas_optimizer.api.schemas import ParseRequestSchema, ParseResponseSchema, ObservationSchema
from roas_optimizer.config.settings import settings
from roas_optimizer.data.processor import DataProcessor
from roas_optimizer.utils.exceptions import FileProcessingError

router = APIRouter()
logger = structlog.get_logger()


@router.post("/parse", response_model=ParseResponseSchema)
async def parse_csv(request: ParseRequestSchema) -> ParseResponseSchema:
    """
    Parse pasted CSV text into normalized, aggregated observations.

    Header aliases are applied and duplicate keys are summed.
    Structural problems (missing columns, no rows) are answered with 422 and
    their issue codes by the application-level handler.
    """
    if len(request.csv.encode("utf-8")) > settings.ingestion.max_upload_size:
        raise HTTPException(status_code=413, detail="CSV payload too large")

    processor = DataProcessor(request.mode.value)
    try:
        observations, warnings = processor.load_csv(StringIO(request.csv))
    except FileProcessingError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("CSV parsed", mode=request.mode.value, observations=len(observations))

    return ParseResponseSchema(
        observations=[ObservationSchema.from_observation(obs) for obs in observations],
        warnings=[issue.to_dict() for issue in warnings]
    )
