"""
Logging configuration utilities.
"""
import logging
import logging.handlers
import structlog
from pathlib import Path

from roas_optimizer.config.settings import settings


def setup_logging(level: str = None):
    """Configure structured logging for the application."""
    level = (level or settings.logging.level).upper()

    settings.setup_directories()
    log_dir = Path(settings.logging.log_dir)

    timestamper = structlog.processors.TimeStamper(fmt="ISO")
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.logging.use_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format=settings.logging.format,
        level=getattr(logging, level),
        handlers=[
            logging.StreamHandler(),
            logging.handlers.RotatingFileHandler(
                filename=log_dir / "roas_optimizer.log",
                maxBytes=settings.logging.max_file_size_mb * 1024 * 1024,
                backupCount=settings.logging.backup_count
            )
        ]
    )

    # Set logging levels for third-party libraries
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)
