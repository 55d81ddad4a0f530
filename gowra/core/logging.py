"""
Loguru sinks for the Gowra API.

Import ``logger`` from here rather than from loguru directly so the sinks
below are installed exactly once.
"""
import sys
from loguru import logger
from gowra.core.config import settings

_LEVELS = {"development": "DEBUG", "test": "WARNING"}

logger.remove()

logger.add(
    sys.stdout,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level=_LEVELS.get(settings.ENVIRONMENT, "INFO"),
    colorize=settings.ENVIRONMENT == "development",
)

if settings.ENVIRONMENT == "production":
    logger.add(
        "logs/gowra.log",
        rotation="500 MB",
        retention="10 days",
        compression="zip",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        level="INFO",
    )

__all__ = ["logger"]
