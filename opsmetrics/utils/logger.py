"""
Logging configuration

Console output always. With log_to_file set, three rotated sinks under
log_dir: the engine log, errors, and fetch failures tagged with their DAG
stage (records bound with fetch_stage).
"""
from loguru import logger
import sys
from opsmetrics.config import Settings, get_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FETCH_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {extra[fetch_stage]} | {message}"


def is_fetch_failure(record) -> bool:
    return "fetch_stage" in record["extra"]


def setup_logger(settings: Settings = None):
    """Configure logger sinks from settings"""
    settings = settings or get_settings()
    logger.remove()

    logger.add(sys.stdout, colorize=True, format=CONSOLE_FORMAT, level=settings.log_level)

    if not settings.log_to_file:
        return logger

    logger.add(
        f"{settings.log_dir}/opsmetrics_{{time:YYYY-MM-DD}}.log",
        rotation="00:00",
        retention="30 days",
        compression="zip",
        level="INFO"
    )
    logger.add(
        f"{settings.log_dir}/errors_{{time:YYYY-MM-DD}}.log",
        rotation="00:00",
        retention="90 days",
        level="ERROR"
    )
    # Batch timeouts and provider errors only, one line per failed stage
    logger.add(
        f"{settings.log_dir}/fetch_failures_{{time:YYYY-MM-DD}}.log",
        rotation="00:00",
        retention="90 days",
        level="ERROR",
        format=FETCH_FORMAT,
        filter=is_fetch_failure,
    )

    return logger


log = setup_logger()
