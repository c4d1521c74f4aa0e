import logging
import sys
from pathlib import Path
from loguru import logger

from pydantic import BaseModel

from upsc_pyq.config import get_settings


class LogConfig(BaseModel):
    """Logging configuration"""
    LOGGER_NAME: str = "upsc_pyq"
    LOG_FORMAT: str = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    LOG_DIR: str = "logs"
    CONSOLE_LEVEL: str = "INFO"

    @property
    def debug_file(self) -> str:
        return str(Path(self.LOG_DIR) / "debug.log")

    @property
    def info_file(self) -> str:
        return str(Path(self.LOG_DIR) / "info.log")

    @property
    def error_file(self) -> str:
        return str(Path(self.LOG_DIR) / "error.log")


class InterceptHandler(logging.Handler):
    def emit(self, record):
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(config: LogConfig = None):
    """Set up loguru sinks and route stdlib logging through them."""
    if config is None:
        settings = get_settings()
        config = LogConfig(LOG_DIR=settings.LOG_DIR, CONSOLE_LEVEL=settings.LOG_LEVEL)

    Path(config.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logger.remove()

    # Debug logs - Contains all logs
    logger.add(
        config.debug_file,
        rotation="1 day",
        retention="1 week",
        format=config.LOG_FORMAT,
        level="DEBUG",
        compression="zip"
    )

    # Info logs - Contains info and above
    logger.add(
        config.info_file,
        rotation="1 day",
        retention="1 month",
        format=config.LOG_FORMAT,
        level="INFO",
        compression="zip",
    )

    # Error logs - Contains only error and critical
    logger.add(
        config.error_file,
        rotation="1 day",
        retention="3 months",
        format=config.LOG_FORMAT,
        level="ERROR",
        compression="zip",
    )

    logger.add(
        sys.stdout,
        format=config.LOG_FORMAT,
        level=config.CONSOLE_LEVEL,
        colorize=True
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # uvicorn and fastapi install their own handlers
    for _log in ["uvicorn", "uvicorn.error", "fastapi", "httpx"]:
        _logger = logging.getLogger(_log)
        _logger.handlers = [InterceptHandler()]

    return logger


class OperationLogger:
    """Logs the start, completion or failure of a named operation.

    Extra keyword arguments are attached to every record as structured fields.
    Fields added with ``bind`` after entering are included in the closing record.
    """

    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.extra = kwargs

    def bind(self, **kwargs):
        self.extra.update(kwargs)
        return self

    def __enter__(self):
        logger.info(
            f"Starting operation: {self.operation_name}",
            operation=self.operation_name,
            **self.extra
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                f"Operation failed: {self.operation_name}",
                operation=self.operation_name,
                error=str(exc_val),
                **self.extra
            )
        else:
            logger.info(
                f"Operation completed: {self.operation_name}",
                operation=self.operation_name,
                **self.extra
            )
