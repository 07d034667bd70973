import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from app.config.settings import settings
from app.utils.context import get_request_id

LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"

DEFAULT_LOGGING_CONFIG: Dict[str, Any] = {
    "log_dir": "logs",
    "filename": "report-gate.log",
    "level": "info",
    "rotation": "20 MB",
    "retention": "14 days",
    "console_format": "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | {extra[request_id]} | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    "file_format": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[request_id]} | {name}:{function}:{line} - {message}",
    "use_json_logs": False,
}

# Standard-library loggers routed into loguru
INTERCEPTED_LOGGERS = ["uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "celery"]


class InterceptHandler(logging.Handler):
    """Forwards standard logging records to loguru, tagged with the request id."""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(request_id=get_request_id() or "app").opt(
            depth=depth, exception=record.exc_info
        ).log(level, record.getMessage())


class CustomizeLogger:
    @classmethod
    def make_logger(cls, config_path: Path, section: str, level: Optional[str] = None):
        config = {**DEFAULT_LOGGING_CONFIG, **cls.load_logging_config(config_path, section)}
        return cls.customize_logging(config, (level or config["level"]).upper())

    @classmethod
    def customize_logging(cls, config: Dict[str, Any], level: str):
        logger.remove()
        logger.configure(extra={"request_id": "app"})

        # Console logger with colors
        logger.add(
            sys.stdout,
            enqueue=True,
            backtrace=True,
            level=level,
            format=config["console_format"],
            colorize=True,
        )

        # Daily file, rotated by size; JSON lines when configured
        file_options: Dict[str, Any] = {
            "rotation": config["rotation"],
            "retention": config["retention"],
            "enqueue": True,
            "backtrace": True,
            "level": level,
            "colorize": False,
        }
        if config["use_json_logs"]:
            file_options["serialize"] = True
        else:
            file_options["format"] = config["file_format"]

        filename = f"{date.today().strftime('%Y-%m-%d')}-{config['filename']}"
        logger.add(str(Path(config["log_dir"]) / filename), **file_options)

        cls._setup_intercept_handlers()
        return logger

    @staticmethod
    def _setup_intercept_handlers():
        logging.basicConfig(handlers=[InterceptHandler()], level=0)
        for log_name in INTERCEPTED_LOGGERS:
            logging.getLogger(log_name).handlers = [InterceptHandler()]

    @staticmethod
    def load_logging_config(config_path: Path, section: str) -> Dict[str, Any]:
        """Read one section of the JSON config; a missing file means defaults."""
        if not config_path.exists():
            return {}
        with open(config_path) as config_file:
            config = json.load(config_file)
        return config.get(section, config.get("logger", {}))


# Initialize logger
custom_logger = CustomizeLogger.make_logger(
    LOGGING_CONFIG_PATH,
    "production" if settings.ENVIRONMENT == "production" else "logger",
    level=settings.LOG_LEVEL,
)


def get_logger():
    """Get the custom logger instance with request ID binding."""
    return custom_logger.bind(request_id=get_request_id() or "app")
