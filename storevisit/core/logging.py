"""Logging setup driven by LOG_LEVEL and LOG_FORMAT."""
import logging
import sys

from pythonjsonlogger.json import JsonFormatter

from storevisit.config import settings

TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def build_formatter(log_format: str) -> logging.Formatter:
    """One JSON document per record for ``json``, a plain line otherwise."""
    if log_format == "json":
        return JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
            json_ensure_ascii=False,
        )
    return logging.Formatter(TEXT_FORMAT)


def setup_logging() -> None:
    """Configure the root logger once for the application."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_formatter(settings.LOG_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.LOG_LEVEL.upper())
