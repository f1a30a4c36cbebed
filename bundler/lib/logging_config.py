"""Structured logging configuration for bundler runs."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Run ID is set per pipeline run
        if hasattr(record, "run_id"):
            log_data["run_id"] = record.run_id

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Add extra fields from record.__dict__ that start with "extra_"
        for key, value in record.__dict__.items():
            if key.startswith("extra_"):
                log_data[key.replace("extra_", "")] = value

        return json.dumps(log_data, default=str)


class RunIdFilter(logging.Filter):
    """Filter to stamp the current run ID onto log records."""

    def __init__(self):
        super().__init__()
        self.run_id: Optional[str] = None

    def set_run_id(self, run_id: Optional[str]) -> None:
        """Set (or clear) the run ID for this filter."""
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        """Add run ID to record if available."""
        if self.run_id and not hasattr(record, "run_id"):
            record.run_id = self.run_id
        return True


def setup_logging(service_name: str, level: str = "INFO") -> RunIdFilter:
    """Configure structured logging for the bundler.

    Logs go to stderr so stdout stays free for the link or JSON report.

    Args:
        service_name: Name of the service (e.g., "bundler")
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        RunIdFilter instance that can be used to set the run ID
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter(service_name))

    run_id_filter = RunIdFilter()
    handler.addFilter(run_id_filter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Silence noisy third-party loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return run_id_filter


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    run_id: Optional[str] = None,
    **extra_fields: Any,
) -> None:
    """Log a message with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        run_id: Optional run ID
        **extra_fields: Additional fields to include in structured log
    """
    extra = {f"extra_{k}": v for k, v in extra_fields.items()}

    if run_id:
        extra["run_id"] = run_id

    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra)
