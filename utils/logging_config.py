"""
Structured logging for the assistant engine.

Modules log through get_logger(__name__). The event helpers attach their
fields with ``extra=`` so StructuredFormatter can emit one JSON object per
record; nothing here ever logs message content beyond its length.
"""

import json
import logging
import logging.handlers
import threading
import time
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from config.app_config import AppConfig, LoggingConfig, get_config

# Attributes every LogRecord has; anything else came in through `extra=`
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

ERROR_LOGGER_NAME = "chatbot.errors"


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, extra fields nested under "fields" """

    def __init__(self, service: str = "portfolio-assistant"):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        if record.exc_info and record.exc_info[0] is not None:
            error_type, error, tb = record.exc_info
            entry["exception"] = {
                "type": error_type.__name__,
                "message": str(error),
                "traceback": traceback.format_exception(error_type, error, tb),
            }

        fields = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}
        if fields:
            entry["fields"] = fields

        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(logging_config: LoggingConfig, debug: bool = False) -> logging.Logger:
    """
    Configure the root logger

    Args:
        logging_config: Level, console format and file settings
        debug: Human-readable console output instead of JSON

    Returns:
        logging.Logger: The configured root logger
    """
    level = getattr(logging, logging_config.level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(logging_config.format) if debug else StructuredFormatter())
    root_logger.addHandler(console_handler)

    if logging_config.enable_file_logging:
        log_file_path = Path(logging_config.log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    # Provider SDK chatter drowns out the engine's own records
    for noisy in ("httpx", "openai", "langfuse"):
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


@contextmanager
def log_execution_time(logger: logging.Logger, operation: str, **fields):
    """
    Log how long the wrapped block took, and whether it raised

    Args:
        logger: Logger instance
        operation: Short operation name, e.g. "ai_response"
        **fields: Extra fields for both records
    """
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        logger.warning(f"Failed {operation}: {e}", extra={
            "operation": operation,
            "duration_ms": duration_ms,
            "status": "error",
            "error_type": type(e).__name__,
            **fields
        })
        raise

    duration_ms = round((time.perf_counter() - started) * 1000, 1)
    logger.info(f"Completed {operation}", extra={
        "operation": operation,
        "duration_ms": duration_ms,
        "status": "success",
        **fields
    })


def log_user_interaction(logger: logging.Logger, interaction_type: str, **details):
    """Processed messages and resets; details never include the message text"""
    logger.info("User interaction", extra={
        "event_type": "user_interaction",
        "interaction_type": interaction_type,
        **details
    })


def log_model_usage(logger: logging.Logger, model: str, usage: Optional[Mapping[str, Any]] = None, **details):
    """
    Token usage of one provider call

    Args:
        logger: Logger instance
        model: Model name
        usage: Provider usage metadata (input_tokens, output_tokens,
            total_tokens); missing counts are logged as 0
    """
    usage = usage or {}
    logger.info("Model usage", extra={
        "event_type": "model_usage",
        "model": model,
        "input_tokens": usage.get("input_tokens", 0),
        "output_tokens": usage.get("output_tokens", 0),
        "tokens_used": usage.get("total_tokens", 0),
        **details
    })


def log_conversation_event(logger: logging.Logger, event_type: str, conversation_id: str, **details):
    """Session lifecycle: started, resumed, trimmed, reset"""
    logger.info("Conversation event", extra={
        "event_type": "conversation_event",
        "conversation_event_type": event_type,
        "conversation_id": conversation_id,
        **details
    })


class ErrorTracker:
    """
    Counts the errors the engine absorbs (provider, storage and response
    failures) so they stay visible even though users never see them.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.error_counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def track_error(self, error: Exception, context: str = "", **extra_info) -> int:
        """
        Count and log an absorbed error

        Args:
            error: The absorbed exception
            context: Where it was absorbed, e.g. "sqlite_store.save"
            **extra_info: Additional fields for the log record

        Returns:
            int: How often this error type has been seen in this context
        """
        error_type = type(error).__name__
        key = f"{error_type}:{context}"

        with self._lock:
            count = self.error_counts.get(key, 0) + 1
            self.error_counts[key] = count

        self.logger.warning(f"Error in {context}: {error}", extra={
            "event_type": "error",
            "error_type": error_type,
            "context": context,
            "error_count": count,
            **extra_info
        })
        return count

    def get_error_summary(self) -> Dict[str, Any]:
        with self._lock:
            counts = dict(self.error_counts)

        by_context: Dict[str, int] = {}
        for key, count in counts.items():
            context = key.split(":", 1)[1]
            by_context[context] = by_context.get(context, 0) + count

        return {
            "total_errors": sum(counts.values()),
            "unique_errors": len(counts),
            "error_breakdown": counts,
            "by_context": by_context,
        }

    def reset(self) -> None:
        with self._lock:
            self.error_counts.clear()


# Global instances
_logger_setup = False
_error_tracker: Optional[ErrorTracker] = None


def initialize_logging(config: Optional[AppConfig] = None) -> ErrorTracker:
    """
    Configure logging once per process and return the error tracker

    Args:
        config: Application configuration (defaults to get_config())
    """
    global _logger_setup

    if not _logger_setup:
        config = config or get_config()
        setup_logging(config.logging, debug=config.debug)
        _logger_setup = True

    return get_error_tracker()


def get_error_tracker() -> ErrorTracker:
    """Get the error tracker without touching handlers"""
    global _error_tracker
    if _error_tracker is None:
        _error_tracker = ErrorTracker(logging.getLogger(ERROR_LOGGER_NAME))
    return _error_tracker
