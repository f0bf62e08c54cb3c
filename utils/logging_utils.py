"""Structured logging for optimization sessions."""
import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Optional

LOGGER_NAME = "prompt_optimizer"

# Optimization session the current records belong to
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)

# LogRecord attributes that are not keyword context
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "session_id"}


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: fixed fields, session id, then keyword context."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        session_id = session_id_var.get()
        if session_id:
            entry["session_id"] = session_id

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update({k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS})
        return json.dumps(entry, default=str)


class SessionFilter(logging.Filter):
    """Exposes the session id to text formatters as %(session_id)s."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = session_id_var.get() or "-"
        return True


class ContextLogger:
    """Wraps a logger so every call takes keyword context: ``logger.info("msg", iteration=2)``."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def debug(self, message: str, **context):
        self.logger.debug(message, extra=context)

    def info(self, message: str, **context):
        self.logger.info(message, extra=context)

    def warning(self, message: str, **context):
        self.logger.warning(message, extra=context)

    def error(self, message: str, **context):
        # exc_info travels as a keyword, not as context
        exc_info = context.pop("exc_info", None)
        self.logger.error(message, extra=context, exc_info=exc_info)

    def exception(self, message: str, **context):
        self.logger.exception(message, extra=context)


def _make_handler(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setFormatter(formatter)
    handler.addFilter(SessionFilter())
    return handler


def setup_logging(
    level: Optional[str] = None,
    format_type: Optional[str] = None,
    log_file: Optional[str] = None
) -> ContextLogger:
    """
    Configure the optimizer logger and return a ContextLogger for it.

    Args:
        level: DEBUG, INFO, WARNING or ERROR (defaults to LOG_LEVEL)
        format_type: "json" or "text" (defaults to LOG_FORMAT)
        log_file: Also write records to this file

    Logs go to stderr so the tqdm progress bar keeps stdout.
    """
    from config.optimization_config import OptimizationConfig

    level = level or OptimizationConfig.LOG_LEVEL
    format_type = format_type or OptimizationConfig.LOG_FORMAT

    if format_type == "json":
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s [%(session_id)s] %(name)s: %(message)s")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()
    logger.addHandler(_make_handler(logging.StreamHandler(sys.stderr), formatter))
    if log_file:
        logger.addHandler(_make_handler(logging.FileHandler(log_file), formatter))

    return ContextLogger(logger)


def set_session_id(session_id: str) -> Token:
    """
    Tag subsequent records in this context with an optimization session id.

    Returns:
        Token to pass to reset_session_id() when the session ends
    """
    return session_id_var.set(session_id)


def reset_session_id(token: Token):
    """Restore the session id that was current before set_session_id()."""
    session_id_var.reset(token)


def get_session_id() -> Optional[str]:
    return session_id_var.get()
