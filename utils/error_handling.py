"""Optimizer exceptions and the error-reporting decorator."""
from enum import Enum
from functools import wraps
from typing import Callable, TypeVar

T = TypeVar("T")


class PromptOptimizerError(Exception):
    """Base class for optimizer errors."""


class OracleError(PromptOptimizerError):
    """The completion oracle could not produce a reply (strict mode only)."""


class ConversationNotFoundError(PromptOptimizerError):
    """No conversation is registered under the given id."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def handle_errors(
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    log_error: bool = True,
    reraise: bool = True
):
    """
    Report exceptions escaping the wrapped function.

    Every failure is counted in the ``errors`` metric, tagged with the
    severity and the function name, and optionally logged.

    Args:
        severity: How bad a failure of this entry point is
        log_error: Log the failure (the session id is attached by the logger)
        reraise: Re-raise after reporting; otherwise return None
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                from utils.logging_utils import setup_logging
                from utils.metrics import get_metrics_collector

                get_metrics_collector().increment(
                    "errors",
                    tags={"severity": severity.value, "function": func.__qualname__}
                )
                if log_error:
                    setup_logging().error(
                        f"{func.__qualname__} failed: {e}",
                        severity=severity.value,
                        exception_type=type(e).__name__
                    )
                if reraise:
                    raise
                return None

        return wrapper
    return decorator
