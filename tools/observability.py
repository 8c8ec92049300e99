"""Timing and outcome logging for sync and maintenance operations."""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Any, Callable, Dict, ParamSpec, TypeVar

from wardrobe_app.logging_config import CORRELATION_ID, get_logger, log_event, operation_context

LOGGER = get_logger(__name__)
P = ParamSpec("P")
R = TypeVar("R")


def _outcome(result: Any) -> Dict[str, Any]:
    """Summarise a return value: sync results by their counters, ints as counts."""

    if hasattr(result, "success") and hasattr(result, "to_dict"):
        summary = result.to_dict()
        summary.pop("error", None)
        return summary
    if isinstance(result, int) and not isinstance(result, bool):
        return {"count": result}
    return {}


def instrument_operation(operation_name: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Log start, completion and failure of an operation with its duration.

    Operations nested inside another operation share its correlation id. A
    returned result with ``success=False`` is logged at warning level even
    though no exception escaped.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            with operation_context(operation_name, correlation_id=CORRELATION_ID.get()):
                start = time.perf_counter()
                log_event(LOGGER, logging.INFO, "operation_started")
                try:
                    result = func(*args, **kwargs)
                except Exception:
                    log_event(
                        LOGGER,
                        logging.ERROR,
                        "operation_failed",
                        duration_ms=round((time.perf_counter() - start) * 1000, 2),
                        exc_info=True,
                    )
                    raise
                outcome = _outcome(result)
                level = logging.WARNING if outcome.get("success") is False else logging.INFO
                log_event(
                    LOGGER,
                    level,
                    "operation_completed",
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                    **outcome,
                )
                return result

        return wrapper

    return decorator


__all__ = ["instrument_operation"]
