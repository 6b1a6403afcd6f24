"""Small helpers shared by the pipelines."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def best_effort(
    action: Callable[..., T],
    *args: Any,
    description: str = "",
    default: T | None = None,
    **kwargs: Any,
) -> T | None:
    """Run a side call whose failure must never affect the caller.

    Exceptions are logged with traceback and `default` is returned instead.
    """
    try:
        return action(*args, **kwargs)
    except Exception:
        logger.warning(
            "Best-effort step failed: %s",
            description or getattr(action, "__name__", repr(action)),
            exc_info=True,
        )
        return default


class Timer:
    """Monotonic stopwatch reporting milliseconds."""

    def __init__(self) -> None:
        self._start = time.perf_counter()

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000.0

    def elapsed_seconds(self) -> float:
        return time.perf_counter() - self._start

    def reset(self) -> None:
        self._start = time.perf_counter()
