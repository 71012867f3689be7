"""
Fail-open policy for collaborator-backed operations.

Analyzer and memory-layer boundaries never fail a recommendation request;
they log and hand back an "empty" result built by the fallback instead.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")


def fail_open(
    fallback: Callable[..., T], *, label: str | None = None
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorate an async callable so any exception is logged and replaced by
    `fallback(*args, **kwargs)`, called with the original arguments.
    """

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = label or fn.__qualname__

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await fn(*args, **kwargs)
            except Exception as exc:
                log.warning("%s failed, degrading to empty result: %s", name, exc)
                return fallback(*args, **kwargs)

        return wrapper

    return decorator
