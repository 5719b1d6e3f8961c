from __future__ import annotations

import functools
import logging
import random
import time
from typing import Callable, Optional, TypeVar

from fundbridge.core.errors import RpcRateLimited

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_SIGNATURES = ("rate limit", "too many requests")


def is_rate_limited(exc: BaseException) -> bool:
    msg = str(exc).lower()
    return any(sig in msg for sig in RATE_LIMIT_SIGNATURES)


def backoff_delay(attempt: int, *, base_delay: float, step: float, jitter: float) -> float:
    """attempt is 1-based: base + step * (attempt - 1) + U(0, jitter)."""
    return base_delay + step * (attempt - 1) + random.uniform(0, jitter)


def retry_on_rate_limit(
    *,
    attempts: int = 4,
    base_delay: float = 0.5,
    step: float = 0.5,
    jitter: float = 0.25,
    sleep: Optional[Callable[[float], None]] = None,
):
    """
    Decorator: retry only when the failure looks like upstream rate limiting.
    Every other exception propagates on the first occurrence.
    After `attempts` rate-limited failures raises RpcRateLimited.
    """
    do_sleep = sleep or time.sleep

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs) -> T:
            for attempt in range(1, attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except Exception as exc:
                    if not is_rate_limited(exc):
                        raise
                    if attempt >= attempts:
                        logger.warning(
                            "[chain] rate limited, giving up after %d attempts: %s",
                            attempts,
                            exc,
                        )
                        raise RpcRateLimited("RPC_RATE_LIMITED", str(exc)) from exc
                    delay = backoff_delay(attempt, base_delay=base_delay, step=step, jitter=jitter)
                    logger.info(
                        "[chain] rate limited (attempt %d/%d), retrying in %.2fs",
                        attempt,
                        attempts,
                        delay,
                    )
                    do_sleep(delay)
            raise RpcRateLimited("RPC_RATE_LIMITED")

        return wrapper

    return decorator
