"""Exponential backoff with full jitter for transient cluster API failures."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from resealer.errors import TransportError
from resealer.models.config import RetryConfig
from resealer.observability.metrics import retries_total

T = TypeVar("T")

_log = structlog.get_logger(component="reconcile.retry")


def backoff_delay(attempt: int, base: float, cap: float, rng: random.Random | None = None) -> float:
    """Full-jitter delay before retry number *attempt* (1-based)."""
    ceiling = min(cap, base * (2 ** (attempt - 1)))
    return (rng or random).uniform(0, ceiling)


async def retry_transport(
    operation: Callable[[], Awaitable[T]],
    policy: RetryConfig,
    *,
    description: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **log_context: object,
) -> T:
    """Run *operation*, retrying retryable TransportErrors up to ``policy.transport_attempts``.

    Non-retryable transport errors and every other exception propagate on the
    first occurrence. The last TransportError is re-raised once attempts run out.
    """
    for attempt in range(1, policy.transport_attempts + 1):
        try:
            return await operation()
        except TransportError as exc:
            if not exc.retryable or attempt >= policy.transport_attempts:
                raise
            delay = backoff_delay(attempt, policy.backoff_base, policy.backoff_max)
            retries_total.labels(kind="transport").inc()
            _log.warning(
                "transport_retry",
                operation=description,
                attempt=attempt,
                max_attempts=policy.transport_attempts,
                delay_s=round(delay, 3),
                status=exc.status,
                error=exc.detail,
                **log_context,
            )
            await sleep(delay)
    raise AssertionError("unreachable")  # pragma: no cover
