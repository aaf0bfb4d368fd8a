"""Bounded retry with a fixed backoff between attempts."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, Tuple, Type, TypeVar

from ..asyncio_utils import Sleeper
from ..logging_utils import LoggerLike, ensure_structured_logger

T = TypeVar("T")


@dataclass(frozen=True)
class RetryResult(Generic[T]):
    """Outcome of ``with_retry``."""
    value: Optional[T]
    attempts: int
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


async def with_retry(
    operation: Callable[[int], Awaitable[T]],
    *,
    max_attempts: int,
    backoff_s: float,
    label: str = "operation",
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    logger: LoggerLike = None,
    sleep: Sleeper = asyncio.sleep,
) -> RetryResult[T]:
    """Run ``operation(attempt)`` until it succeeds or ``max_attempts`` is reached.

    ``attempt`` is 1-based. The backoff is only awaited between attempts,
    never after the last one. Errors outside ``retry_on`` propagate, and so
    does cancellation.
    """
    log = ensure_structured_logger(logger, fallback_name="Retry")
    max_attempts = max(1, int(max_attempts))
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            value = await operation(attempt)
            return RetryResult(value=value, attempts=attempt)
        except asyncio.CancelledError:
            raise
        except retry_on as exc:
            last_error = exc
            log.warning("%s failed (attempt %d/%d): %s", label, attempt, max_attempts, exc)
            if attempt < max_attempts:
                await sleep(backoff_s)

    return RetryResult(value=None, attempts=max_attempts, error=last_error)


__all__ = ["RetryResult", "with_retry"]
