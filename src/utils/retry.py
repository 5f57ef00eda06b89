"""
Retry helper with exponential backoff.

Two callers rely on it: the review engine retries a review state write once
after a ConcurrencyError, and the push dispatcher retries a gateway call once
after a transport error. Anything not listed in ``exceptions`` propagates on
the first failure.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    base_delay: float = 0.05
    max_delay: float = 5.0
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number *attempt* (1-based)."""
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay += delay * random.uniform(0, self.jitter)
        return delay


async def with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    max_attempts: int = 2,
    base_delay: float = 0.05,
    exceptions: Sequence[Type[BaseException]] = (ConnectionError, TimeoutError),
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying on *exceptions*.

    Usage:
        state = await with_retry(
            self._submit_once, key, grade, request_id, now,
            max_attempts=2,
            exceptions=(ConcurrencyError,),
        )

    The last exception is re-raised once the attempts run out.
    """
    policy = policy or RetryPolicy(max_attempts=max_attempts, base_delay=base_delay)
    retry_on = tuple(exceptions)
    name = getattr(func, "__qualname__", repr(func))

    attempt = 1
    while True:
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            if attempt >= policy.max_attempts:
                logger.error(
                    f"{name} failed after {attempt} attempt(s): {type(e).__name__}: {e}"
                )
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                f"{name} attempt {attempt}/{policy.max_attempts} failed: "
                f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
            attempt += 1
