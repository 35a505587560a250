"""Recovery primitives for chain polling.

Backoff strategies, retry policies and the cancel token shared by every
polling loop in the library (receipt waits, ticket status waits, redeem
waits).
"""

import asyncio
import functools
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from .exceptions import OperationCancelled, TransientChainError

T = TypeVar("T")


@dataclass
class RetryPolicy:
    """Retry policy configuration."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: List[type] = field(
        default_factory=lambda: [TransientChainError]
    )

    def get_delay(self, attempt: int) -> float:
        """Get delay for the given attempt."""
        if attempt <= 0:
            return 0.0

        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            delay *= random.uniform(0.5, 1.5)

        return delay

    def is_retryable(self, error: BaseException) -> bool:
        """Check whether an exception should be retried under this policy."""
        return any(isinstance(error, exc_type) for exc_type in self.retryable_exceptions)


@dataclass
class BackoffStrategy:
    """Backoff strategy for polling loops."""

    strategy_type: str = "exponential"  # exponential, linear, fixed
    base_delay: float = 1.0
    max_delay: float = 15.0
    multiplier: float = 1.5
    jitter: bool = False

    def get_delay(self, attempt: int) -> float:
        """Get delay for the given attempt."""
        if attempt <= 0:
            return 0.0

        if self.strategy_type == "exponential":
            delay = self.base_delay * (self.multiplier ** (attempt - 1))
        elif self.strategy_type == "linear":
            delay = self.base_delay * attempt
        else:
            delay = self.base_delay

        delay = min(delay, self.max_delay)

        if self.jitter:
            delay *= random.uniform(0.5, 1.5)

        return delay


class CancelToken:
    """Cooperative cancellation flag for polling operations.

    Setting the token stops any loop waiting on it at its next sleep. It
    never affects transactions that were already submitted.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: Optional[str] = None) -> None:
        self.reason = reason
        self._event.set()

    def raise_if_cancelled(self, operation: str) -> None:
        if self._event.is_set():
            raise OperationCancelled(operation, metadata={"reason": self.reason})

    async def sleep(self, delay: float, operation: str) -> None:
        """Sleep for ``delay`` seconds, waking early if cancelled."""
        self.raise_if_cancelled(operation)
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled(operation)


async def cancellable_sleep(
    delay: float, cancel_token: Optional[CancelToken], operation: str
) -> None:
    if cancel_token is None:
        await asyncio.sleep(delay)
    else:
        await cancel_token.sleep(delay, operation)


async def retry_async(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    policy: Optional[RetryPolicy] = None,
    **kwargs: Any,
) -> T:
    """Await ``func`` retrying transient failures according to ``policy``."""
    policy = policy or RetryPolicy()
    last_exception: Optional[BaseException] = None

    for attempt in range(policy.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not policy.is_retryable(e):
                raise
            last_exception = e
            if attempt >= policy.max_retries:
                break
            await asyncio.sleep(policy.get_delay(attempt + 1))

    assert last_exception is not None
    raise last_exception


def with_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
):
    """Decorator for retrying coroutine functions on transient chain errors."""

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            policy = RetryPolicy(
                max_retries=max_retries,
                base_delay=base_delay,
                max_delay=max_delay,
                exponential_base=exponential_base,
                jitter=jitter,
            )
            return await retry_async(func, *args, policy=policy, **kwargs)

        return wrapper

    return decorator
