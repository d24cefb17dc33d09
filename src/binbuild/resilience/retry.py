"""Retry helpers: exponential backoff for transport errors, re-fetch on conflict."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import BaseModel, Field

from binbuild.core.exceptions import APIConnectionError, BinaryBuildError, ConflictError
from binbuild.resilience.polling import poll_until

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class RetryPolicy(BaseModel):
    """Configurable retry policy with exponential backoff.

    Attributes:
        max_retries: Maximum number of retry attempts (0 = no retries).
        backoff_base: Base delay in seconds for exponential backoff.
        backoff_max: Maximum delay in seconds (caps the exponential growth).
        jitter: If ``True``, add random jitter to the backoff delay.
        retryable_exceptions: Tuple of exception types that are eligible for retry.
    """

    max_retries: int = Field(default=3, ge=0, le=50)
    backoff_base: float = Field(default=0.5, ge=0.0)
    backoff_max: float = Field(default=10.0, ge=0.0)
    jitter: bool = True
    retryable_exceptions: tuple[type[Exception], ...] = (APIConnectionError,)

    model_config = {"arbitrary_types_allowed": True}

    def _is_retryable(self, exc: Exception) -> bool:
        """Determine whether an exception should be retried.

        An exception whose own class overrides ``is_retryable`` decides for
        itself; anything else is retried when it is an instance of one of
        the configured ``retryable_exceptions``.
        """
        if isinstance(exc, BinaryBuildError):
            for klass in type(exc).__mro__:
                if klass is BinaryBuildError:
                    break
                if "is_retryable" in klass.__dict__:
                    return bool(exc.is_retryable)

        return isinstance(exc, self.retryable_exceptions)

    def _compute_delay(self, attempt: int) -> float:
        """Compute the backoff delay for the given attempt (0-indexed)."""
        delay: float = min(self.backoff_base * (2 ** attempt), self.backoff_max)
        if self.jitter:
            delay = random.uniform(0, delay)  # noqa: S311
        return delay

    async def execute(
        self,
        fn: Callable[..., Awaitable[_T]],
        *args: Any,
        **kwargs: Any,
    ) -> _T:
        """Execute *fn* with retry logic.

        Calls ``await fn(*args, **kwargs)`` and retries on retryable
        exceptions up to ``max_retries`` times with exponential backoff.

        Raises:
            Exception: The last exception raised by *fn* if all retries are
                exhausted, or immediately if the exception is not retryable.
        """
        for attempt in range(1 + self.max_retries):
            try:
                return await fn(*args, **kwargs)
            except Exception as exc:
                if not self._is_retryable(exc) or attempt >= self.max_retries:
                    raise

                delay = self._compute_delay(attempt)
                logger.info(
                    "Retry attempt %d/%d after %.2fs: %s",
                    attempt + 1,
                    self.max_retries,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)

        raise AssertionError("unreachable")  # pragma: no cover


async def retry_on_conflict(
    mutate: Callable[[], Awaitable[Any]],
    refresh: Callable[[], Awaitable[Any]],
    *,
    interval: float,
    timeout: float,
) -> None:
    """Apply an optimistic-concurrency mutation until it sticks.

    *mutate* submits the intended change against the current snapshot.  On
    :class:`ConflictError` *refresh* re-reads the latest version (and is
    expected to re-apply the change to it), then the mutation is retried
    every *interval* seconds until *timeout* elapses.

    Raises:
        PollTimeoutError: If every attempt within *timeout* conflicted.
        Exception: Any non-conflict error from *mutate* or any error from
            *refresh*, immediately.
    """

    async def _attempt() -> bool:
        try:
            await mutate()
        except ConflictError as exc:
            logger.debug("Update conflicted, re-fetching: %s", exc)
            await refresh()
            return False
        return True

    await poll_until(_attempt, interval=interval, timeout=timeout)
