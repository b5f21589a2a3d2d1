"""Retry state machine and backoff policies.

Every retried call walks the same states:

    ATTEMPTING(n) -> SUCCESS
                  -> RETRYING(backoff) -> ATTEMPTING(n + 1)
                  -> EXHAUSTED

A policy decides, per failed attempt, whether the error is retryable and how
long to back off. The sleep function is injectable so the machine can be
exercised without waiting. Attempt bookkeeping is delegated to tenacity.
"""

import asyncio
import random
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from shared.errors import RetryExhaustedError, UpstreamRequestError

T = TypeVar("T")


class RetryState(str, Enum):
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


TransitionCallback = Callable[[RetryState, int, float | None], None]


##########################################
################ POLICIES ################
##########################################

class RetryPolicyInterface(ABC):
    def __init__(self, max_attempts: int = 5) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts

    @abstractmethod
    def get_backoff(self, attempt: int, error: Exception) -> float | None:
        """Return the delay in seconds before the next attempt.

        Args:
            attempt (int): Zero-based index of the attempt that just failed.
            error (Exception): The error raised by that attempt.

        Returns:
            float | None: Seconds to wait, or None if the error must propagate unretried.
        """
        pass

    def is_retryable(self, error: BaseException) -> bool:
        # cancellation and interpreter exits are never retried
        return isinstance(error, Exception)


class EmbeddingRetryPolicy(RetryPolicyInterface):
    """Retries every failure with base * 1.5^attempt, optionally jittered.

    Used by the query-time embedding adapter where model loading, malformed
    payloads and transport errors are all treated as transient.
    """

    def __init__(self, max_attempts: int = 5, base_delay: float = 3.0, jitter: float = 0.0) -> None:
        super().__init__(max_attempts=max_attempts)
        self.base_delay = base_delay
        self.jitter = jitter

    def get_backoff(self, attempt: int, error: Exception) -> float | None:
        delay = self.base_delay * (1.5 ** attempt)
        if self.jitter:
            delay += random.uniform(0, self.jitter)
        return delay


class RequestRetryPolicy(RetryPolicyInterface):
    """Retries only rate limits and server errors reported by an upstream.

    * HTTP 429: base * 2^attempt + up to one second of jitter
    * HTTP 5xx: server_base * 1.5^attempt
    * anything else: not retried
    """

    def __init__(self, max_attempts: int = 5, base_delay: float = 2.0, server_base_delay: float = 1.0) -> None:
        super().__init__(max_attempts=max_attempts)
        self.base_delay = base_delay
        self.server_base_delay = server_base_delay

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(error, UpstreamRequestError) and (error.is_rate_limited() or error.is_server_error())

    def get_backoff(self, attempt: int, error: Exception) -> float | None:
        if not isinstance(error, UpstreamRequestError):
            return None
        if error.is_rate_limited():
            return self.base_delay * (2 ** attempt) + random.uniform(0, 1)
        if error.is_server_error():
            return self.server_base_delay * (1.5 ** attempt)
        return None


##########################################
############# STATE MACHINE ##############
##########################################

class HelperRetry:
    """Runs an async operation under a retry policy, driven by tenacity."""

    def __init__(
        self,
        policy: RetryPolicyInterface,
        logger: Any,
        label: str = "request",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.policy = policy
        self.logging = logger
        self.label = label
        self._sleep = sleep

    async def run(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        on_transition: TransitionCallback | None = None,
        **kwargs: Any,
    ) -> T:
        """Call operation(*args, **kwargs) until it succeeds or the policy gives up.

        Args:
            operation: Coroutine function to call.
            on_transition: Optional observer called with (state, attempt, delay).

        Returns:
            T: The operation's result.

        Raises:
            RetryExhaustedError: If all attempts failed with retryable errors.
            Exception: Any error the policy declines to retry, unchanged.
        """
        max_attempts = self.policy.max_attempts

        def transition(state: RetryState, attempt: int, delay: float | None = None) -> None:
            if on_transition is not None:
                on_transition(state, attempt, delay)

        def wait(retry_state: RetryCallState) -> float:
            return self.policy.get_backoff(retry_state.attempt_number - 1, retry_state.outcome.exception()) or 0.0

        def before_sleep(retry_state: RetryCallState) -> None:
            delay = retry_state.next_action.sleep
            self.logging.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.2fs...",
                self.label, retry_state.attempt_number, max_attempts, retry_state.outcome.exception(), delay,
            )
            transition(RetryState.RETRYING, retry_state.attempt_number - 1, delay)

        def on_exhausted(retry_state: RetryCallState) -> None:
            last_error = retry_state.outcome.exception()
            self.logging.error("%s failed after %d attempt(s): %s", self.label, max_attempts, last_error)
            transition(RetryState.EXHAUSTED, max_attempts - 1)
            raise RetryExhaustedError(max_attempts, last_error) from last_error

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait,
            retry=retry_if_exception(self.policy.is_retryable),
            before_sleep=before_sleep,
            retry_error_callback=on_exhausted,
            sleep=self._sleep,
        )
        async for attempt in retrying:
            attempt_index = attempt.retry_state.attempt_number - 1
            transition(RetryState.ATTEMPTING, attempt_index)
            with attempt:
                result = await operation(*args, **kwargs)
            if not attempt.retry_state.outcome.failed:
                transition(RetryState.SUCCESS, attempt_index)
        return result
