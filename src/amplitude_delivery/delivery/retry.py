"""
Module: delivery/retry.py
Description: Retry policy for chunk delivery.

Encodes the retry decision table for the Amplitude APIs and exposes it
as tenacity wait/retry strategies:

    200            -> stop, success
    400, 413       -> stop, fatal
    429            -> wait the throttle cooldown, retry while attempts remain
    5xx, transport -> wait the linear backoff base, retry while attempts remain
    anything else  -> stop, fatal
"""

import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from tenacity import RetryCallState, Retrying, stop_after_attempt

from amplitude_delivery.delivery.transport import TransportResponse
from amplitude_delivery.exceptions import TransportFailure
from amplitude_delivery.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

CLIENT_ERROR_CODES = frozenset({400, 413})
THROTTLE_CODE = 429
SERVER_ERROR_CODES = frozenset({500, 502, 503, 504})


class RetryAction(str, Enum):
    SUCCESS = 'success'
    RETRY = 'retry'
    FATAL = 'fatal'


@dataclass(frozen=True)
class RetryDecision:
    """What to do after an attempt, and how long to wait first."""

    action: RetryAction
    delay_seconds: float = 0.0
    reason: str = ''

    @property
    def should_retry(self) -> bool:
        return self.action is RetryAction.RETRY


class RetryPolicy:
    """
    Bounded retry with a fixed throttle cooldown and linear backoff.

    Attributes:
        retry_count: Retries allowed after the first attempt
        retry_delay_ms: Backoff base for server and transport failures
        throttle_cooldown_seconds: Wait after a 429
        jitter_ms: Upper bound of random delay added to every wait
        sleep: Blocking sleep function used between attempts
    """

    def __init__(
        self,
        retry_count: int = 3,
        retry_delay_ms: int = 2000,
        throttle_cooldown_seconds: float = 30,
        jitter_ms: int = 0,
        sleep: Callable[[float], None] = time.sleep
    ):
        if retry_count < 0:
            raise ValueError("retry_count must not be negative")
        if retry_delay_ms < 0 or jitter_ms < 0:
            raise ValueError("retry delays must not be negative")
        if throttle_cooldown_seconds < 30:
            raise ValueError("throttle_cooldown_seconds must be at least 30")

        self.retry_count = retry_count
        self.retry_delay_ms = retry_delay_ms
        self.throttle_cooldown_seconds = throttle_cooldown_seconds
        self.jitter_ms = jitter_ms
        self.sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self.retry_count + 1

    def decide(
        self,
        attempt: int,
        status_code: Optional[int] = None,
        failure: Optional[BaseException] = None
    ) -> RetryDecision:
        """
        Classify the outcome of attempt number ``attempt`` (1-based).

        Args:
            attempt: Attempt just made
            status_code: HTTP status received, if any
            failure: Exception raised instead of a response, if any

        Returns:
            RetryDecision with the action and the wait before the next attempt
        """
        if failure is not None:
            if not isinstance(failure, TransportFailure):
                return RetryDecision(RetryAction.FATAL, reason=f"unexpected error: {failure}")
            return self._retry_or_exhaust(attempt, self.backoff_seconds(), f"transport failure: {failure}")

        if status_code == 200:
            return RetryDecision(RetryAction.SUCCESS)
        if status_code in CLIENT_ERROR_CODES:
            return RetryDecision(RetryAction.FATAL, reason=f"client error {status_code}")
        if status_code == THROTTLE_CODE:
            return self._retry_or_exhaust(attempt, self.throttle_cooldown_seconds, "throttled")
        if status_code in SERVER_ERROR_CODES:
            return self._retry_or_exhaust(attempt, self.backoff_seconds(), f"server error {status_code}")
        return RetryDecision(RetryAction.FATAL, reason=f"unexpected status {status_code}")

    def backoff_seconds(self) -> float:
        return self.retry_delay_ms / 1000

    def _retry_or_exhaust(self, attempt: int, delay: float, reason: str) -> RetryDecision:
        if attempt >= self.max_attempts:
            return RetryDecision(RetryAction.FATAL, reason=f"{reason}; retries exhausted")
        if self.jitter_ms:
            delay += random.uniform(0, self.jitter_ms) / 1000
        return RetryDecision(RetryAction.RETRY, delay_seconds=delay, reason=reason)

    def decide_state(self, retry_state: RetryCallState) -> RetryDecision:
        """Apply decide() to a tenacity attempt outcome."""
        outcome = retry_state.outcome
        if outcome.failed:
            return self.decide(retry_state.attempt_number, failure=outcome.exception())
        response: TransportResponse = outcome.result()
        return self.decide(retry_state.attempt_number, status_code=response.status_code)

    def _should_retry(self, retry_state: RetryCallState) -> bool:
        return self.decide_state(retry_state).should_retry

    def _wait(self, retry_state: RetryCallState) -> float:
        return self.decide_state(retry_state).delay_seconds

    def _log_retry(self, retry_state: RetryCallState) -> None:
        decision = self.decide_state(retry_state)
        logger.warning(
            "Retrying request",
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            reason=decision.reason,
            sleep_seconds=retry_state.next_action.sleep if retry_state.next_action else None
        )

    def retrying(self) -> Retrying:
        """
        Build a tenacity controller for one delivery.

        When retries run out, the last response is returned (or the last
        TransportFailure re-raised) so the caller classifies it.
        """
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=self._should_retry,
            sleep=self.sleep,
            before_sleep=self._log_retry,
            retry_error_callback=lambda state: state.outcome.result(),
        )

    def call(self, fn: Callable[[], T]) -> T:
        """Run fn under this policy."""
        return self.retrying()(fn)
