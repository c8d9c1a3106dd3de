"""Flink application errors and exponential-backoff retry decisions."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol

GLOBAL_FAILURE = "FAILED"
JSON_UNMARSHAL_ERROR = "JSONUNMARSHALERROR"
DEFAULT_RETRIES = 20
NO_RETRIES = 0

_INT64_MASK = (1 << 64) - 1


class FlinkApplicationError(Exception):
    """An error from a call against a Flink cluster, with its retry policy."""

    def __init__(
        self,
        app_error: str,
        method: str,
        error_code: str,
        is_retryable: bool,
        is_fail_fast: bool,
        max_retries: int,
        last_error_update_time: datetime | None = None,
    ) -> None:
        super().__init__(app_error)
        self.app_error = app_error
        self.method = method
        self.error_code = error_code
        self.is_retryable = is_retryable
        self.is_fail_fast = is_fail_fast
        self.max_retries = max_retries
        self.last_error_update_time = last_error_update_time

    def __str__(self) -> str:
        return self.app_error


def _error_value(err: BaseException | None, method: str, error_code: str, message: str) -> str:
    text = f"{method} call failed with status {error_code} and message '{message}'"
    return text if err is None else f"{text}: {err}"


def new_flink_application_error(
    app_error: str,
    method: str,
    error_code: str,
    is_retryable: bool,
    is_fail_fast: bool,
    max_retries: int,
) -> FlinkApplicationError:
    """Build an error stamped with the current time."""
    return FlinkApplicationError(
        app_error,
        method,
        error_code,
        is_retryable,
        is_fail_fast,
        max_retries,
        datetime.now(timezone.utc),
    )


def get_retryable_error_with_message(
    err: BaseException | None, method: str, error_code: str, max_retries: int, message: str
) -> FlinkApplicationError:
    """Build a retryable error allowing ``max_retries`` retries."""
    return new_flink_application_error(
        _error_value(err, method, error_code, message), method, error_code, True, False, max_retries
    )


def get_retryable_error(
    err: BaseException | None, method: str, error_code: str, max_retries: int
) -> FlinkApplicationError:
    """Build a retryable error with an empty message."""
    return get_retryable_error_with_message(err, method, error_code, max_retries, "")


def get_non_retryable_error_with_message(
    err: BaseException | None, method: str, error_code: str, message: str
) -> FlinkApplicationError:
    """Build an error that must fail fast."""
    return new_flink_application_error(
        _error_value(err, method, error_code, message), method, error_code, False, True, NO_RETRIES
    )


def get_non_retryable_error(
    err: BaseException | None, method: str, error_code: str
) -> FlinkApplicationError:
    """Build a fail-fast error with an empty message."""
    return get_non_retryable_error_with_message(err, method, error_code, "")


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """A clock reading the real time."""

    def now(self) -> datetime:
        """Return the current time in UTC."""
        return datetime.now(timezone.utc)


def _to_int64(value: int) -> int:
    value &= _INT64_MASK
    return value - (1 << 64) if value >> 63 else value


def _whole_millis(duration: timedelta) -> int:
    return duration // timedelta(milliseconds=1)


@dataclass
class RetryHandler:
    """Decides whether and when a failed call is retried."""

    base_backoff: timedelta
    max_err_duration: timedelta
    max_backoff: timedelta
    _rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    def is_error_retryable(self, err: BaseException | None) -> bool:
        """Whether ``err`` is an application error marked retryable."""
        return isinstance(err, FlinkApplicationError) and err.is_retryable

    def is_retry_remaining(self, err: BaseException | None, retry_count: int) -> bool:
        """Whether ``retry_count`` is still within the error's retry budget."""
        return isinstance(err, FlinkApplicationError) and retry_count <= err.max_retries

    def wait_on_error(self, clock: Clock, last_updated_time: datetime) -> tuple[timedelta, bool]:
        """Return the time since the last update and whether it is within the error window."""
        elapsed = clock.now() - last_updated_time
        return elapsed, elapsed <= self.max_err_duration

    def get_retry_delay(self, retry_count: int) -> timedelta:
        """Return the randomised exponential delay before retry number ``retry_count``."""
        base_millis = _whole_millis(self.base_backoff)
        if base_millis <= 0:
            base_millis = 1
        max_millis = _whole_millis(self.max_backoff)
        jittered = self._rng.randrange(base_millis) + base_millis
        if 0 <= retry_count < 64:
            delay = _to_int64(_to_int64(1 << retry_count) * jittered)
        else:
            delay = 0
        return timedelta(milliseconds=min(delay, max_millis))

    def is_time_to_retry(self, clock: Clock, last_updated_time: datetime, retry_count: int) -> bool:
        """Whether enough time has passed since the last update to retry again."""
        elapsed = clock.now() - last_updated_time
        return elapsed >= self.get_retry_delay(retry_count)