from datetime import datetime, timedelta, timezone

import pytest

from flinkoperator.retry import (
    DEFAULT_RETRIES,
    FlinkApplicationError,
    RetryHandler,
    SystemClock,
    get_non_retryable_error,
    get_non_retryable_error_with_message,
    get_retryable_error,
    get_retryable_error_with_message,
    new_flink_application_error,
)


class FakeClock:
    def __init__(self, current):
        self.current = current

    def now(self):
        return self.current


def make_retryer():
    return RetryHandler(
        timedelta(milliseconds=10), timedelta(milliseconds=10), timedelta(milliseconds=50)
    )


def test_get_error_messages():
    test_err = RuntimeError("Service unavailable")
    ferr = get_non_retryable_error(test_err, "GetTest", "500")
    assert str(ferr) == "GetTest call failed with status 500 and message '': Service unavailable"

    ferr_nil = get_non_retryable_error(None, "GetTest", "500")
    assert str(ferr_nil) == "GetTest call failed with status 500 and message ''"

    wrapped = RuntimeError("Wrapped errors: Service unavailable")
    ferr_wrapped = get_non_retryable_error(wrapped, "GetTestWrapped", "400")
    assert (
        str(ferr_wrapped)
        == "GetTestWrapped call failed with status 400 and message '': Wrapped errors: Service unavailable"
    )

    ferr_message = get_non_retryable_error_with_message(
        RuntimeError("Test Error"), "GetTest", "500", "message"
    )
    assert str(ferr_message) == "GetTest call failed with status 500 and message 'message': Test Error"


def test_errors_retryable_flag():
    retryer = make_retryer()
    ferr = get_retryable_error(RuntimeError("GetClusterOverview500"), "GetTest", "500", DEFAULT_RETRIES)
    assert retryer.is_error_retryable(ferr)

    ferr = get_non_retryable_error(RuntimeError("SubmitJob400BadRequest"), "GetTest", "500")
    assert not retryer.is_error_retryable(ferr)


def test_non_application_errors_are_not_retryable():
    retryer = make_retryer()
    assert not retryer.is_error_retryable(None)
    assert not retryer.is_error_retryable(RuntimeError("plain"))
    assert not retryer.is_retry_remaining(RuntimeError("plain"), 0)


def test_error_fields():
    ferr = get_retryable_error_with_message(None, "SubmitJob", "503", 5, "body")
    assert ferr.method == "SubmitJob"
    assert ferr.error_code == "503"
    assert ferr.max_retries == 5
    assert ferr.is_retryable and not ferr.is_fail_fast
    assert ferr.last_error_update_time is not None and ferr.last_error_update_time.tzinfo is not None

    fail_fast = get_non_retryable_error(None, "SubmitJob", "400")
    assert fail_fast.is_fail_fast and fail_fast.max_retries == 0


def test_new_error_is_raisable():
    err = new_flink_application_error("boom", "GetJobs", "FAILED", True, False, 3)
    assert isinstance(err, FlinkApplicationError)
    assert str(err) == "boom"
    assert err.method == "GetJobs"
    assert err.error_code == "FAILED"
    assert err.max_retries == 3
    with pytest.raises(FlinkApplicationError, match="boom") as info:
        raise err
    assert info.value is err


def test_get_retry_delay_is_capped():
    retryer = make_retryer()
    cap = timedelta(milliseconds=50)
    assert retryer.get_retry_delay(20) <= cap
    assert retryer.get_retry_delay(1) <= cap
    assert retryer.get_retry_delay(200) <= cap


def test_get_retry_delay_first_attempt_within_base_range():
    retryer = make_retryer()
    for _ in range(50):
        delay = retryer.get_retry_delay(0)
        assert timedelta(milliseconds=10) <= delay < timedelta(milliseconds=20)


def test_get_retry_delay_huge_shift_collapses_to_zero():
    assert make_retryer().get_retry_delay(200) == timedelta(0)


def test_is_retry_remaining():
    ferr = get_retryable_error(RuntimeError("GetClusterOverview500"), "GetTest", "500", DEFAULT_RETRIES)
    retryer = make_retryer()
    assert retryer.is_retry_remaining(ferr, 2)
    assert not retryer.is_retry_remaining(ferr, 22)


def test_is_time_to_retry():
    retryer = make_retryer()
    now = datetime.now(timezone.utc)
    older = now - timedelta(seconds=5)
    assert retryer.is_time_to_retry(FakeClock(now), older, 0)


def test_is_not_time_to_retry_immediately():
    retryer = make_retryer()
    now = datetime.now(timezone.utc)
    assert not retryer.is_time_to_retry(FakeClock(now), now, 0)


def test_wait_on_error():
    retryer = make_retryer()
    now = datetime.now(timezone.utc)
    elapsed, within = retryer.wait_on_error(FakeClock(now), now - timedelta(milliseconds=5))
    assert elapsed == timedelta(milliseconds=5)
    assert within
    elapsed, within = retryer.wait_on_error(FakeClock(now), now - timedelta(seconds=1))
    assert elapsed == timedelta(seconds=1)
    assert not within


def test_system_clock_is_current():
    before = datetime.now(timezone.utc)
    reading = SystemClock().now()
    after = datetime.now(timezone.utc)
    assert before <= reading <= after