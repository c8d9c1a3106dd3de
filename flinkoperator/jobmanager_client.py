"""Client for the REST API of a Flink job manager."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, TypeVar

import requests

from .config import Counter, MetricsScope, RuntimeConfig
from .entities import (
    CheckpointResponse,
    CheckpointStatistics,
    ClusterOverviewResponse,
    FlinkJobOverview,
    GetJobsResponse,
    JobConfigResponse,
    SavepointJobRequest,
    SavepointJobResponse,
    SavepointResponse,
    SubmitJobRequest,
    SubmitJobResponse,
    TaskManagersResponse,
)
from .retry import (
    DEFAULT_RETRIES,
    GLOBAL_FAILURE,
    JSON_UNMARSHAL_ERROR,
    FlinkApplicationError,
    get_non_retryable_error,
    get_non_retryable_error_with_message,
    get_retryable_error,
    get_retryable_error_with_message,
)

_log = logging.getLogger(__name__)
_T = TypeVar("_T")

GET_JOBS_OVERVIEW_URL = "/jobs/{}"
GET_CLUSTER_OVERVIEW_URL = "/overview"
WEB_UI_ANCHOR = "/#"

CANCEL_JOB_WITH_SAVEPOINT = "CancelJobWithSavepoint"
SAVEPOINT_JOB = "SavepointJob"
FORCE_CANCEL_JOB = "ForceCancelJob"
SUBMIT_JOB = "SubmitJob"
CHECK_SAVEPOINT_STATUS = "CheckSavepointStatus"
GET_JOBS = "GetJobs"
GET_CLUSTER_OVERVIEW = "GetClusterOverview"
GET_LATEST_CHECKPOINT = "GetLatestCheckpoint"
GET_JOB_CONFIG = "GetJobConfig"
GET_TASK_MANAGERS = "GetTaskManagers"
GET_CHECKPOINT_COUNTS = "GetCheckpointCounts"
GET_JOB_OVERVIEW = "GetJobOverview"

_SUBMIT_JOB_URL = "/jars/{}/run"
_SAVEPOINT_URL = "/jobs/{}/savepoints"
_JOB_URL = "/jobs/{}"
_CHECK_SAVEPOINT_STATUS_URL = "/jobs/{}/savepoints/{}"
_GET_JOBS_URL = "/jobs"
_GET_JOB_CONFIG_URL = "/jobs/{}/config"
_CHECKPOINTS_URL = "/jobs/{}/checkpoints"
_TASKMANAGERS_URL = "/taskmanagers"

_HTTP_GET = "GET"
_HTTP_POST = "POST"
_HTTP_PATCH = "PATCH"
_RETRY_COUNT = 3
_HTTP_GET_TIMEOUT = 5.0
_DEFAULT_TIMEOUT = 300.0
_MAX_RETRY_WAIT = 2.0
_CHECK_SAVEPOINT_STATUS_RETRIES = 3
_SAVEPOINT_RETRIES = 5

# Raised when the entry class does not exist or throws.
_PROGRAM_INVOCATION_EXCEPTION = "org.apache.flink.client.program.ProgramInvocationException"
# Raised when the job cannot be submitted (incompatible savepoint, invalid job graph, ...).
_JOB_SUBMISSION_EXCEPTION = "org.apache.flink.runtime.client.JobSubmissionException"


@dataclass
class _Metrics:
    submit_job_success: Counter
    submit_job_failure: Counter
    cancel_job_success: Counter
    cancel_job_failure: Counter
    force_cancel_job_success: Counter
    force_cancel_job_failure: Counter
    check_savepoint_success: Counter
    check_savepoint_failure: Counter
    get_jobs_success: Counter
    get_jobs_failure: Counter
    get_job_config_success: Counter
    get_job_config_failure: Counter
    get_cluster_success: Counter
    get_cluster_failure: Counter
    get_checkpoints_success: Counter
    get_checkpoints_failure: Counter
    savepoint_job_success: Counter
    savepoint_job_failure: Counter

    @classmethod
    def create(cls, scope: MetricsScope) -> _Metrics:
        sub = scope.new_sub_scope("flink_jm_client")
        return cls(
            submit_job_success=sub.counter("submit_job_success", "Flink job submission successful"),
            submit_job_failure=sub.counter("submit_job_failure", "Flink job submission failed"),
            cancel_job_success=sub.counter("cancel_job_success", "Flink job cancellation successful"),
            cancel_job_failure=sub.counter("cancel_job_failure", "Flink job cancellation failed"),
            force_cancel_job_success=sub.counter(
                "force_cancel_job_success", "Flink forced job cancellation successful"),
            force_cancel_job_failure=sub.counter(
                "force_cancel_job_failure", "Flink forced job cancellation failed"),
            check_savepoint_success=sub.counter(
                "check_savepoint_status_success", "Flink check savepoint status successful"),
            check_savepoint_failure=sub.counter(
                "check_savepoint_status_failure", "Flink check savepoint status failed"),
            get_jobs_success=sub.counter("get_jobs_success", "Get flink jobs succeeded"),
            get_jobs_failure=sub.counter("get_jobs_failure", "Get flink jobs failed"),
            get_job_config_success=sub.counter("get_job_config_success", "Get flink job config succeeded"),
            get_job_config_failure=sub.counter("get_job_config_failure", "Get flink job config failed"),
            get_cluster_success=sub.counter("get_cluster_success", "Get cluster overview succeeded"),
            get_cluster_failure=sub.counter("get_cluster_failure", "Get cluster overview failed"),
            get_checkpoints_success=sub.counter("get_checkpoints_success", "Get checkpoint request succeeded"),
            get_checkpoints_failure=sub.counter("get_checkpoints_failed", "Get checkpoint request failed"),
            savepoint_job_success=sub.counter("savepoint_job_success", "Savepoint job request succeeded"),
            savepoint_job_failure=sub.counter("savepoint_job_failed", "Savepoint job request failed"),
        )


def _is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300


def _status(response: requests.Response) -> str:
    reason = response.reason
    if not reason:
        try:
            reason = HTTPStatus(response.status_code).phrase
        except ValueError:
            reason = ""
    return f"{response.status_code} {reason}".rstrip()


def _decode(response: requests.Response, parser: Callable[[Any], _T]) -> _T:
    return parser(response.json())


class FlinkJobManagerClient:
    """Talks to the job manager of a Flink cluster and reports failures as retry-aware errors."""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        *,
        session: requests.Session | None = None,
        retry_wait: float = 0.1,
    ) -> None:
        runtime = config if config is not None else RuntimeConfig()
        self._metrics = _Metrics.create(runtime.metrics_scope)
        self._session = session if session is not None else requests.Session()
        self._retry_wait = retry_wait

    def _execute_request(self, method: str, url: str, payload: Any = None) -> requests.Response:
        if method == _HTTP_GET:
            attempts = _RETRY_COUNT + 1
            for attempt in range(attempts):
                try:
                    return self._session.get(url, timeout=_HTTP_GET_TIMEOUT)
                except requests.RequestException:
                    if attempt == attempts - 1:
                        raise
                    wait = min(self._retry_wait * (2 ** attempt), _MAX_RETRY_WAIT)
                    if wait > 0:
                        time.sleep(wait)
        if method == _HTTP_PATCH:
            return self._session.patch(url, timeout=_DEFAULT_TIMEOUT)
        if method == _HTTP_POST:
            return self._session.post(url, json=payload, timeout=_DEFAULT_TIMEOUT)
        raise ValueError(f"Invalid method {method} in request")

    def get_job_config(self, url: str, job_id: str) -> JobConfigResponse:
        """Return the configuration of job ``job_id``."""
        endpoint = url + _GET_JOB_CONFIG_URL.format(job_id)
        try:
            response = self._execute_request(_HTTP_GET, endpoint)
        except requests.RequestException as exc:
            self._metrics.get_job_config_failure.inc()
            raise get_retryable_error(exc, GET_JOB_CONFIG, GLOBAL_FAILURE, DEFAULT_RETRIES) from exc
        if not _is_success(response):
            self._metrics.get_job_config_failure.inc()
            _log.error("Get Jobconfig failed with response %s", _status(response))
            raise get_retryable_error(None, GET_JOB_CONFIG, _status(response), DEFAULT_RETRIES)
        try:
            result = _decode(response, JobConfigResponse.from_dict)
        except ValueError as exc:
            _log.error("Unable to Unmarshal jobPlanResponse %s, err: %s", response.text, exc)
            raise get_retryable_error(exc, GET_JOB_CONFIG, JSON_UNMARSHAL_ERROR, DEFAULT_RETRIES) from exc
        self._metrics.get_job_config_success.inc()
        return result

    def get_cluster_overview(self, url: str) -> ClusterOverviewResponse:
        """Return the task manager and slot summary of the cluster."""
        endpoint = url + GET_CLUSTER_OVERVIEW_URL
        try:
            response = self._execute_request(_HTTP_GET, endpoint)
        except requests.RequestException as exc:
            self._metrics.get_cluster_failure.inc()
            raise get_retryable_error(exc, GET_CLUSTER_OVERVIEW, GLOBAL_FAILURE, DEFAULT_RETRIES) from exc
        if not _is_success(response):
            self._metrics.get_cluster_failure.inc()
            if response.status_code not in (HTTPStatus.NOT_FOUND, HTTPStatus.SERVICE_UNAVAILABLE):
                _log.error("Get cluster overview failed with response %s", _status(response))
            raise get_retryable_error(None, GET_CLUSTER_OVERVIEW, _status(response), DEFAULT_RETRIES)
        try:
            result = _decode(response, ClusterOverviewResponse.from_dict)
        except ValueError as exc:
            _log.error("Unable to Unmarshal clusterOverviewResponse %s, err: %s", response.text, exc)
            raise get_retryable_error(
                exc, GET_CLUSTER_OVERVIEW, JSON_UNMARSHAL_ERROR, DEFAULT_RETRIES) from exc
        self._metrics.get_cluster_success.inc()
        return result

    def cancel_job_with_savepoint(self, url: str, job_id: str) -> str:
        """Cancel the job while taking a savepoint; return the savepoint trigger id."""
        endpoint = url + _SAVEPOINT_URL.format(job_id)
        body = SavepointJobRequest(cancel_job=True).to_dict()
        try:
            response = self._execute_request(_HTTP_POST, endpoint, body)
        except requests.RequestException as exc:
            self._metrics.cancel_job_failure.inc()
            raise get_retryable_error(
                exc, CANCEL_JOB_WITH_SAVEPOINT, GLOBAL_FAILURE, _SAVEPOINT_RETRIES) from exc
        if not _is_success(response):
            self._metrics.cancel_job_failure.inc()
            _log.error("Cancel job failed with response %s", _status(response))
            raise get_retryable_error(
                None, CANCEL_JOB_WITH_SAVEPOINT, _status(response), _SAVEPOINT_RETRIES)
        try:
            result = _decode(response, SavepointJobResponse.from_dict)
        except ValueError as exc:
            _log.error("Unable to Unmarshal cancelJobResponse %s, err: %s", response.text, exc)
            raise get_retryable_error(
                exc, CANCEL_JOB_WITH_SAVEPOINT, JSON_UNMARSHAL_ERROR, _SAVEPOINT_RETRIES) from exc
        self._metrics.cancel_job_success.inc()
        return result.trigger_id

    def force_cancel_job(self, url: str, job_id: str) -> None:
        """Cancel the job without a savepoint."""
        endpoint = url + _JOB_URL.format(job_id) + "?mode=cancel"
        try:
            response = self._execute_request(_HTTP_PATCH, endpoint)
        except requests.RequestException as exc:
            self._metrics.force_cancel_job_failure.inc()
            _log.error("Force cancel job failed with error %s", exc)
            raise get_retryable_error(exc, FORCE_CANCEL_JOB, GLOBAL_FAILURE, DEFAULT_RETRIES) from exc
        if not _is_success(response):
            self._metrics.force_cancel_job_failure.inc()
            _log.error("Force cancel job failed with response %s", _status(response))
            raise get_retryable_error(None, FORCE_CANCEL_JOB, _status(response), DEFAULT_RETRIES)
        self._metrics.force_cancel_job_success.inc()

    def submit_job(self, url: str, jar_id: str, submit_job_request: SubmitJobRequest) -> SubmitJobResponse:
        """Run the uploaded jar ``jar_id`` as a new job."""
        endpoint = url + _SUBMIT_JOB_URL.format(jar_id)
        try:
            response = self._execute_request(_HTTP_POST, endpoint, submit_job_request.to_dict())
        except requests.RequestException as exc:
            self._metrics.submit_job_failure.inc()
            if isinstance(exc, requests.Timeout):
                # The job manager may still finish submitting; retrying could start a second job.
                cause = RuntimeError(
                    f"Job submission timed out after {int(_DEFAULT_TIMEOUT)} seconds, this may be due "
                    "to the job main method taking too long or may be a transient issue"
                )
                raise get_non_retryable_error(cause, SUBMIT_JOB, "JobSubmissionTimedOut") from exc
            raise get_retryable_error(exc, SUBMIT_JOB, GLOBAL_FAILURE, DEFAULT_RETRIES) from exc
        if not _is_success(response):
            self._metrics.submit_job_failure.inc()
            _log.warning("Job submission failed with response %s", _status(response))
            body = response.text
            if response.status_code > 499:
                if _PROGRAM_INVOCATION_EXCEPTION in body or _JOB_SUBMISSION_EXCEPTION in body:
                    raise get_non_retryable_error_with_message(None, SUBMIT_JOB, _status(response), body)
                raise get_retryable_error_with_message(
                    None, SUBMIT_JOB, _status(response), DEFAULT_RETRIES, body)
            raise get_non_retryable_error_with_message(None, SUBMIT_JOB, _status(response), body)
        try:
            result = _decode(response, SubmitJobResponse.from_dict)
        except ValueError as exc:
            _log.error("Unable to Unmarshal submitJobResponse %s, err: %s", response.text, exc)
            raise get_retryable_error_with_message(
                exc, SUBMIT_JOB, _status(response), DEFAULT_RETRIES, JSON_UNMARSHAL_ERROR) from exc
        self._metrics.submit_job_success.inc()
        return result

    def check_savepoint_status(self, url: str, job_id: str, trigger_id: str) -> SavepointResponse:
        """Return the progress of the savepoint triggered as ``trigger_id``."""
        endpoint = url + _CHECK_SAVEPOINT_STATUS_URL.format(job_id, trigger_id)
        try:
            response = self._execute_request(_HTTP_GET, endpoint)
        except requests.RequestException as exc:
            self._metrics.check_savepoint_failure.inc()
            raise get_retryable_error(
                exc, CHECK_SAVEPOINT_STATUS, GLOBAL_FAILURE, _CHECK_SAVEPOINT_STATUS_RETRIES) from exc
        if not _is_success(response):
            self._metrics.check_savepoint_failure.inc()
            _log.error("Check savepoint status failed with response %s", _status(response))
            raise get_retryable_error(
                None, CHECK_SAVEPOINT_STATUS, _status(response), _CHECK_SAVEPOINT_STATUS_RETRIES)
        try:
            result = _decode(response, SavepointResponse.from_dict)
        except ValueError as exc:
            _log.error("Unable to Unmarshal savepointResponse %s, err: %s", response.text, exc)
            raise get_retryable_error(
                exc, CHECK_SAVEPOINT_STATUS, JSON_UNMARSHAL_ERROR, _CHECK_SAVEPOINT_STATUS_RETRIES) from exc
        self._metrics.cancel_job_success.inc()
        return result

    def get_jobs(self, url: str) -> GetJobsResponse:
        """Return the jobs known to the cluster."""
        endpoint = url + _GET_JOBS_URL
        try:
            response = self._execute_request(_HTTP_GET, endpoint)
        except requests.RequestException as exc:
            self._metrics.get_jobs_failure.inc()
            raise get_retryable_error(exc, GET_JOBS, GLOBAL_FAILURE, DEFAULT_RETRIES) from exc
        if not _is_success(response):
            self._metrics.get_jobs_failure.inc()
            _log.error("GetJobs failed with response %s", _status(response))
            raise get_retryable_error(None, GET_JOBS, _status(response), DEFAULT_RETRIES)
        try:
            result = _decode(response, GetJobsResponse.from_dict)
        except ValueError as exc:
            _log.error("Unable to Unmarshal getJobsResponse %s, err: %s", response.text, exc)
            raise get_retryable_error(exc, GET_JOBS, _status(response), DEFAULT_RETRIES) from exc
        self._metrics.get_jobs_success.inc()
        return result

    def _get_checkpoints(self, url: str, job_id: str, method: str) -> CheckpointResponse:
        endpoint = url + _CHECKPOINTS_URL.format(job_id)
        try:
            response = self._execute_request(_HTTP_GET, endpoint)
        except requests.RequestException as exc:
            self._metrics.get_checkpoints_failure.inc()
            raise get_retryable_error(exc, method, GLOBAL_FAILURE, DEFAULT_RETRIES) from exc
        if not _is_success(response):
            self._metrics.get_checkpoints_failure.inc()
            raise get_retryable_error(None, method, _status(response), DEFAULT_RETRIES)
        try:
            result = _decode(response, CheckpointResponse.from_dict)
        except ValueError as exc:
            _log.error("Failed to unmarshal checkpointResponse %s, err %s", response.text, exc)
            result = CheckpointResponse()
        self._metrics.get_checkpoints_success.inc()
        return result

    def get_latest_checkpoint(self, url: str, job_id: str) -> CheckpointStatistics | None:
        """Return the latest completed checkpoint of the job, if any."""
        return self._get_checkpoints(url, job_id, GET_LATEST_CHECKPOINT).latest.completed

    def get_checkpoint_counts(self, url: str, job_id: str) -> CheckpointResponse:
        """Return the checkpoint counts, latest checkpoints and history of the job."""
        return self._get_checkpoints(url, job_id, GET_CHECKPOINT_COUNTS)

    def get_task_managers(self, url: str) -> TaskManagersResponse:
        """Return the task managers registered with the cluster."""
        endpoint = url + _TASKMANAGERS_URL
        try:
            response = self._execute_request(_HTTP_GET, endpoint)
        except requests.RequestException as exc:
            raise get_retryable_error(exc, GET_TASK_MANAGERS, GLOBAL_FAILURE, DEFAULT_RETRIES) from exc
        if not _is_success(response):
            raise get_retryable_error(None, GET_TASK_MANAGERS, _status(response), DEFAULT_RETRIES)
        try:
            return _decode(response, TaskManagersResponse.from_dict)
        except ValueError as exc:
            _log.error("Failed to unmarshal taskmanagerResponse %s, err %s", response.text, exc)
            return TaskManagersResponse()

    def get_job_overview(self, url: str, job_id: str) -> FlinkJobOverview:
        """Return the detailed view of job ``job_id``."""
        endpoint = url + GET_JOBS_OVERVIEW_URL.format(job_id)
        try:
            response = self._execute_request(_HTTP_GET, endpoint)
        except requests.RequestException as exc:
            raise get_retryable_error(exc, GET_JOB_OVERVIEW, GLOBAL_FAILURE, DEFAULT_RETRIES) from exc
        if not _is_success(response):
            self._metrics.get_checkpoints_failure.inc()
            raise get_retryable_error(None, GET_JOB_OVERVIEW, _status(response), DEFAULT_RETRIES)
        try:
            return _decode(response, FlinkJobOverview.from_dict)
        except ValueError as exc:
            _log.error("Failed to unmarshal FlinkJob %s, err %s", response.text, exc)
            return FlinkJobOverview()

    def savepoint_job(self, url: str, job_id: str) -> str:
        """Trigger a savepoint without cancelling the job; return the trigger id."""
        endpoint = url + _SAVEPOINT_URL.format(job_id)
        body = SavepointJobRequest(cancel_job=False).to_dict()
        try:
            response = self._execute_request(_HTTP_POST, endpoint, body)
        except requests.RequestException as exc:
            self._metrics.savepoint_job_failure.inc()
            raise get_retryable_error(
                exc, CANCEL_JOB_WITH_SAVEPOINT, GLOBAL_FAILURE, _SAVEPOINT_RETRIES) from exc
        if not _is_success(response):
            self._metrics.cancel_job_failure.inc()
            _log.error("Savepointing job failed with response %s", _status(response))
            raise get_retryable_error(None, SAVEPOINT_JOB, _status(response), _SAVEPOINT_RETRIES)
        try:
            result = _decode(response, SavepointJobResponse.from_dict)
        except ValueError as exc:
            _log.error("Unable to Unmarshal savepointJobResponse %s, err: %s", response.text, exc)
            raise get_retryable_error(
                exc, SAVEPOINT_JOB, JSON_UNMARSHAL_ERROR, _SAVEPOINT_RETRIES) from exc
        self._metrics.savepoint_job_success.inc()
        return result.trigger_id


__all__ = ["FlinkJobManagerClient", "FlinkApplicationError"]