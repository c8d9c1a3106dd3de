"""Request and response bodies of the Flink job manager REST API."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

_E = TypeVar("_E", bound=Enum)


class SavepointStatus(str, Enum):
    """Progress of a savepoint operation."""

    INVALID = ""
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"

    def __str__(self) -> str:
        return self.value


class CheckpointStatus(str, Enum):
    """Progress of a checkpoint."""

    IN_PROGRESS = "IN_PROGRESS"
    FAILED = "FAILED"
    COMPLETED = "COMPLETED"

    def __str__(self) -> str:
        return self.value


class JobState(str, Enum):
    """State of a Flink job or job vertex."""

    CREATED = "CREATED"
    RUNNING = "RUNNING"
    FAILING = "FAILING"
    FAILED = "FAILED"
    CANCELLING = "CANCELLING"
    CANCELED = "CANCELED"
    FINISHED = "FINISHED"
    RESTARTING = "RESTARTING"
    SUSPENDED = "SUSPENDED"
    RECONCILING = "RECONCILING"

    def __str__(self) -> str:
        return self.value


def _object(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected a JSON object, got {type(data).__name__}")
    return data


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r}: expected a string, got {type(value).__name__}")
    return value


def _int(data: Mapping[str, Any], key: str, *, unsigned: bool = False) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r}: expected an integer, got {type(value).__name__}")
    if unsigned and value < 0:
        raise ValueError(f"field {key!r}: expected a non-negative integer, got {value}")
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r}: expected a boolean, got {type(value).__name__}")
    return value


def _list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"field {key!r}: expected an array, got {type(value).__name__}")
    return value


def _int_map(data: Mapping[str, Any], key: str) -> dict[str, int]:
    raw = _object(data.get(key), f"field {key!r}")
    return {name: _int(raw, name) for name in raw}


def _enum(enum_cls: type[_E], data: Mapping[str, Any], key: str) -> _E | str:
    text = _str(data, key)
    try:
        return enum_cls(text)
    except ValueError:
        return text


@dataclass
class SavepointJobRequest:
    """Body of a savepoint trigger, optionally cancelling the job."""

    cancel_job: bool = False
    target_directory: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body."""
        body: dict[str, Any] = {"cancel-job": self.cancel_job}
        if self.target_directory:
            body["target-directory"] = self.target_directory
        return body


@dataclass
class SubmitJobRequest:
    """Body of a jar run request."""

    savepoint_path: str = ""
    parallelism: int = 0
    program_args: str = ""
    entry_class: str = ""
    allow_non_restored_state: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body."""
        return {
            "savepointPath": self.savepoint_path,
            "parallelism": self.parallelism,
            "programArgs": self.program_args,
            "entryClass": self.entry_class,
            "allowNonRestoredState": self.allow_non_restored_state,
        }


@dataclass
class FailureCause:
    """The exception that made an operation fail."""

    class_name: str = ""
    stack_trace: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> FailureCause:
        """Build from decoded JSON."""
        obj = _object(data, "failure cause")
        return cls(class_name=_str(obj, "class"), stack_trace=_str(obj, "stack-trace"))


@dataclass
class SavepointStatusResponse:
    """Status part of a savepoint status response."""

    status: SavepointStatus | str = SavepointStatus.INVALID

    @classmethod
    def from_dict(cls, data: Any) -> SavepointStatusResponse:
        """Build from decoded JSON."""
        obj = _object(data, "savepoint status")
        return cls(status=_enum(SavepointStatus, obj, "id"))


@dataclass
class SavepointOperationResponse:
    """Operation part of a savepoint status response."""

    location: str = ""
    failure_cause: FailureCause = field(default_factory=FailureCause)

    @classmethod
    def from_dict(cls, data: Any) -> SavepointOperationResponse:
        """Build from decoded JSON."""
        obj = _object(data, "savepoint operation")
        return cls(
            location=_str(obj, "location"),
            failure_cause=FailureCause.from_dict(obj.get("failure-cause")),
        )


@dataclass
class SavepointResponse:
    """Response to a savepoint status query."""

    savepoint_status: SavepointStatusResponse = field(default_factory=SavepointStatusResponse)
    operation: SavepointOperationResponse = field(default_factory=SavepointOperationResponse)

    @classmethod
    def from_dict(cls, data: Any) -> SavepointResponse:
        """Build from decoded JSON."""
        obj = _object(data, "savepoint response")
        return cls(
            savepoint_status=SavepointStatusResponse.from_dict(obj.get("status")),
            operation=SavepointOperationResponse.from_dict(obj.get("operation")),
        )


@dataclass
class SavepointJobResponse:
    """Response to a savepoint trigger."""

    trigger_id: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> SavepointJobResponse:
        """Build from decoded JSON."""
        obj = _object(data, "savepoint job response")
        return cls(trigger_id=_str(obj, "request-id"))


@dataclass
class SubmitJobResponse:
    """Response to a jar run request."""

    job_id: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> SubmitJobResponse:
        """Build from decoded JSON."""
        obj = _object(data, "submit job response")
        return cls(job_id=_str(obj, "jobid"))


@dataclass
class FlinkJob:
    """A job as listed by the cluster."""

    job_id: str = ""
    status: JobState | str = ""

    @classmethod
    def from_dict(cls, data: Any) -> FlinkJob:
        """Build from decoded JSON."""
        obj = _object(data, "job")
        return cls(job_id=_str(obj, "id"), status=_enum(JobState, obj, "status"))


@dataclass
class GetJobsResponse:
    """Response listing the jobs of the cluster."""

    jobs: list[FlinkJob] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> GetJobsResponse:
        """Build from decoded JSON."""
        obj = _object(data, "jobs response")
        return cls(jobs=[FlinkJob.from_dict(item) for item in _list(obj, "jobs")])


@dataclass
class JobExecutionConfig:
    """Execution settings of a job."""

    parallelism: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> JobExecutionConfig:
        """Build from decoded JSON."""
        obj = _object(data, "execution config")
        return cls(parallelism=_int(obj, "job-parallelism"))


@dataclass
class JobConfigResponse:
    """Response describing a job's configuration."""

    job_id: str = ""
    execution_config: JobExecutionConfig = field(default_factory=JobExecutionConfig)

    @classmethod
    def from_dict(cls, data: Any) -> JobConfigResponse:
        """Build from decoded JSON."""
        obj = _object(data, "job config response")
        return cls(
            job_id=_str(obj, "jid"),
            execution_config=JobExecutionConfig.from_dict(obj.get("execution-config")),
        )


@dataclass
class FlinkJobVertex:
    """One vertex of a job graph."""

    id: str = ""
    name: str = ""
    parallelism: int = 0
    status: JobState | str = ""
    start_time: int = 0
    end_time: int = 0
    duration: int = 0
    tasks: dict[str, int] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> FlinkJobVertex:
        """Build from decoded JSON."""
        obj = _object(data, "job vertex")
        return cls(
            id=_str(obj, "id"),
            name=_str(obj, "name"),
            parallelism=_int(obj, "parallelism"),
            status=_enum(JobState, obj, "status"),
            start_time=_int(obj, "start-time"),
            end_time=_int(obj, "end-time"),
            duration=_int(obj, "duration"),
            tasks=_int_map(obj, "tasks"),
            metrics=dict(_object(obj.get("metrics"), "field 'metrics'")),
        )


@dataclass
class FlinkJobOverview:
    """Detailed view of a single job."""

    job_id: str = ""
    state: JobState | str = ""
    start_time: int = 0
    end_time: int = 0
    vertices: list[FlinkJobVertex] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> FlinkJobOverview:
        """Build from decoded JSON."""
        obj = _object(data, "job overview")
        return cls(
            job_id=_str(obj, "jid"),
            state=_enum(JobState, obj, "state"),
            start_time=_int(obj, "start-time"),
            end_time=_int(obj, "end-time"),
            vertices=[FlinkJobVertex.from_dict(item) for item in _list(obj, "vertices")],
        )


@dataclass
class ClusterOverviewResponse:
    """Summary of the cluster's task managers and slots."""

    task_manager_count: int = 0
    slots_available: int = 0
    number_of_task_slots: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> ClusterOverviewResponse:
        """Build from decoded JSON."""
        obj = _object(data, "cluster overview")
        return cls(
            task_manager_count=_int(obj, "taskmanagers"),
            slots_available=_int(obj, "slots-available"),
            number_of_task_slots=_int(obj, "slots-total"),
        )


@dataclass
class CheckpointStatistics:
    """Statistics of one checkpoint or savepoint."""

    id: int = 0
    status: CheckpointStatus | str = ""
    is_savepoint: bool = False
    trigger_timestamp: int = 0
    latest_ack_timestamp: int = 0
    state_size: int = 0
    end_to_end_duration: int = 0
    alignment_buffered: int = 0
    num_subtasks: int = 0
    failure_timestamp: int = 0
    failure_message: str = ""
    external_path: str = ""
    discarded: bool = False
    restored_timestamp: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> CheckpointStatistics:
        """Build from decoded JSON."""
        obj = _object(data, "checkpoint statistics")
        return cls(
            id=_int(obj, "id", unsigned=True),
            status=_enum(CheckpointStatus, obj, "status"),
            is_savepoint=_bool(obj, "is_savepoint"),
            trigger_timestamp=_int(obj, "trigger_timestamp"),
            latest_ack_timestamp=_int(obj, "latest_ack_timestamp"),
            state_size=_int(obj, "state_size"),
            end_to_end_duration=_int(obj, "end_to_end_duration"),
            alignment_buffered=_int(obj, "alignment_buffered"),
            num_subtasks=_int(obj, "num_subtasks"),
            failure_timestamp=_int(obj, "failure_timestamp"),
            failure_message=_str(obj, "failure_message"),
            external_path=_str(obj, "external_path"),
            discarded=_bool(obj, "discarded"),
            restored_timestamp=_int(obj, "restore_timestamp"),
        )


def _optional_stats(obj: Mapping[str, Any], key: str) -> CheckpointStatistics | None:
    value = obj.get(key)
    return None if value is None else CheckpointStatistics.from_dict(value)


@dataclass
class LatestCheckpoints:
    """The most recent checkpoints of each kind, where there are any."""

    completed: CheckpointStatistics | None = None
    savepoint: CheckpointStatistics | None = None
    failed: CheckpointStatistics | None = None
    restored: CheckpointStatistics | None = None

    @classmethod
    def from_dict(cls, data: Any) -> LatestCheckpoints:
        """Build from decoded JSON."""
        obj = _object(data, "latest checkpoints")
        return cls(
            completed=_optional_stats(obj, "completed"),
            savepoint=_optional_stats(obj, "savepoint"),
            failed=_optional_stats(obj, "failed"),
            restored=_optional_stats(obj, "restored"),
        )


@dataclass
class CheckpointResponse:
    """Checkpoint counts, latest checkpoints and history of a job."""

    counts: dict[str, int] = field(default_factory=dict)
    latest: LatestCheckpoints = field(default_factory=LatestCheckpoints)
    history: list[CheckpointStatistics] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> CheckpointResponse:
        """Build from decoded JSON."""
        obj = _object(data, "checkpoint response")
        return cls(
            counts=_int_map(obj, "counts"),
            latest=LatestCheckpoints.from_dict(obj.get("latest")),
            history=[CheckpointStatistics.from_dict(item) for item in _list(obj, "history")],
        )


@dataclass
class TaskManagerStats:
    """Description of one task manager."""

    path: str = ""
    data_port: int = 0
    time_since_last_heartbeat: int = 0
    slots_number: int = 0
    free_slots: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> TaskManagerStats:
        """Build from decoded JSON."""
        obj = _object(data, "task manager")
        return cls(
            path=_str(obj, "path"),
            data_port=_int(obj, "dataPort"),
            time_since_last_heartbeat=_int(obj, "timeSinceLastHeartbeat"),
            slots_number=_int(obj, "slotsNumber"),
            free_slots=_int(obj, "freeSlots"),
        )


@dataclass
class TaskManagersResponse:
    """Response listing the task managers of the cluster."""

    task_managers: list[TaskManagerStats] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> TaskManagersResponse:
        """Build from decoded JSON."""
        obj = _object(data, "task managers response")
        return cls(
            task_managers=[TaskManagerStats.from_dict(item) for item in _list(obj, "taskmanagers")]
        )