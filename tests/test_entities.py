import pytest

from flinkoperator.entities import (
    CheckpointResponse,
    CheckpointStatistics,
    CheckpointStatus,
    ClusterOverviewResponse,
    FlinkJobOverview,
    GetJobsResponse,
    JobConfigResponse,
    JobState,
    SavepointJobRequest,
    SavepointJobResponse,
    SavepointResponse,
    SavepointStatus,
    SubmitJobRequest,
    SubmitJobResponse,
    TaskManagersResponse,
)


def test_savepoint_request_omits_empty_target_directory():
    assert SavepointJobRequest(cancel_job=True).to_dict() == {"cancel-job": True}


def test_savepoint_request_includes_target_directory():
    body = SavepointJobRequest(cancel_job=False, target_directory="s3://bucket/sp").to_dict()
    assert body == {"cancel-job": False, "target-directory": "s3://bucket/sp"}


def test_submit_job_request_keys():
    request = SubmitJobRequest(
        savepoint_path="s3://sp",
        parallelism=4,
        program_args="--a b",
        entry_class="com.example.Main",
        allow_non_restored_state=True,
    )
    assert request.to_dict() == {
        "savepointPath": "s3://sp",
        "parallelism": 4,
        "programArgs": "--a b",
        "entryClass": "com.example.Main",
        "allowNonRestoredState": True,
    }


def test_savepoint_response_completed():
    response = SavepointResponse.from_dict(
        {
            "status": {"id": "COMPLETED"},
            "operation": {
                "location": "s3://sp/1",
                "failure-cause": {"class": "java.lang.Exception", "stack-trace": "trace"},
            },
        }
    )
    assert response.savepoint_status.status is SavepointStatus.COMPLETED
    assert response.operation.location == "s3://sp/1"
    assert response.operation.failure_cause.class_name == "java.lang.Exception"
    assert response.operation.failure_cause.stack_trace == "trace"


def test_savepoint_response_missing_fields_are_zero():
    response = SavepointResponse.from_dict({})
    assert response.savepoint_status.status is SavepointStatus.INVALID
    assert response.operation.location == ""


def test_trigger_and_job_id_responses():
    assert SavepointJobResponse.from_dict({"request-id": "trig"}).trigger_id == "trig"
    assert SubmitJobResponse.from_dict({"jobid": "job-1"}).job_id == "job-1"


def test_get_jobs_response():
    response = GetJobsResponse.from_dict(
        {"jobs": [{"id": "a", "status": "RUNNING"}, {"id": "b", "status": "CANCELED"}]}
    )
    assert [job.job_id for job in response.jobs] == ["a", "b"]
    assert [job.status for job in response.jobs] == [JobState.RUNNING, JobState.CANCELED]


def test_unknown_state_is_kept_as_text():
    response = GetJobsResponse.from_dict({"jobs": [{"id": "a", "status": "INITIALIZING"}]})
    assert response.jobs[0].status == "INITIALIZING"


def test_job_config_response():
    response = JobConfigResponse.from_dict(
        {"jid": "job", "execution-config": {"job-parallelism": 8}}
    )
    assert response.job_id == "job"
    assert response.execution_config.parallelism == 8


def test_job_overview_with_vertices():
    overview = FlinkJobOverview.from_dict(
        {
            "jid": "job",
            "state": "RUNNING",
            "start-time": 100,
            "end-time": -1,
            "vertices": [
                {
                    "id": "v1",
                    "name": "Source",
                    "parallelism": 2,
                    "status": "RUNNING",
                    "start-time": 101,
                    "end-time": -1,
                    "duration": 50,
                    "tasks": {"RUNNING": 2},
                    "metrics": {"read-bytes": 10},
                }
            ],
        }
    )
    assert overview.state is JobState.RUNNING
    assert overview.start_time == 100
    assert overview.end_time == -1
    vertex = overview.vertices[0]
    assert vertex.name == "Source"
    assert vertex.tasks == {"RUNNING": 2}
    assert vertex.metrics == {"read-bytes": 10}


def test_cluster_overview():
    overview = ClusterOverviewResponse.from_dict(
        {"taskmanagers": 3, "slots-available": 5, "slots-total": 48}
    )
    assert (overview.task_manager_count, overview.slots_available, overview.number_of_task_slots) == (
        3,
        5,
        48,
    )


def test_checkpoint_response():
    response = CheckpointResponse.from_dict(
        {
            "counts": {"completed": 4, "failed": 1},
            "latest": {
                "completed": {
                    "id": 7,
                    "status": "COMPLETED",
                    "is_savepoint": False,
                    "external_path": "s3://cp/7",
                    "trigger_timestamp": 1000,
                    "restore_timestamp": 0,
                }
            },
            "history": [{"id": 7, "status": "COMPLETED"}, {"id": 6, "status": "FAILED"}],
        }
    )
    assert response.counts == {"completed": 4, "failed": 1}
    completed = response.latest.completed
    assert completed.id == 7
    assert completed.status is CheckpointStatus.COMPLETED
    assert completed.external_path == "s3://cp/7"
    assert response.latest.savepoint is None
    assert [item.status for item in response.history] == [
        CheckpointStatus.COMPLETED,
        CheckpointStatus.FAILED,
    ]


def test_checkpoint_id_must_not_be_negative():
    with pytest.raises(ValueError):
        CheckpointStatistics.from_dict({"id": -1})


def test_task_managers_response():
    response = TaskManagersResponse.from_dict(
        {
            "taskmanagers": [
                {
                    "path": "akka://tm",
                    "dataPort": 6121,
                    "timeSinceLastHeartbeat": 12,
                    "slotsNumber": 4,
                    "freeSlots": 1,
                }
            ]
        }
    )
    stats = response.task_managers[0]
    assert stats.path == "akka://tm"
    assert stats.data_port == 6121
    assert stats.slots_number == 4
    assert stats.free_slots == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"taskmanagers": "3"},
        {"taskmanagers": 1.5},
        {"taskmanagers": True},
    ],
)
def test_wrong_number_type_is_rejected(payload):
    with pytest.raises(ValueError):
        ClusterOverviewResponse.from_dict(payload)


def test_non_object_is_rejected():
    with pytest.raises(ValueError):
        GetJobsResponse.from_dict([1, 2])
    with pytest.raises(ValueError):
        GetJobsResponse.from_dict({"jobs": {"id": "a"}})


def test_null_body_yields_empty_response():
    assert GetJobsResponse.from_dict(None).jobs == []