"""Derivation of Flink settings from a FlinkApplication and rendering of flink-conf."""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from packaging.version import Version

from .application import FlinkApplication, ResourceRequirements

JOB_MANAGER_DEFAULT_REPLICA_COUNT = 1
TASK_MANAGER_DEFAULT_SLOTS = 16
RPC_DEFAULT_PORT = 6123
QUERY_DEFAULT_PORT = 6124
BLOB_DEFAULT_PORT = 6125
UI_DEFAULT_PORT = 8081
METRICS_QUERY_DEFAULT_PORT = 50101
OFF_HEAP_MEMORY_DEFAULT_FRACTION = 0.5
SYSTEM_MEMORY_DEFAULT_FRACTION = 0.2
HIGH_AVAILABILITY_KEY = "high-availability"
MAX_CHECKPOINT_RESTORE_AGE_SECONDS = 3600

TASK_MANAGER_DEFAULT_RESOURCES = ResourceRequirements(requests={"memory": "1024Mi"})
JOB_MANAGER_DEFAULT_RESOURCES = ResourceRequirements(requests={"memory": "3072Mi"})

_PROCESS_MEMORY_VERSION = Version("1.11")
_VERSION = re.compile(
    r"^v?(\d+(?:\.\d+)*)"
    r"(?:-(\d+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)"
    r"|-?([A-Za-z\-~]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*))?"
    r"(?:\+[0-9A-Za-z\-~]+(?:\.[0-9A-Za-z\-~]+)*)?$"
)


def _first_non_none(value: int | None, default: int) -> int:
    return value if value is not None else default


def _valid_fraction(value: float | None, default: float) -> float:
    if value is not None and 0 <= value <= 1:
        return value
    return default


def get_taskmanager_slots(app: FlinkApplication) -> int:
    """Task slots per task manager."""
    return _first_non_none(app.spec.task_manager_config.task_slots, TASK_MANAGER_DEFAULT_SLOTS)


def get_jobmanager_replicas(app: FlinkApplication) -> int:
    """Number of job manager replicas."""
    return _first_non_none(app.spec.job_manager_config.replicas, JOB_MANAGER_DEFAULT_REPLICA_COUNT)


def get_rpc_port(app: FlinkApplication) -> int:
    """Job manager RPC port."""
    return _first_non_none(app.spec.rpc_port, RPC_DEFAULT_PORT)


def get_ui_port(app: FlinkApplication) -> int:
    """Web UI port."""
    return _first_non_none(app.spec.ui_port, UI_DEFAULT_PORT)


def get_query_port(app: FlinkApplication) -> int:
    """Queryable state server port."""
    return _first_non_none(app.spec.query_port, QUERY_DEFAULT_PORT)


def get_blob_port(app: FlinkApplication) -> int:
    """Blob server port."""
    return _first_non_none(app.spec.blob_port, BLOB_DEFAULT_PORT)


def get_internal_metrics_query_port(app: FlinkApplication) -> int:
    """Internal metrics query service port."""
    return _first_non_none(app.spec.metrics_query_port, METRICS_QUERY_DEFAULT_PORT)


def get_max_checkpoint_restore_age_seconds(app: FlinkApplication) -> int:
    """Oldest checkpoint age, in seconds, that may be restored from."""
    return _first_non_none(
        app.spec.max_checkpoint_restore_age_seconds, MAX_CHECKPOINT_RESTORE_AGE_SECONDS
    )


def get_requested_task_manager_memory(app: FlinkApplication) -> int:
    """Memory requested for each task manager, in bytes."""
    resources = app.spec.task_manager_config.resources or TASK_MANAGER_DEFAULT_RESOURCES
    return resources.requested_memory()


def get_requested_job_manager_memory(app: FlinkApplication) -> int:
    """Memory requested for each job manager, in bytes."""
    resources = app.spec.job_manager_config.resources or JOB_MANAGER_DEFAULT_RESOURCES
    return resources.requested_memory()


def _round_half_away(value: float) -> float:
    return math.copysign(math.floor(abs(value) + 0.5), value)


def compute_memory(memory_in_bytes: float, fraction: float) -> str:
    """Memory left after taking away ``fraction``, as whole kibibytes such as ``32768k``."""
    remaining = _round_half_away(memory_in_bytes - memory_in_bytes * fraction)
    return f"{int(remaining / 1024)}k"


def get_task_manager_heap_memory(app: FlinkApplication) -> str:
    """Task manager heap size, used before Flink 1.11."""
    fraction = _valid_fraction(
        app.spec.task_manager_config.off_heap_memory_fraction, OFF_HEAP_MEMORY_DEFAULT_FRACTION
    )
    return compute_memory(float(get_requested_task_manager_memory(app)), fraction)


def get_job_manager_heap_memory(app: FlinkApplication) -> str:
    """Job manager heap size, used before Flink 1.11."""
    fraction = _valid_fraction(
        app.spec.job_manager_config.off_heap_memory_fraction, OFF_HEAP_MEMORY_DEFAULT_FRACTION
    )
    return compute_memory(float(get_requested_job_manager_memory(app)), fraction)


def get_task_manager_process_memory(app: FlinkApplication) -> str:
    """Task manager process size, used from Flink 1.11 on."""
    fraction = _valid_fraction(
        app.spec.task_manager_config.system_memory_fraction, SYSTEM_MEMORY_DEFAULT_FRACTION
    )
    return compute_memory(float(get_requested_task_manager_memory(app)), fraction)


def get_job_manager_process_memory(app: FlinkApplication) -> str:
    """Job manager process size, used from Flink 1.11 on."""
    fraction = _valid_fraction(
        app.spec.job_manager_config.system_memory_fraction, SYSTEM_MEMORY_DEFAULT_FRACTION
    )
    return compute_memory(float(get_requested_job_manager_memory(app)), fraction)


def _before_process_memory_version(text: str) -> bool:
    """Whether ``text`` names a Flink version older than 1.11; unparsable ones count as older."""
    match = _VERSION.match(text)
    if match is None:
        return True
    release = Version(match.group(1))
    prerelease = match.group(2) or match.group(3)
    if release < _PROCESS_MEMORY_VERSION:
        return True
    return release == _PROCESS_MEMORY_VERSION and bool(prerelease)


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    text = "".join(str(d) for d in digits)
    count = len(text)
    point = count + exponent
    exp = point - 1
    prefix = "-" if sign else ""
    if exp < -4 or exp >= 6:
        mantissa = text[0] + ("." + text[1:] if count > 1 else "")
        return f"{prefix}{mantissa}e{'-' if exp < 0 else '+'}{abs(exp):02d}"
    if point <= 0:
        body = "0." + "0" * (-point) + text
    elif point >= count:
        body = text + "0" * (point - count)
    else:
        body = f"{text[:point]}.{text[point:]}"
    return prefix + body


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, str):
        return value
    raise ValueError(f"invalid type in flink config: {type(value).__name__}")


def render_flink_config(app: FlinkApplication) -> str:
    """Render the application's Flink settings as flink-conf.yaml lines, sorted by key."""
    spec = app.spec
    config: dict[str, Any] = dict(spec.flink_config or {})

    # filled in later from the versioned service
    config.pop("jobmanager.rpc.address", None)

    config["taskmanager.numberOfTaskSlots"] = get_taskmanager_slots(app)
    config["jobmanager.rpc.port"] = get_rpc_port(app)
    config["jobmanager.web.port"] = get_ui_port(app)
    config["query.server.port"] = get_query_port(app)
    config["blob.server.port"] = get_blob_port(app)
    config["metrics.internal.query-service.port"] = get_internal_metrics_query_port(app)

    tm, jm = spec.task_manager_config, spec.job_manager_config
    if _before_process_memory_version(spec.flink_version):
        if jm.system_memory_fraction is not None or tm.system_memory_fraction is not None:
            raise ValueError(
                "systemMemoryFraction config cannot be used with flinkVersion < 1.11', use "
                "offHeapMemoryFraction instead"
            )
        config["jobmanager.heap.size"] = get_job_manager_heap_memory(app)
        config["taskmanager.heap.size"] = get_task_manager_heap_memory(app)
    else:
        if jm.off_heap_memory_fraction is not None or tm.off_heap_memory_fraction is not None:
            raise ValueError(
                "offHeapMemoryFraction config cannot be used with flinkVersion >= 1.11'; "
                "use systemMemoryFraction istead"
            )
        config["jobmanager.memory.process.size"] = get_job_manager_process_memory(app)
        config["taskmanager.memory.process.size"] = get_task_manager_process_memory(app)

    return "".join(f"{key}: {_render_value(config[key])}\n" for key in sorted(config))


def is_ha_enabled(flink_config: Mapping[str, Any] | None) -> bool:
    """Whether high availability is configured to anything other than ``none``."""
    if not flink_config or HIGH_AVAILABILITY_KEY not in flink_config:
        return False
    value = flink_config[HIGH_AVAILABILITY_KEY]
    if not isinstance(value, str):
        raise TypeError(f"{HIGH_AVAILABILITY_KEY} must be a string, got {type(value).__name__}")
    return value.strip().lower() != "none"