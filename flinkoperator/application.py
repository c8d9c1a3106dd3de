"""The parts of a FlinkApplication resource that configure the cluster."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from typing import Any

BLUE_GREEN_DEPLOYMENT_MODE = "BlueGreen"

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

_QUANTITY = re.compile(
    r"^([+-]?(?:\d+(?:\.\d*)?|\.\d+))"
    r"(Ki|Mi|Gi|Ti|Pi|Ei|n|u|m|k|M|G|T|P|E|[eE][+-]?\d+)?$"
)

_BINARY_EXPONENTS = {"Ki": 10, "Mi": 20, "Gi": 30, "Ti": 40, "Pi": 50, "Ei": 60}
_DECIMAL_EXPONENTS = {"n": -9, "u": -6, "m": -3, "k": 3, "M": 6, "G": 9, "T": 12, "P": 15, "E": 18}


def parse_quantity(text: str) -> Decimal:
    """Parse a resource quantity such as ``64Mi``, ``500m`` or ``1e3`` to its exact value."""
    match = _QUANTITY.match(text)
    if match is None:
        raise ValueError(f"quantities must match the regular expression, got {text!r}")
    number, suffix = match.groups()
    with localcontext() as ctx:
        ctx.prec = 200
        value = Decimal(number)
        if not suffix:
            return +value
        if suffix in _BINARY_EXPONENTS:
            return value * (Decimal(2) ** _BINARY_EXPONENTS[suffix])
        if suffix in _DECIMAL_EXPONENTS:
            return value.scaleb(_DECIMAL_EXPONENTS[suffix])
        return value.scaleb(int(suffix[1:]))


@dataclass
class ResourceRequirements:
    """Requested and limited amounts of compute resources, by resource name."""

    requests: dict[str, str] = field(default_factory=dict)
    limits: dict[str, str] = field(default_factory=dict)

    def requested_memory(self) -> int:
        """Requested memory in bytes; 0 when unset or not a whole 64-bit number."""
        text = self.requests.get("memory")
        if text is None:
            return 0
        value = parse_quantity(text)
        if value != value.to_integral_value():
            return 0
        whole = int(value)
        if not _INT64_MIN <= whole <= _INT64_MAX:
            return 0
        return whole


@dataclass
class TaskManagerConfig:
    """Settings of the task manager deployment."""

    resources: ResourceRequirements | None = None
    task_slots: int | None = None
    off_heap_memory_fraction: float | None = None
    system_memory_fraction: float | None = None


@dataclass
class JobManagerConfig:
    """Settings of the job manager deployment."""

    resources: ResourceRequirements | None = None
    replicas: int | None = None
    off_heap_memory_fraction: float | None = None
    system_memory_fraction: float | None = None


@dataclass
class FlinkApplicationSpec:
    """The desired state of a Flink application."""

    image: str = ""
    image_pull_policy: str = ""
    service_account_name: str = ""
    flink_config: dict[str, Any] | None = None
    task_manager_config: TaskManagerConfig = field(default_factory=TaskManagerConfig)
    job_manager_config: JobManagerConfig = field(default_factory=JobManagerConfig)
    jar_name: str = ""
    parallelism: int = 0
    entry_class: str = ""
    program_args: str = ""
    restart_nonce: str = ""
    flink_version: str = ""
    rpc_port: int | None = None
    ui_port: int | None = None
    query_port: int | None = None
    blob_port: int | None = None
    metrics_query_port: int | None = None
    max_checkpoint_restore_age_seconds: int | None = None


@dataclass
class FlinkApplication:
    """A Flink application: its metadata, spec and deployment state."""

    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] | None = None
    spec: FlinkApplicationSpec = field(default_factory=FlinkApplicationSpec)
    deployment_mode: str = ""
    updating_version: str = ""