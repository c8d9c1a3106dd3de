"""Names, annotations and environment variables of the Flink containers."""

from __future__ import annotations

import random

from .application import BLUE_GREEN_DEPLOYMENT_MODE, FlinkApplication
from .common import EnvVar, duplicate_map
from .config import Config, get_config
from .flink_config import render_flink_config

APP_NAME = "APP_NAME"
AWS_METADATA_SERVICE_TIMEOUT_KEY = "AWS_METADATA_SERVICE_TIMEOUT"
AWS_METADATA_SERVICE_NUM_ATTEMPTS_KEY = "AWS_METADATA_SERVICE_NUM_ATTEMPTS"
AWS_METADATA_SERVICE_TIMEOUT = "5"
AWS_METADATA_SERVICE_NUM_ATTEMPTS = "20"
OPERATOR_FLINK_CONFIG = "FLINK_PROPERTIES"
HOST_NAME = "HOST_NAME"
HOST_IP = "HOST_IP"
FLINK_DEPLOYMENT_TYPE_ENV = "FLINK_DEPLOYMENT_TYPE"
FLINK_DEPLOYMENT_TYPE = "flink-deployment-type"
FLINK_DEPLOYMENT_TYPE_JOBMANAGER = "jobmanager"
FLINK_DEPLOYMENT_TYPE_TASKMANAGER = "taskmanager"
FLINK_APP_HASH = "flink-app-hash"
POD_DEPLOYMENT_SELECTOR = "pod-deployment-selector"
FLINK_JOB_PROPERTIES = "flink-job-properties"
RESTART_NONCE = "restart-nonce"
FLINK_APPLICATION_VERSION_ENV = "FLINK_APPLICATION_VERSION"
FLINK_APPLICATION_VERSION = "flink-application-version"

PULL_IF_NOT_PRESENT = "IfNotPresent"

SELECTOR_ALPHABET = "abcdefghijklmnopkqrstuvwxyz0123456789"
_SELECTOR_LENGTH = 8


def _is_blue_green(app: FlinkApplication) -> bool:
    return app.deployment_mode == BLUE_GREEN_DEPLOYMENT_MODE


def get_flink_container_name(container_name: str, config: Config | None = None) -> str:
    """Apply the configured container name format, if any, to ``container_name``."""
    cfg = config if config is not None else get_config()
    if cfg.container_name_format:
        return cfg.container_name_format % container_name
    return container_name


def get_common_annotations(app: FlinkApplication) -> dict[str, str]:
    """Annotations shared by the job manager and task manager deployments."""
    annotations = duplicate_map(app.annotations)
    spec = app.spec
    annotations[FLINK_JOB_PROPERTIES] = (
        f"jarName: {spec.jar_name}\nparallelism: {spec.parallelism}\n"
        f"entryClass:{spec.entry_class}\nprogramArgs:\"{spec.program_args}\""
    )
    if spec.restart_nonce:
        annotations[RESTART_NONCE] = spec.restart_nonce
    if _is_blue_green(app):
        annotations[FLINK_APPLICATION_VERSION] = app.updating_version
    return annotations


def get_aws_service_env() -> list[EnvVar]:
    """Environment settings for the AWS metadata service client."""
    return [
        EnvVar(AWS_METADATA_SERVICE_TIMEOUT_KEY, AWS_METADATA_SERVICE_TIMEOUT),
        EnvVar(AWS_METADATA_SERVICE_NUM_ATTEMPTS_KEY, AWS_METADATA_SERVICE_NUM_ATTEMPTS),
    ]


def get_flink_env(app: FlinkApplication) -> list[EnvVar]:
    """Environment carrying the application name, rendered Flink settings and pod address."""
    try:
        flink_config = render_flink_config(app)
    except ValueError as exc:
        raise ValueError(f"Failed to serialize flink configuration: {exc}") from exc
    return [
        EnvVar(APP_NAME, app.name),
        EnvVar(OPERATOR_FLINK_CONFIG, flink_config),
        EnvVar(HOST_NAME, field_path="metadata.name"),
        EnvVar(HOST_IP, field_path="status.podIP"),
    ]


def image_pull_policy(app: FlinkApplication) -> str:
    """The image pull policy, ``IfNotPresent`` unless the spec sets one."""
    return app.spec.image_pull_policy or PULL_IF_NOT_PRESENT


def random_pod_deployment_selector() -> str:
    """A random 8-character string tying pods to the deployment being created."""
    return "".join(random.choice(SELECTOR_ALPHABET) for _ in range(_SELECTOR_LENGTH))