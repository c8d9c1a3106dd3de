# flinkoperator

Building blocks for running Apache Flink applications on Kubernetes: operator
settings, rendering of `flink-conf.yaml` overrides from an application
description, container environment helpers, a client for the Flink job manager
REST API, and retry decisions for failed calls.

## Modules

- `flinkoperator.config` – the `Config` dataclass holding the operator settings
  with their defaults (resync period 30s, metrics prefix `flinkk8soperator`,
  profiler port 10254, proxy port 8001, 4 workers, backoff 100ms to 30s, error
  window 5m). `Config.build_arg_parser(prefix)` returns an `argparse` parser with
  one flag per setting (`--resyncPeriod`, `--limitNamespace`, `--metricsPrefix`,
  `--profilerPort`, `--ingressUrlFormat`, `--useKubectlProxy`, `--proxyPort`,
  `--containerNameFormat`, `--workers`, `--baseBackoffDuration`,
  `--maxBackoffDuration`, `--maxErrDuration`, each preceded by the prefix), and
  `Config.from_args(argv, prefix)` builds a `Config` from such flags.
  `parse_duration` reads durations such as `30s`, `100ms` or `1h30m`.
  `get_config` / `set_config` hold the process-wide configuration. `MetricsScope`
  hands out named `Counter` objects; `RuntimeConfig` carries the scope.
- `flinkoperator.application` – dataclasses describing an application:
  `FlinkApplication`, `FlinkApplicationSpec`, `TaskManagerConfig`,
  `JobManagerConfig` and `ResourceRequirements`. `parse_quantity` reads resource
  quantities such as `64Mi`, `500m` or `1e3`.
- `flinkoperator.flink_config` – port, slot, replica and memory settings derived
  from an application, with defaults when unset. `render_flink_config(app)`
  returns the sorted `key: value` lines of the Flink settings: heap sizes for
  Flink versions before 1.11 (and for missing or unparsable versions), process
  sizes from 1.11 on. It raises `ValueError` when the wrong kind of memory
  fraction is set for the version, or when a setting is not a string, number or
  boolean. `is_ha_enabled` tells whether `high-availability` is set to anything
  but `none`.
- `flinkoperator.container_env` – container name formatting, common annotations,
  AWS metadata and Flink environment variables (`EnvVar` from
  `flinkoperator.common`), the image pull policy (`IfNotPresent` by default) and
  random 8-character pod deployment selectors.
- `flinkoperator.jobmanager_client` – `FlinkJobManagerClient`, which submits
  jobs, triggers and checks savepoints, cancels jobs, and reads jobs, job
  configuration, job overviews, checkpoints, task managers and the cluster
  overview. Responses are dataclasses from `flinkoperator.entities`. Failures
  raise `FlinkApplicationError`, and successes and failures are counted in the
  client's metrics scope.
- `flinkoperator.retry` – `FlinkApplicationError` records the failed method, the
  status, whether the error is retryable or must fail fast, and the retry
  budget. `RetryHandler(base_backoff, max_err_duration, max_backoff)` decides
  whether an error is retryable, whether retries remain, and computes a
  randomised exponential delay capped at `max_backoff`.
- `flinkoperator.errors` – `FlinkOperatorError`, `FlinkOperatorErrorWithCause`,
  the `ErrorCode` values, and `is_reconciliation_needed`.
- `flinkoperator.common` – `EnvVar`, `duplicate_map`, `copy_map` and
  `get_env_var`.

## Install

```
pip install flinkoperator
```

## Example

```python
from flinkoperator.application import FlinkApplication, FlinkApplicationSpec
from flinkoperator.flink_config import render_flink_config

app = FlinkApplication(
    name="wordcount",
    spec=FlinkApplicationSpec(flink_version="1.11", flink_config={"akka.timeout": "5s"}),
)
print(render_flink_config(app))
```

Talking to a job manager:

```python
from datetime import timedelta

from flinkoperator.config import RuntimeConfig
from flinkoperator.jobmanager_client import FlinkJobManagerClient
from flinkoperator.retry import FlinkApplicationError, RetryHandler

client = FlinkJobManagerClient(RuntimeConfig())
retryer = RetryHandler(
    timedelta(milliseconds=100), timedelta(minutes=5), timedelta(seconds=30)
)
try:
    overview = client.get_cluster_overview("http://localhost:8081")
    print(overview.task_manager_count, overview.slots_available)
except FlinkApplicationError as err:
    if retryer.is_error_retryable(err) and retryer.is_retry_remaining(err, 1):
        print("retry in", retryer.get_retry_delay(1))
```

## What this package does not do

It has no command and no control loop: it does not watch or update
FlinkApplication resources, does not talk to the Kubernetes API, and does not
build job manager or task manager deployments or services. It provides the
settings, rendering, environment, REST client and retry pieces that such a
controller would use.

## Tests

```
pip install -e ".[test]"
pytest
```