"""Operator configuration, command-line flags and metrics scopes."""

from __future__ import annotations

import argparse
import re
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field, fields
from datetime import timedelta
from enum import Enum, auto
from fractions import Fraction

APP_NAME = "flinkK8sOperator"
CONFIG_SECTION_KEY = "operator"

_UNIT_MICROSECONDS = {
    "ns": Fraction(1, 1000),
    "us": Fraction(1),
    "µs": Fraction(1),
    "μs": Fraction(1),
    "ms": Fraction(1000),
    "s": Fraction(1_000_000),
    "m": Fraction(60_000_000),
    "h": Fraction(3_600_000_000),
}

_COMPONENT = re.compile(r"(\d*(?:\.\d*)?)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``30s``, ``100ms`` or ``1h30m``."""
    original = text
    sign = 1
    if text[:1] in "+-" and text:
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {original!r}")
    total = Fraction(0)
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {original!r}")
        number, unit = match.groups()
        if number in ("", "."):
            raise ValueError(f"invalid duration {original!r}")
        total += Fraction(number) * _UNIT_MICROSECONDS[unit]
        pos = match.end()
    return timedelta(microseconds=float(sign * total))


_TRUE_WORDS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_WORDS = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise argparse.ArgumentTypeError(f"invalid boolean value {text!r}")


def _parse_int(text: str) -> int:
    try:
        return int(text, 0)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value {text!r}") from exc


def _parse_port(text: str) -> int:
    port = int(text)
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range: {port}")
    return port


class _Kind(Enum):
    STRING = auto()
    DURATION = auto()
    PORT = auto()
    BOOL = auto()
    INT = auto()


@dataclass(frozen=True)
class _Flag:
    key: str
    attr: str
    kind: _Kind
    default: object
    usage: str


_FLAGS = (
    _Flag("resyncPeriod", "resync_period", _Kind.DURATION, "30s",
          "Determines the resync period for all watchers."),
    _Flag("limitNamespace", "limit_namespace", _Kind.STRING, "",
          "Namespaces to watch for by flink operator"),
    _Flag("metricsPrefix", "metrics_prefix", _Kind.STRING, "flinkk8soperator",
          "Prefix for metrics propagated to prometheus"),
    _Flag("profilerPort", "profiler_port", _Kind.PORT, "10254", "Profiler port"),
    _Flag("ingressUrlFormat", "flink_ingress_url_format", _Kind.STRING, "", ""),
    _Flag("useKubectlProxy", "use_proxy", _Kind.BOOL, False, ""),
    _Flag("proxyPort", "proxy_port", _Kind.PORT, "8001",
          "The port at which flink cluster runs locally"),
    _Flag("containerNameFormat", "container_name_format", _Kind.STRING, "", ""),
    _Flag("workers", "workers", _Kind.INT, 4, "Number of routines to process custom resource"),
    _Flag("baseBackoffDuration", "base_backoff_duration", _Kind.DURATION, "100ms",
          "Determines the base backoff for exponential retries."),
    _Flag("maxBackoffDuration", "max_backoff_duration", _Kind.DURATION, "30s",
          "Determines the max backoff for exponential retries."),
    _Flag("maxErrDuration", "max_err_duration", _Kind.DURATION, "5m",
          "Determines the max time to wait on errors."),
)

_CONVERTERS = {
    _Kind.STRING: str,
    _Kind.DURATION: parse_duration,
    _Kind.PORT: _parse_port,
    _Kind.BOOL: bool,
    _Kind.INT: int,
}


@dataclass
class Config:
    """Settings of the operator."""

    resync_period: timedelta = timedelta(seconds=30)
    limit_namespace: str = ""
    metrics_prefix: str = "flinkk8soperator"
    profiler_port: int = 10254
    flink_ingress_url_format: str = ""
    use_proxy: bool = False
    proxy_port: int = 8001
    container_name_format: str = ""
    workers: int = 4
    base_backoff_duration: timedelta = timedelta(milliseconds=100)
    max_backoff_duration: timedelta = timedelta(seconds=30)
    max_err_duration: timedelta = timedelta(minutes=5)

    def build_arg_parser(self, prefix: str = "") -> argparse.ArgumentParser:
        """Return a parser with one flag per setting, named ``--<prefix><key>``."""
        parser = argparse.ArgumentParser(prog="Config", add_help=False)
        for flag in _FLAGS:
            name = f"--{prefix}{flag.key}"
            if flag.kind is _Kind.BOOL:
                parser.add_argument(name, dest=flag.key, nargs="?", const=True,
                                    default=flag.default, type=_parse_bool, help=flag.usage)
            elif flag.kind is _Kind.INT:
                parser.add_argument(name, dest=flag.key, default=flag.default,
                                    type=_parse_int, help=flag.usage)
            else:
                parser.add_argument(name, dest=flag.key, default=flag.default,
                                    type=str, help=flag.usage)
        return parser

    @classmethod
    def from_args(cls, argv: Sequence[str] | None = None, prefix: str = "") -> Config:
        """Build a configuration from command-line flags."""
        namespace = cls().build_arg_parser(prefix).parse_args(argv)
        values = vars(namespace)
        settings = {
            flag.attr: _CONVERTERS[flag.kind](values[flag.key]) for flag in _FLAGS
        }
        return cls(**settings)


class _ConfigSection:
    def __init__(self) -> None:
        self.config = Config()


_SECTION = _ConfigSection()


def get_config() -> Config:
    """Return the operator configuration currently in effect."""
    return _SECTION.config


def set_config(config: Config) -> None:
    """Replace the operator configuration."""
    if not isinstance(config, Config):
        raise TypeError(f"expected Config, got {type(config).__name__}")
    _SECTION.config = config


@dataclass
class Counter:
    """A monotonically increasing metric."""

    name: str
    description: str = ""
    value: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def inc(self) -> None:
        """Increase the counter by one."""
        with self._lock:
            self.value += 1


class MetricsScope:
    """A named scope handing out metrics whose names carry the scope's name."""

    def __init__(self, name: str = "", registry: dict[str, Counter] | None = None) -> None:
        self.name = name
        self._registry = registry if registry is not None else {}

    def _qualify(self, name: str) -> str:
        return f"{self.name}:{name}" if self.name else name

    def new_sub_scope(self, name: str) -> MetricsScope:
        """Return a nested scope sharing this scope's metrics."""
        return MetricsScope(self._qualify(name), self._registry)

    def counter(self, name: str, description: str) -> Counter:
        """Return the counter called ``name`` in this scope, creating it once."""
        full_name = self._qualify(name)
        existing = self._registry.get(full_name)
        if existing is None:
            existing = Counter(full_name, description)
            self._registry[full_name] = existing
        return existing


@dataclass
class RuntimeConfig:
    """Objects built at start-up and handed to controllers."""

    metrics_scope: MetricsScope = field(default_factory=MetricsScope)


__all__ = [f.name for f in fields(Config)] and [
    "APP_NAME",
    "Config",
    "Counter",
    "MetricsScope",
    "RuntimeConfig",
    "get_config",
    "parse_duration",
    "set_config",
]