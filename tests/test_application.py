from decimal import Decimal

import pytest

from flinkoperator.application import (
    FlinkApplication,
    ResourceRequirements,
    parse_quantity,
)


def test_binary_suffix_value():
    assert parse_quantity("1Mi") == 1048576


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ("0.5", "500m"),
        ("1Gi", "1024Mi"),
        ("1Mi", "1024Ki"),
        ("1G", "1000M"),
        ("1k", "1e3"),
        ("2E", "2000P"),
        ("1E3", "1k"),
    ],
)
def test_equivalent_quantities(left, right):
    assert parse_quantity(left) == parse_quantity(right)


def test_plain_number_is_unchanged():
    assert parse_quantity("42") == Decimal(42)


@pytest.mark.parametrize("text", ["", "abc", "1Xi", "1 Mi", "Mi", "1.2.3"])
def test_invalid_quantity_raises(text):
    with pytest.raises(ValueError):
        parse_quantity(text)


def test_requested_memory_reads_requests():
    resources = ResourceRequirements(
        requests={"cpu": "2", "memory": "1Mi"}, limits={"cpu": "2", "memory": "4Mi"}
    )
    assert resources.requested_memory() == parse_quantity("1Mi")


def test_requested_memory_missing_is_zero():
    assert ResourceRequirements(requests={"cpu": "2"}).requested_memory() == 0


def test_requested_memory_fractional_is_zero():
    assert ResourceRequirements(requests={"memory": "1500m"}).requested_memory() == 0


def test_application_defaults_leave_options_unset():
    app = FlinkApplication()
    assert app.spec.task_manager_config.task_slots is None
    assert app.spec.job_manager_config.resources is None
    assert app.spec.flink_config is None