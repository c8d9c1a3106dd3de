"""Small helpers shared by the controller code."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass
class EnvVar:
    """A container environment variable, set directly or from a pod field."""

    name: str
    value: str = ""
    field_path: str | None = None


def duplicate_map(original: Mapping[str, str] | None) -> dict[str, str]:
    """Return a new dictionary with the same entries; empty for ``None``."""
    return dict(original) if original is not None else {}


def copy_map(to: dict[str, str] | None, source: Mapping[str, str] | None) -> dict[str, str] | None:
    """Copy ``source`` into ``to`` and return the resulting dictionary.

    ``to`` is returned untouched when ``source`` is empty; a new dictionary
    is made when ``to`` is empty.
    """
    if not source:
        return to
    if not to:
        to = {}
    to.update(source)
    return to


def get_env_var(envs: Iterable[EnvVar], name: str) -> EnvVar | None:
    """Return a copy of the first variable called ``name``, or ``None``."""
    found = next((env for env in envs if env.name == name), None)
    return dataclasses.replace(found) if found is not None else None