"""Shared helpers for resolving CLI and environment inputs."""

from __future__ import annotations

import os
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class InputResolution:
    """Configuration for resolving an input from multiple sources."""

    env_key: str
    default: str | Path | None = None
    as_path: bool = False


def _is_blank(value: str | Path | None) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def resolve_input(
    param_value: str | Path | None,
    resolution: InputResolution,
    env: cabc.Mapping[str, str] | None = None,
) -> str | Path | None:
    """Resolve input from parameter, environment variable, or default.

    Blank strings count as unset, so ``ORGANIZATION_NAME=""`` falls through to
    the default exactly like an absent variable.

    Examples
    --------
    >>> resolve_input(None, InputResolution(env_key="APIGEE_NAMESPACE", default="apigee"), env={})
    'apigee'
    >>> resolve_input("cli", InputResolution(env_key="CLUSTER_NAME"), env={"CLUSTER_NAME": "env"})
    'cli'
    """

    if not _is_blank(param_value):
        return param_value

    env_value = (os.environ if env is None else env).get(resolution.env_key)
    if not _is_blank(env_value):
        return Path(env_value) if resolution.as_path else env_value

    return resolution.default
