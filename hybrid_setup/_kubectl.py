"""Thin wrappers over the ``kubectl`` invocations used by the setup phases."""

from __future__ import annotations

import base64
from collections import abc as cabc
from pathlib import Path

import yaml

from hybrid_setup._commands import CommandContext, CommandOutcome, CommandRunner
from hybrid_setup._setup_constants import SECRET_PAYLOAD_KEY
from hybrid_setup._setup_errors import SetupValidationError, WaitTimeoutError


def _require_path(path: Path) -> str:
    if not path.exists():
        msg = f"Manifest path {path} does not exist"
        raise SetupValidationError(msg)
    return str(path)


def apply_file(runner: CommandRunner, path: Path) -> None:
    runner.check("kubectl", "apply", "-f", _require_path(path))


def apply_kustomization(
    runner: CommandRunner,
    path: Path,
    *,
    server_side: bool = False,
) -> None:
    """Apply a kustomization directory, optionally with server-side apply."""

    args = ["apply"]
    if server_side:
        args.extend(["--server-side", "--force-conflicts"])
    args.extend(["-k", _require_path(path)])
    runner.check("kubectl", *args)


def apply_manifest(runner: CommandRunner, manifest: str) -> None:
    """Apply YAML passed on stdin."""

    runner.check("kubectl", "apply", "-f", "-", context=CommandContext(stdin=manifest))


def render_kustomization(runner: CommandRunner, path: Path) -> str:
    """Build a kustomization while keeping resources in their declared order."""

    return runner.check("kubectl", "kustomize", _require_path(path), "--reorder", "none")


def resource_exists(runner: CommandRunner, kind: str, name: str) -> bool:
    result = runner.run("kubectl", "get", kind, name)
    if result.outcome is CommandOutcome.NOT_FOUND:
        result.check()
    return result.success


def wait_for(
    runner: CommandRunner,
    resources: cabc.Sequence[str],
    *,
    namespace: str,
    condition: str,
    timeout: str,
) -> None:
    """Block until every resource meets ``condition`` or ``timeout`` expires.

    Parameters
    ----------
    runner
        Command runner used to invoke ``kubectl wait``.
    resources
        ``kind/name`` references to wait on.
    namespace
        Namespace holding the resources.
    condition
        Value for ``--for`` (``condition=available``, ``jsonpath=...``).
    timeout
        Bound accepted by ``--timeout`` such as ``2m``.

    Raises
    ------
    WaitTimeoutError
        If any resource does not reach the condition in time.
    """

    result = runner.run(
        "kubectl",
        "wait",
        *resources,
        "-n",
        namespace,
        f"--for={condition}",
        f"--timeout={timeout}",
    )
    if result.outcome is CommandOutcome.NOT_FOUND:
        result.check()
    if not result.success:
        detail = result.stderr.strip()
        targets = ", ".join(resources)
        if "timed out" in detail.lower():
            msg = f"Timed out after {timeout} waiting for {targets}"
        else:
            msg = f"{targets} did not become ready within {timeout}"
        if detail:
            msg = f"{msg}: {detail}"
        raise WaitTimeoutError(msg)


def build_secret_manifest(name: str, namespace: str, payload: bytes) -> str:
    """Render an ``Opaque`` secret carrying ``payload`` as ``client_secret.json``.

    Examples
    --------
    >>> print(build_secret_manifest("apigee-logger-gcp-sa-key", "apigee", b"{}"))
    apiVersion: v1
    kind: Secret
    metadata:
      name: apigee-logger-gcp-sa-key
      namespace: apigee
    type: Opaque
    data:
      client_secret.json: e30=
    <BLANKLINE>
    """

    document = {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name, "namespace": namespace},
        "type": "Opaque",
        "data": {SECRET_PAYLOAD_KEY: base64.b64encode(payload).decode("ascii")},
    }
    return yaml.safe_dump(document, sort_keys=False)
