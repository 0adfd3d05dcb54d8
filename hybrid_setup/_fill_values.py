"""Fill organization, cluster and environment values into the overlay YAMLs.

Most placeholders are kpt setters (``# kpt-set:`` comments) and are replaced
by running the ``apply-setters`` function over the overlays. The Istio mesh
discovery address and the ingress EnvoyFilter namespace are not reachable by
setters and are rewritten directly. On OpenShift, the commented-out SCC
components are enabled by stripping their leading ``#``.
"""

from __future__ import annotations

import logging
import re
from collections import abc as cabc
from pathlib import Path

from hybrid_setup._commands import CommandRunner
from hybrid_setup._setup_config import SetupConfig
from hybrid_setup._setup_constants import APPLY_SETTERS_IMAGE
from hybrid_setup._setup_errors import SetupValidationError
from hybrid_setup._setup_logging import log_banner

logger = logging.getLogger(__name__)

MESH_CONFIG_PATH = Path(
    "controllers", "apigee-ingressgateway-manager", "apigee-istio-mesh-config.yaml"
)
ENVOY_FILTER_PATH = Path("initialization", "ingress", "envoyfilter-1.11.yaml")
OPENSHIFT_KUSTOMIZATION_PATH = Path("initialization", "openshift", "kustomization.yaml")

_DISCOVERY_ADDRESS = re.compile(r"(discoveryAddress: apigee-ingressgateway-manager\.).*(\.svc:15012)")
_ENVOY_FILTER_NAMESPACE = re.compile(r"namespace: 'apigee'")
_COMMENT_PREFIX = re.compile(r"^# *")


def build_setters(config: SetupConfig) -> dict[str, str]:
    """Return the kpt setter values for ``config``."""

    return {
        "APIGEE_NAMESPACE": config.namespace,
        "CASSANDRA_DC_NAME": config.instance_name,
        "CLUSTER_NAME": config.cluster_name,
        "CLUSTER_REGION": config.cluster_region,
        "ENVIRONMENT_NAME": config.environment,
        "ENVIRONMENT_GROUP_NAME": config.envgroup,
        "GCP_PROJECT_ID": config.gcp_project_id,
        "GCP_SERVICE_ACCOUNT_NAME": config.service_account_name,
        "ORGANIZATION_NAME_UPPER": config.organization.upper(),
        "ORGANIZATION_NAME": config.organization,
    }


def apply_setters(config: SetupConfig, runner: CommandRunner) -> None:
    setters = [f"{key}={value}" for key, value in build_setters(config).items()]
    runner.check(
        "kpt",
        "fn",
        "eval",
        f"{config.overlays_dir}/",
        "--image",
        APPLY_SETTERS_IMAGE,
        "--",
        *setters,
    )


def rewrite_file(
    path: Path,
    pattern: re.Pattern[str],
    replacement: cabc.Callable[[re.Match[str]], str],
) -> int:
    """Substitute ``pattern`` in ``path`` in place and return the match count."""

    if not path.is_file():
        msg = f"Cannot update {path}: file does not exist"
        raise SetupValidationError(msg)
    content = path.read_text(encoding="utf-8")
    updated, count = pattern.subn(replacement, content)
    if count:
        path.write_text(updated, encoding="utf-8")
    return count


def uncomment_lines(path: Path, marker: str) -> int:
    """Strip a leading ``#`` (and following spaces) from lines containing ``marker``.

    Examples
    --------
    >>> import tempfile
    >>> target = Path(tempfile.mkdtemp()) / "kustomization.yaml"
    >>> _ = target.write_text("# components:\\n#   - ../components/openshift-scc\\n")
    >>> uncomment_lines(target, "components:")
    1
    >>> target.read_text().splitlines()[0]
    'components:'
    """

    if not path.is_file():
        msg = f"Cannot update {path}: file does not exist"
        raise SetupValidationError(msg)
    lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
    changed = 0
    for index, line in enumerate(lines):
        if marker not in line:
            continue
        stripped = _COMMENT_PREFIX.sub("", line, count=1)
        if stripped != line:
            lines[index] = stripped
            changed += 1
    if changed:
        path.write_text("".join(lines), encoding="utf-8")
    return changed


def patch_mesh_namespace(config: SetupConfig) -> None:
    namespace = config.namespace
    rewrite_file(
        config.overlays_dir / MESH_CONFIG_PATH,
        _DISCOVERY_ADDRESS,
        lambda match: f"{match.group(1)}{namespace}{match.group(2)}",
    )
    rewrite_file(
        config.overlays_dir / ENVOY_FILTER_PATH,
        _ENVOY_FILTER_NAMESPACE,
        lambda _match: f"namespace: '{namespace}'",
    )


def enable_openshift_components(config: SetupConfig) -> None:
    logger.info("Enabling SecurityContextConstraints for OpenShift...")
    uncomment_lines(config.overlays_dir / OPENSHIFT_KUSTOMIZATION_PATH, "initialization/openshift")
    for component in ("datastore", "telemetry"):
        kustomization = config.instance_dir / component / "kustomization.yaml"
        uncomment_lines(kustomization, "components:")
        uncomment_lines(kustomization, "components/openshift-scc")


def fill_values(config: SetupConfig, runner: CommandRunner) -> None:
    log_banner(logger, "Filling values in YAMLs...")

    apply_setters(config, runner)
    patch_mesh_namespace(config)

    if config.is_openshift:
        enable_openshift_components(config)
