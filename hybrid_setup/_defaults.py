"""Resolve defaults for values the operator left unset.

For each optional value the current gcloud project, the organization's
environments and its environment groups are queried. When a value is unset
and exactly one candidate exists it is selected; zero or several candidates
are fatal. When a value was supplied it must appear in the candidate list.

Examples
--------
>>> choose_single("environment", ["e1"], flag="--env", organization="org")
'e1'
"""

from __future__ import annotations

import logging
from collections import abc as cabc
from pathlib import Path

from hybrid_setup._apigee_api import ApigeeClient, EnvironmentGroup
from hybrid_setup._commands import CommandContext, CommandRunner
from hybrid_setup._setup_config import (
    PhaseSelection,
    PlatformKind,
    SetupConfig,
    SetupInputs,
)
from hybrid_setup._setup_constants import (
    DEFAULT_API_ENDPOINT,
    DEFAULT_NAMESPACE,
    OPENSHIFT_API_GROUP,
    OPENSHIFT_SCC_RESOURCE,
)
from hybrid_setup._setup_errors import AmbiguousChoiceError, SetupValidationError

logger = logging.getLogger(__name__)

_GCLOUD_UNSET = "(unset)"


def _gcloud_config_value(runner: CommandRunner, key: str) -> str:
    value = runner.check("gcloud", "config", "get-value", key).strip()
    return "" if value == _GCLOUD_UNSET else value


def choose_single(
    kind: str,
    candidates: cabc.Sequence[str],
    *,
    flag: str,
    organization: str,
) -> str:
    """Return the only candidate or fail when there are zero or several."""

    if not candidates:
        msg = (
            f"No {kind} exists in organization '{organization}'. "
            f"Please create an {kind} and try again."
        )
        raise AmbiguousChoiceError(msg)
    if len(candidates) > 1:
        msg = f"Multiple {kind}s found. Select one explicitly using {flag} and try again."
        raise AmbiguousChoiceError(msg, candidates)
    return candidates[0]


def require_member(kind: str, value: str, candidates: cabc.Sequence[str]) -> str:
    """Return ``value`` when it is one of ``candidates``.

    Examples
    --------
    >>> require_member("environment", "e2", ["e1", "e2"])
    'e2'
    """

    if value not in candidates:
        msg = f"Invalid {kind} {value} provided."
        raise SetupValidationError(msg, candidates)
    return value


def resolve_api_endpoint(runner: CommandRunner) -> str:
    """Use the gcloud Apigee endpoint override when one is configured."""

    override = _gcloud_config_value(runner, "api_endpoint_overrides/apigee")
    endpoint = override or DEFAULT_API_ENDPOINT
    logger.info("APIGEE_API_ENDPOINT='%s'", endpoint)
    return endpoint


def resolve_organization(explicit: str | None, runner: CommandRunner) -> str:
    organization = explicit or _gcloud_config_value(runner, "project")
    if not organization:
        msg = "ORGANIZATION_NAME should be specified with --org or a configured gcloud project"
        raise SetupValidationError(msg)
    logger.info("ORGANIZATION_NAME='%s'", organization)
    return organization


def list_environments(organization: str, runner: CommandRunner) -> list[str]:
    stdout = runner.check(
        "gcloud",
        "beta",
        "apigee",
        "environments",
        "list",
        f"--organization={organization}",
        "--format=value(.)",
    )
    return [line.strip() for line in stdout.splitlines() if line.strip()]


def resolve_environment(
    explicit: str | None,
    organization: str,
    runner: CommandRunner,
) -> str:
    candidates = list_environments(organization, runner)
    if explicit:
        environment = require_member("environment", explicit, candidates)
    else:
        environment = choose_single(
            "environment", candidates, flag="--env", organization=organization
        )
    logger.info("ENVIRONMENT_NAME='%s'", environment)
    return environment


def _find_group(groups: cabc.Sequence[EnvironmentGroup], name: str) -> EnvironmentGroup | None:
    return next((group for group in groups if group.name == name), None)


def resolve_environment_group(
    explicit_name: str | None,
    explicit_hostname: str | None,
    client: ApigeeClient,
) -> tuple[str, str]:
    """Return the environment group name and the hostname to certify.

    The operator is expected to supply both values or neither. When only the
    name is given the group's first hostname is used.
    """

    if explicit_hostname and not explicit_name:
        msg = "ENVIRONMENT_GROUP_NAME should be specified with --envgroup when --ingress-domain is given"
        raise SetupValidationError(msg)

    groups = client.list_environment_groups()
    names = [group.name for group in groups]

    if not explicit_name and not explicit_hostname:
        name = choose_single(
            "environment group",
            names,
            flag="--envgroup",
            organization=client.organization,
        )
        group = _find_group(groups, name)
        hostname = group.primary_hostname if group else ""
    else:
        name = require_member("environment group", explicit_name or "", names)
        group = _find_group(groups, name)
        hostname = explicit_hostname or (group.primary_hostname if group else "")

    logger.info("ENVIRONMENT_GROUP_NAME='%s'", name)
    logger.info("ENVIRONMENT_GROUP_HOSTNAME='%s'", hostname)
    return name, hostname


def detect_platform(runner: CommandRunner) -> PlatformKind:
    """Probe the cluster for OpenShift's SecurityContextConstraints API."""

    result = runner.run(
        "kubectl",
        "api-resources",
        "--api-group",
        OPENSHIFT_API_GROUP,
        "-o",
        "name",
    )
    if result.success and OPENSHIFT_SCC_RESOURCE in result.stdout:
        return PlatformKind.OPENSHIFT
    return PlatformKind.KUBERNETES


def fetch_access_token(runner: CommandRunner, organization: str) -> str:
    return runner.check(
        "gcloud",
        f"--project={organization}",
        "auth",
        "print-access-token",
        context=CommandContext(sensitive=True),
    ).strip()


def resolve_config(
    inputs: SetupInputs,
    phases: PhaseSelection,
    *,
    organization: str,
    api_endpoint: str,
    runner: CommandRunner,
    client: ApigeeClient,
) -> SetupConfig:
    """Resolve every remaining default and build the immutable configuration."""

    environment = resolve_environment(inputs.environment, organization, runner)
    envgroup, hostname = resolve_environment_group(inputs.envgroup, inputs.hostname, client)

    gcp_project_id = inputs.gcp_project_id or organization
    logger.info("GCP_PROJECT_ID='%s'", gcp_project_id)

    platform = detect_platform(runner) if phases.needs_platform else PlatformKind.KUBERNETES
    if platform is PlatformKind.OPENSHIFT:
        logger.info("Detected an OpenShift cluster.")

    return SetupConfig(
        organization=organization,
        environment=environment,
        envgroup=envgroup,
        hostname=hostname,
        namespace=inputs.namespace or DEFAULT_NAMESPACE,
        cluster_name=inputs.cluster_name or "",
        cluster_region=inputs.cluster_region or "",
        gcp_project_id=gcp_project_id,
        api_endpoint=api_endpoint,
        root_dir=inputs.root_dir or Path.cwd(),
        platform=platform,
        verbose=inputs.verbose,
    )


def validate_config(config: SetupConfig, phases: PhaseSelection) -> None:
    """Check the values the selected phases depend on, reporting all gaps."""

    missing: list[str] = []
    if phases.needs_cluster_identity:
        if not config.cluster_name:
            missing.append("CLUSTER_NAME")
        if not config.cluster_region:
            missing.append("CLUSTER_REGION")
    for name in missing:
        logger.warning("%s should be specified", name)
    if missing:
        msg = "One or more validations failed: " + ", ".join(missing)
        raise SetupValidationError(msg)

    logger.info("CLUSTER_NAME='%s'", config.cluster_name)
    logger.info("CLUSTER_REGION='%s'", config.cluster_region)
