"""Apply the Apigee overlays to the cluster in dependency order.

Initialization resources (namespace, certificates, CRDs, webhooks, RBAC,
ingress) go first, then the controllers, which must become available before
any Apigee custom resource is created. Datastore, Redis, environment and
organization secrets precede the rest of the instance so the controllers find
them on first reconcile. The run finishes once the top-level custom
resources report ``running``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hybrid_setup._commands import CommandRunner
from hybrid_setup._kubectl import (
    apply_file,
    apply_kustomization,
    apply_manifest,
    render_kustomization,
    resource_exists,
    wait_for,
)
from hybrid_setup._setup_config import SetupConfig
from hybrid_setup._setup_constants import (
    CERT_MANAGER_ISSUER_CRD,
    CERT_MANAGER_NAMESPACE,
    CONTROLLER_DEPLOYMENTS,
    CONTROLLER_WAIT_TIMEOUT,
    RESOURCE_WAIT_TIMEOUT,
)
from hybrid_setup._setup_errors import PrerequisiteError
from hybrid_setup._setup_logging import log_banner

logger = logging.getLogger(__name__)


def check_cert_manager(runner: CommandRunner) -> None:
    """Fail unless cert-manager is installed in the cluster."""

    if not resource_exists(runner, "namespaces", CERT_MANAGER_NAMESPACE):
        msg = f"{CERT_MANAGER_NAMESPACE} namespace does not exist"
        raise PrerequisiteError(msg, [f"namespace/{CERT_MANAGER_NAMESPACE}"])
    if not resource_exists(runner, "crd", CERT_MANAGER_ISSUER_CRD):
        msg = "clusterissuers CRD does not exist"
        raise PrerequisiteError(msg, [f"crd/{CERT_MANAGER_ISSUER_CRD}"])


def instance_secret_manifests(config: SetupConfig) -> list[Path]:
    instance = config.instance_dir
    return [
        instance / "datastore" / "secrets.yaml",
        instance / "redis" / "secrets.yaml",
        instance / "environments" / config.environment / "secrets.yaml",
        instance / "organization" / "secrets.yaml",
    ]


def readiness_targets(config: SetupConfig) -> list[str]:
    return [
        "apigeedatastore/default",
        "apigeeredis/default",
        f"apigeeenvironment/{config.organization}-{config.environment}",
        f"apigeeorganization/{config.organization}",
        "apigeetelemetry/apigee-telemetry",
    ]


def apply_initialization(config: SetupConfig, runner: CommandRunner) -> None:
    init_dir = config.initialization_dir
    if config.is_openshift:
        apply_kustomization(runner, init_dir / "openshift")

    logger.info("Creating apigee initialization kubernetes resources...")
    apply_file(runner, config.namespace_manifest)
    apply_kustomization(runner, init_dir / "certificates")
    apply_kustomization(runner, init_dir / "crds", server_side=True)
    apply_kustomization(runner, init_dir / "webhooks")
    apply_kustomization(runner, init_dir / "rbac")
    apply_kustomization(runner, init_dir / "ingress")


def apply_controllers(config: SetupConfig, runner: CommandRunner) -> None:
    logger.info("Creating controllers...")
    apply_kustomization(runner, config.overlays_dir / "controllers")

    logger.info("Waiting for controllers to be available...")
    wait_for(
        runner,
        CONTROLLER_DEPLOYMENTS,
        namespace=config.namespace,
        condition="condition=available",
        timeout=CONTROLLER_WAIT_TIMEOUT,
    )


def apply_instance(config: SetupConfig, runner: CommandRunner) -> None:
    logger.info("Creating apigee kubernetes resources...")
    for manifest in instance_secret_manifests(config):
        apply_file(runner, manifest)
    apply_manifest(runner, render_kustomization(runner, config.instance_dir))


def wait_for_resources(config: SetupConfig, runner: CommandRunner) -> None:
    log_banner(logger, "Resources have been created. Waiting for them to be ready...")
    wait_for(
        runner,
        readiness_targets(config),
        namespace=config.namespace,
        condition="jsonpath=.status.state=running",
        timeout=RESOURCE_WAIT_TIMEOUT,
    )


def apply_configuration(config: SetupConfig, runner: CommandRunner) -> None:
    log_banner(logger, "Creating kubernetes resources...")

    check_cert_manager(runner)
    apply_initialization(config, runner)
    apply_controllers(config, runner)
    apply_instance(config, runner)
    wait_for_resources(config, runner)
