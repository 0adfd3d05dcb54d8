"""Configuration values threaded through the setup phases.

Raw inputs arrive from CLI flags and their mirrored environment variables
(:class:`SetupInputs`). Once defaults have been resolved against the cloud
project and the cluster, a single immutable :class:`SetupConfig` is built and
passed explicitly to every phase.
"""

from __future__ import annotations

import enum
import os
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path

from hybrid_setup._input_resolution import InputResolution, resolve_input
from hybrid_setup._setup_constants import (
    CERTIFICATE_TEMPLATE,
    CREATE_SERVICE_ACCOUNT_HELPER,
    DEFAULT_NAMESPACE,
    DEFAULT_SERVICE_ACCOUNT_NAME,
    SERVICE_ACCOUNT_OUTPUT_DIR_NAME,
)


class PlatformKind(enum.Enum):
    """Flavour of Kubernetes the manifests are applied to."""

    KUBERNETES = "kubernetes"
    OPENSHIFT = "openshift"


@dataclass(frozen=True, slots=True)
class PhaseSelection:
    """Which setup phases were requested on the command line."""

    rename_directories: bool = False
    fill_values: bool = False
    create_service_accounts: bool = False
    create_ingress_certs: bool = False
    apply_configuration: bool = False

    @classmethod
    def everything(cls) -> PhaseSelection:
        return cls(True, True, True, True, True)

    def any(self) -> bool:
        return (
            self.rename_directories
            or self.fill_values
            or self.create_service_accounts
            or self.create_ingress_certs
            or self.apply_configuration
        )

    @property
    def needs_cluster_identity(self) -> bool:
        """Phases that address the ``<cluster>-<region>`` instance directory."""
        return self.rename_directories or self.fill_values or self.apply_configuration

    @property
    def needs_platform(self) -> bool:
        return self.fill_values or self.apply_configuration


@dataclass(frozen=True, slots=True)
class SetupInputs:
    """Inputs as supplied by the operator, before defaults are resolved."""

    organization: str | None = None
    environment: str | None = None
    envgroup: str | None = None
    hostname: str | None = None
    namespace: str | None = None
    cluster_name: str | None = None
    cluster_region: str | None = None
    gcp_project_id: str | None = None
    root_dir: Path | None = None
    verbose: bool = False


def resolve_setup_inputs(
    raw: SetupInputs,
    env: cabc.Mapping[str, str] | None = None,
) -> SetupInputs:
    """Fill unset CLI values from their mirrored environment variables.

    Examples
    --------
    >>> resolve_setup_inputs(SetupInputs(), env={"CLUSTER_NAME": "hybrid"}).cluster_name
    'hybrid'
    """

    env = os.environ if env is None else env

    def _value(value: str | None, env_key: str, default: str | None = None) -> str | None:
        resolved = resolve_input(value, InputResolution(env_key=env_key, default=default), env=env)
        return None if resolved is None else str(resolved)

    root_dir = resolve_input(
        raw.root_dir,
        InputResolution(env_key="APIGEE_HYBRID_ROOT", default=Path.cwd(), as_path=True),
        env=env,
    )
    return SetupInputs(
        organization=_value(raw.organization, "ORGANIZATION_NAME"),
        environment=_value(raw.environment, "ENVIRONMENT_NAME"),
        envgroup=_value(raw.envgroup, "ENVIRONMENT_GROUP_NAME"),
        hostname=_value(raw.hostname, "ENVIRONMENT_GROUP_HOSTNAME"),
        namespace=str(_value(raw.namespace, "APIGEE_NAMESPACE", DEFAULT_NAMESPACE)),
        cluster_name=_value(raw.cluster_name, "CLUSTER_NAME"),
        cluster_region=_value(raw.cluster_region, "CLUSTER_REGION"),
        gcp_project_id=_value(raw.gcp_project_id, "GCP_PROJECT_ID"),
        root_dir=Path(root_dir),
        verbose=raw.verbose,
    )


@dataclass(frozen=True, slots=True)
class SetupConfig:
    """Resolved configuration shared by every phase."""

    organization: str
    environment: str
    envgroup: str
    hostname: str
    namespace: str
    cluster_name: str
    cluster_region: str
    gcp_project_id: str
    api_endpoint: str
    root_dir: Path
    platform: PlatformKind = PlatformKind.KUBERNETES
    service_account_name: str = DEFAULT_SERVICE_ACCOUNT_NAME
    verbose: bool = False

    @property
    def is_openshift(self) -> bool:
        return self.platform is PlatformKind.OPENSHIFT

    @property
    def instance_name(self) -> str:
        return f"{self.cluster_name}-{self.cluster_region}"

    @property
    def overlays_dir(self) -> Path:
        return self.root_dir / "overlays"

    @property
    def instances_dir(self) -> Path:
        return self.overlays_dir / "instances"

    @property
    def instance_dir(self) -> Path:
        return self.instances_dir / self.instance_name

    @property
    def initialization_dir(self) -> Path:
        return self.overlays_dir / "initialization"

    @property
    def namespace_manifest(self) -> Path:
        return self.initialization_dir / "namespace.yaml"

    @property
    def service_account_dir(self) -> Path:
        return self.root_dir / SERVICE_ACCOUNT_OUTPUT_DIR_NAME

    @property
    def credential_file(self) -> Path:
        return self.service_account_dir / f"{self.organization}-{self.service_account_name}.json"

    @property
    def service_account_helper(self) -> Path:
        return self.root_dir.joinpath(*CREATE_SERVICE_ACCOUNT_HELPER)

    @property
    def certificate_template(self) -> Path:
        return self.root_dir.joinpath(*CERTIFICATE_TEMPLATE)

    @property
    def service_account_email(self) -> str:
        return f"{self.service_account_name}@{self.organization}.iam.gserviceaccount.com"

    @property
    def service_account_identity(self) -> str:
        return f"serviceAccount:{self.service_account_email}"


__all__ = [
    "PhaseSelection",
    "PlatformKind",
    "SetupConfig",
    "SetupInputs",
    "resolve_setup_inputs",
]
