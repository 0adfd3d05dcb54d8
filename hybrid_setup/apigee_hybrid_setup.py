#!/usr/bin/env -S uv run python
# /// script
# requires-python = ">=3.12"
# dependencies = ["cyclopts>=3,<4", "plumbum", "httpx", "pyyaml"]
# ///
"""Install Apigee hybrid onto a Kubernetes cluster.

This command can automate the complete installation or run individual tasks:
- rename the placeholder instance, environment and envgroup directories;
- fill organization, cluster and environment values into the overlays;
- create the GCP service account and the secrets holding its key;
- request the ingress TLS certificate; and
- apply every resource in order and wait for it to become ready.

Examples
--------
Set up everything:

    apigee-hybrid-setup --cluster-name apigee-hybrid-cluster --cluster-region us-west1 --setup-all

Only apply configuration, with verbose logging:

    apigee-hybrid-setup --cluster-name apigee-hybrid-cluster --cluster-region us-west1 \\
        --verbose --apply-configuration
"""

from __future__ import annotations

import logging
import sys
from collections import abc as cabc
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter
from cyclopts.exceptions import CycloptsError

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from hybrid_setup._setup_config import (  # imported after sys.path mutation
    PhaseSelection,
    SetupInputs,
    resolve_setup_inputs,
)
from hybrid_setup._setup_errors import HybridSetupError  # imported after sys.path mutation
from hybrid_setup._setup_flow import run_setup  # imported after sys.path mutation
from hybrid_setup._setup_logging import configure_logging, log_banner  # imported after sys.path mutation

VERSION = "1.0.0"
PROG = "apigee-hybrid-setup"

app = App(
    name=PROG,
    help=(
        "Helps with the installation of Apigee Hybrid. Can be used to either "
        "automate the complete installation, or execute individual tasks."
    ),
    version=f"Apigee Hybrid Setup Version: {VERSION}",
)
logger = logging.getLogger(__name__)

_RETRY_HINT = "Please try again and possibly use '--verbose' flag to debug if error persists."


def _flag(name: str, help_text: str) -> Parameter:
    return Parameter(name=name, negative=(), help=help_text)


@app.default
def main(
    *,
    org: Annotated[
        str | None,
        Parameter(
            name="--org",
            help="Apigee organization. Defaults to the project configured in gcloud.",
        ),
    ] = None,
    env: Annotated[
        str | None,
        Parameter(
            name="--env",
            help="Apigee environment. Defaults to the only environment of the organization.",
        ),
    ] = None,
    envgroup: Annotated[
        str | None,
        Parameter(
            name="--envgroup",
            help="Apigee environment group. Defaults to the only group of the organization.",
        ),
    ] = None,
    ingress_domain: Annotated[
        str | None,
        Parameter(
            name="--ingress-domain",
            help="Hostname used to generate the self-signed ingress certificate.",
        ),
    ] = None,
    namespace: Annotated[
        str | None,
        Parameter(
            name="--namespace",
            help='Namespace where Apigee components are installed. Defaults to "apigee".',
        ),
    ] = None,
    cluster_name: Annotated[
        str | None,
        Parameter(name="--cluster-name", help="The Kubernetes cluster name."),
    ] = None,
    cluster_region: Annotated[
        str | None,
        Parameter(name="--cluster-region", help="Region in which the cluster resides."),
    ] = None,
    gcp_project_id: Annotated[
        str | None,
        Parameter(
            name="--gcp-project-id",
            help="GCP project holding the cluster. Defaults to the organization name.",
        ),
    ] = None,
    root_dir: Annotated[
        Path | None,
        Parameter(
            name="--root-dir",
            help="Directory holding overlays/, templates/ and tools/. Defaults to the working directory.",
        ),
    ] = None,
    configure_directory_names: Annotated[
        bool,
        _flag(
            "--configure-directory-names",
            "Rename the instance, environment and environment group directories.",
        ),
    ] = False,
    fill_values: Annotated[
        bool,
        _flag("--fill-values", "Replace organization, environment, etc. in the YAML files."),
    ] = False,
    create_gcp_sa_and_secrets: Annotated[
        bool,
        _flag(
            "--create-gcp-sa-and-secrets",
            "Create the GCP service account and the secrets holding its keys.",
        ),
    ] = False,
    create_ingress_tls_certs: Annotated[
        bool,
        _flag(
            "--create-ingress-tls-certs",
            "Create the Certificate generating a self-signed ingress TLS cert.",
        ),
    ] = False,
    apply_configuration: Annotated[
        bool,
        _flag("--apply-configuration", "Create the Kubernetes resources in their correct order."),
    ] = False,
    setup_all: Annotated[
        bool,
        _flag("--setup-all", "Execute every task performed by this command."),
    ] = False,
    verbose: Annotated[
        bool,
        _flag("--verbose", "Show detailed output for debugging."),
    ] = False,
) -> int:
    """Install Apigee hybrid, running the selected tasks in their fixed order."""

    if setup_all:
        phases = PhaseSelection.everything()
    else:
        phases = PhaseSelection(
            rename_directories=configure_directory_names,
            fill_values=fill_values,
            create_service_accounts=create_gcp_sa_and_secrets,
            create_ingress_certs=create_ingress_tls_certs,
            apply_configuration=apply_configuration,
        )
    if not phases.any():
        app.help_print([])
        return 0

    configure_logging(PROG, verbose=verbose)
    inputs = resolve_setup_inputs(
        SetupInputs(
            organization=org,
            environment=env,
            envgroup=envgroup,
            hostname=ingress_domain,
            namespace=namespace,
            cluster_name=cluster_name,
            cluster_region=cluster_region,
            gcp_project_id=gcp_project_id,
            root_dir=root_dir,
            verbose=verbose,
        )
    )

    try:
        run_setup(inputs, phases)
    except HybridSetupError as exc:
        logger.error("%s", exc)
        log_banner(logger, "FAILED.")
        logger.info(_RETRY_HINT)
        return exc.exit_code
    except Exception as exc:  # noqa: BLE001 - top-level handler
        logger.error("%s", exc)
        logger.debug("Unexpected failure", exc_info=True)
        log_banner(logger, "FAILED.")
        logger.info(_RETRY_HINT)
        return 1
    return 0


def run(argv: cabc.Sequence[str] | None = None) -> int:
    """Parse ``argv`` and execute; unknown or malformed flags exit with 2."""

    try:
        result = app(argv, exit_on_error=False)
    except CycloptsError:
        return 2
    return 0 if result is None else int(result)


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(run())
