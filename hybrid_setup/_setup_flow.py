"""Run the selected setup phases in their fixed order.

Prerequisites are checked first, then defaults are resolved and validated,
and finally each requested phase runs in sequence: directory renaming, value
substitution, service-account provisioning, ingress certificate creation and
resource application. The first failure aborts the run; nothing already
applied is rolled back.
"""

from __future__ import annotations

import logging
import shutil
from collections import abc as cabc
from dataclasses import dataclass
from functools import partial

from hybrid_setup._apigee_api import ApigeeClient, TokenProvider
from hybrid_setup._apply_resources import apply_configuration
from hybrid_setup._commands import CommandRunner, check_prerequisites
from hybrid_setup._defaults import (
    fetch_access_token,
    resolve_api_endpoint,
    resolve_config,
    resolve_organization,
    validate_config,
)
from hybrid_setup._fill_values import fill_values
from hybrid_setup._ingress_certs import create_ingress_certs
from hybrid_setup._rename_directories import rename_directories
from hybrid_setup._service_accounts import create_service_accounts
from hybrid_setup._setup_config import PhaseSelection, SetupConfig, SetupInputs
from hybrid_setup._setup_constants import REQUIRED_COMMANDS
from hybrid_setup._setup_logging import log_banner

logger = logging.getLogger(__name__)

ClientFactory = cabc.Callable[[str, str, TokenProvider], ApigeeClient]


@dataclass(frozen=True, slots=True)
class PhaseContext:
    """Everything a phase may need, built once per run."""

    config: SetupConfig
    runner: CommandRunner
    client: ApigeeClient


Phase = cabc.Callable[[PhaseContext], None]


def _rename(ctx: PhaseContext) -> None:
    rename_directories(ctx.config)


def _fill(ctx: PhaseContext) -> None:
    fill_values(ctx.config, ctx.runner)


def _service_accounts(ctx: PhaseContext) -> None:
    create_service_accounts(ctx.config, ctx.runner, ctx.client)


def _ingress_certs(ctx: PhaseContext) -> None:
    create_ingress_certs(ctx.config, ctx.runner)


def _apply(ctx: PhaseContext) -> None:
    apply_configuration(ctx.config, ctx.runner)


def planned_phases(phases: PhaseSelection) -> list[tuple[str, Phase]]:
    """Return the selected phases in execution order.

    Examples
    --------
    >>> [name for name, _ in planned_phases(PhaseSelection(apply_configuration=True, rename_directories=True))]
    ['configure-directory-names', 'apply-configuration']
    """

    ordered: list[tuple[bool, str, Phase]] = [
        (phases.rename_directories, "configure-directory-names", _rename),
        (phases.fill_values, "fill-values", _fill),
        (phases.create_service_accounts, "create-gcp-sa-and-secrets", _service_accounts),
        (phases.create_ingress_certs, "create-ingress-tls-certs", _ingress_certs),
        (phases.apply_configuration, "apply-configuration", _apply),
    ]
    return [(name, phase) for enabled, name, phase in ordered if enabled]


def run_phases(ctx: PhaseContext, phases: PhaseSelection) -> list[str]:
    """Execute the selected phases and return the names that ran."""

    completed: list[str] = []
    for name, phase in planned_phases(phases):
        logger.debug("Starting phase %s", name)
        phase(ctx)
        completed.append(name)
    return completed


def run_setup(
    inputs: SetupInputs,
    phases: PhaseSelection,
    *,
    runner: CommandRunner | None = None,
    client_factory: ClientFactory = ApigeeClient,
    which: cabc.Callable[[str], str | None] = shutil.which,
) -> SetupConfig:
    """Resolve configuration and run the selected phases.

    Parameters
    ----------
    inputs
        Operator-supplied values with environment fallbacks applied.
    phases
        Phases requested on the command line.
    runner
        Command runner; a verbose-aware :class:`CommandRunner` by default.
    client_factory
        Builds the Apigee API client from endpoint, organization and token
        provider.
    which
        Lookup used for the prerequisite check.

    Returns
    -------
    SetupConfig
        The configuration the phases ran with.
    """

    runner = runner or CommandRunner(verbose=inputs.verbose)
    check_prerequisites(REQUIRED_COMMANDS, which=which)

    log_banner(logger, "Configuring default values...")
    api_endpoint = resolve_api_endpoint(runner)
    organization = resolve_organization(inputs.organization, runner)
    token_provider = partial(fetch_access_token, runner, organization)

    with client_factory(api_endpoint, organization, token_provider) as client:
        config = resolve_config(
            inputs,
            phases,
            organization=organization,
            api_endpoint=api_endpoint,
            runner=runner,
            client=client,
        )
        validate_config(config, phases)
        run_phases(PhaseContext(config=config, runner=runner, client=client), phases)

    log_banner(logger, "SUCCESS")
    return config
