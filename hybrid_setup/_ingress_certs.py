"""Request the self-signed ingress certificate for the environment group."""

from __future__ import annotations

import logging
import os
from collections import abc as cabc
from string import Template

from hybrid_setup._commands import CommandRunner
from hybrid_setup._kubectl import apply_file, apply_manifest
from hybrid_setup._setup_config import SetupConfig
from hybrid_setup._setup_errors import SetupValidationError
from hybrid_setup._setup_logging import log_banner

logger = logging.getLogger(__name__)


def certificate_variables(
    config: SetupConfig,
    env: cabc.Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return the variables substituted into the certificate template.

    ``HOSTNAME`` is taken from the environment, as the template is also used
    by shell tooling that exports it.
    """

    env = os.environ if env is None else env
    return {
        **env,
        "APIGEE_NAMESPACE": config.namespace,
        "ORGANIZATION_NAME": config.organization,
        "ENVIRONMENT_GROUP_NAME": config.envgroup,
        "ENVIRONMENT_GROUP_HOSTNAME": config.hostname,
        "HOSTNAME": env.get("HOSTNAME", ""),
    }


def render_certificate(config: SetupConfig, env: cabc.Mapping[str, str] | None = None) -> str:
    template_path = config.certificate_template
    if not template_path.is_file():
        msg = f"Certificate template {template_path} does not exist"
        raise SetupValidationError(msg)
    template = Template(template_path.read_text(encoding="utf-8"))
    return template.safe_substitute(certificate_variables(config, env))


def create_ingress_certs(config: SetupConfig, runner: CommandRunner) -> None:
    log_banner(logger, "Creating ingress Certificate...")

    apply_file(runner, config.namespace_manifest)
    apply_manifest(runner, render_certificate(config))
