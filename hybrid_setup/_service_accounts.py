"""Provision the GCP service account and the secrets carrying its key.

The flow reuses a previously downloaded key when present, otherwise it runs
the bundled ``create-service-account.sh`` helper. The key is checked by
minting a token with it, the account is added to the organization's sync
authorization list, and one Kubernetes secret per Apigee component is
created or updated from the key file.
"""

from __future__ import annotations

import logging
import os

from hybrid_setup._apigee_api import ApigeeClient, SyncAuthorization
from hybrid_setup._commands import CommandContext, CommandRunner
from hybrid_setup._kubectl import apply_file, apply_manifest, build_secret_manifest
from hybrid_setup._setup_config import SetupConfig
from hybrid_setup._setup_errors import SetupValidationError
from hybrid_setup._setup_logging import log_banner

logger = logging.getLogger(__name__)


def secret_names(config: SetupConfig) -> list[str]:
    """Return the secret names the Apigee components expect, in apply order."""

    org = config.organization
    org_env = f"{org}-{config.environment}"
    return [
        f"apigee-synchronizer-gcp-sa-key-{org_env}",
        f"apigee-udca-gcp-sa-key-{org_env}",
        f"apigee-runtime-gcp-sa-key-{org_env}",
        f"apigee-watcher-gcp-sa-key-{org}",
        f"apigee-connect-agent-gcp-sa-key-{org}",
        f"apigee-mart-gcp-sa-key-{org}",
        f"apigee-udca-gcp-sa-key-{org}",
        "apigee-metrics-gcp-sa-key",
        "apigee-logger-gcp-sa-key",
    ]


def ensure_service_account_key(config: SetupConfig, runner: CommandRunner) -> bool:
    """Create the service account and download its key unless a key exists.

    Returns ``True`` when a new account was created.
    """

    key_file = config.credential_file
    if key_file.is_file():
        logger.info("Service account keys FOUND at '%s'.", key_file)
        logger.info("Skipping recreation of service account and keys.")
        return False

    logger.info(
        "Service account keys NOT FOUND. Attempting to create a new service "
        "account and downloading its keys."
    )
    helper = config.service_account_helper
    if not helper.is_file():
        msg = f"Service account helper {helper} does not exist"
        raise SetupValidationError(msg)

    # The helper refuses to run when both --project-id and PROJECT_ID are set.
    env = {key: value for key, value in os.environ.items() if key != "PROJECT_ID"}
    runner.check(
        str(helper),
        "--project-id",
        config.organization,
        "--env",
        "non-prod",
        "--name",
        config.service_account_name,
        "--dir",
        str(config.service_account_dir),
        context=CommandContext(env=env, stdin="y\n"),
    )
    if not key_file.is_file():
        msg = f"Service account helper did not produce {key_file}"
        raise SetupValidationError(msg)
    return True


def validate_service_account_key(config: SetupConfig, runner: CommandRunner) -> None:
    logger.info("Checking if the key is valid...")
    env = {**os.environ, "GOOGLE_APPLICATION_CREDENTIALS": str(config.credential_file)}
    result = runner.run(
        "gcloud",
        "auth",
        "application-default",
        "print-access-token",
        context=CommandContext(env=env, sensitive=True),
    )
    if not result.success:
        detail = result.stderr.strip()
        msg = f"Service account key at {config.credential_file} is not valid"
        if detail:
            msg = f"{msg}: {detail}"
        raise SetupValidationError(msg)


def authorize_sync_identity(config: SetupConfig, client: ApigeeClient) -> SyncAuthorization:
    """Add the service account to the organization's sync authorization list.

    The update carries the etag from the read, so a concurrent writer makes
    the API reject this call instead of silently dropping an identity.
    """

    logger.info("Calling setSyncAuthorization API...")
    current = client.get_sync_authorization()
    identity = config.service_account_identity
    if identity in current.identities:
        logger.info("'%s' is already authorized for sync.", identity)
        return current
    return client.set_sync_authorization(current.with_identity(identity))


def create_service_account_secrets(config: SetupConfig, runner: CommandRunner) -> None:
    log_banner(logger, "Creating kubernetes secrets containing the service account keys...")
    apply_file(runner, config.namespace_manifest)

    payload = config.credential_file.read_bytes()
    for name in secret_names(config):
        apply_manifest(runner, build_secret_manifest(name, config.namespace, payload))


def create_service_accounts(
    config: SetupConfig,
    runner: CommandRunner,
    client: ApigeeClient,
) -> None:
    log_banner(logger, "Configuring GCP service account...")

    ensure_service_account_key(config, runner)
    validate_service_account_key(config, runner)
    authorize_sync_identity(config, client)
    create_service_account_secrets(config, runner)
