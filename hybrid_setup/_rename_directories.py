"""Rename the placeholder overlay directories after the resolved names."""

from __future__ import annotations

import logging
from pathlib import Path

from hybrid_setup._setup_config import SetupConfig
from hybrid_setup._setup_constants import (
    DEFAULT_ENV_DIR_NAME,
    DEFAULT_ENVGROUP_DIR_NAME,
    DEFAULT_INSTANCE_DIR_NAME,
)
from hybrid_setup._setup_errors import SetupValidationError
from hybrid_setup._setup_logging import log_banner

logger = logging.getLogger(__name__)


def rename_if_absent(source: Path, destination: Path, *, label: str) -> bool:
    """Move ``source`` to ``destination`` unless the destination already exists.

    Returns ``True`` when a rename happened.
    """

    if destination.is_dir():
        logger.debug("'%s' already exists; skipping %s rename.", destination, label)
        return False
    if not source.is_dir():
        msg = f"Cannot rename {label}: neither {source} nor {destination} exists"
        raise SetupValidationError(msg)
    logger.info("Renaming default %s '%s' to '%s'...", label, source.name, destination.name)
    source.rename(destination)
    return True


def rename_directories(config: SetupConfig) -> None:
    log_banner(
        logger,
        "Configuring proper names for instance, environment and environment group directories...",
    )

    instance_dir = config.instance_dir
    rename_if_absent(
        config.instances_dir / DEFAULT_INSTANCE_DIR_NAME,
        instance_dir,
        label="instance",
    )
    rename_if_absent(
        instance_dir / "environments" / DEFAULT_ENV_DIR_NAME,
        instance_dir / "environments" / config.environment,
        label="environment",
    )
    rename_if_absent(
        instance_dir / "route-config" / DEFAULT_ENVGROUP_DIR_NAME,
        instance_dir / "route-config" / config.envgroup,
        label="envgroup",
    )
