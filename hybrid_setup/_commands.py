"""Command execution helpers for the delegated CLIs.

Every external program (``gcloud``, ``kubectl``, ``kpt`` and the service
account helper) is invoked through :class:`CommandRunner`, which never raises
for an unsuccessful command. Instead it returns a :class:`CommandResult`
whose :class:`CommandOutcome` distinguishes a clean exit, a non-zero exit and
a binary that could not be found. Callers that treat failure as fatal use
:meth:`CommandResult.check` or :meth:`CommandRunner.check`.
"""

from __future__ import annotations

import enum
import logging
import shlex
import shutil
from collections import abc as cabc
from dataclasses import dataclass

from plumbum import local
from plumbum.commands.processes import CommandNotFound

from hybrid_setup._setup_errors import CommandFailedError, PrerequisiteError

logger = logging.getLogger(__name__)

_NOT_FOUND_RETURN_CODE = 127
_EXEC_FAILURE_RETURN_CODE = 126


class CommandOutcome(enum.Enum):
    """How a delegated command finished."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    NOT_FOUND = "not-found"


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a delegated command execution."""

    argv: tuple[str, ...]
    outcome: CommandOutcome
    stdout: str = ""
    stderr: str = ""
    return_code: int = 0

    @property
    def success(self) -> bool:
        return self.outcome is CommandOutcome.SUCCEEDED

    def check(self) -> CommandResult:
        """Return ``self`` or raise :class:`CommandFailedError` on failure.

        Examples
        --------
        >>> CommandResult(("true",), CommandOutcome.SUCCEEDED).check().success
        True
        """
        if self.success:
            return self
        command = shlex.join(self.argv)
        if self.outcome is CommandOutcome.NOT_FOUND:
            msg = f"Command {self.argv[0]!r} was not found"
            raise CommandFailedError(msg)
        detail = self.stderr.strip() or self.stdout.strip()
        msg = f"Command '{command}' failed with exit status {self.return_code}"
        if detail:
            msg = f"{msg}: {detail}"
        raise CommandFailedError(msg)


@dataclass(frozen=True, slots=True)
class CommandContext:
    """Execution options for :meth:`CommandRunner.run`.

    ``sensitive`` keeps stdout out of the debug log; use it for commands that
    print credentials such as access tokens.
    """

    env: cabc.Mapping[str, str] | None = None
    stdin: str | None = None
    sensitive: bool = False


class CommandRunner:
    """Run external commands through plumbum, logging them when verbose."""

    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose

    def run(
        self,
        command: str,
        *args: str,
        context: CommandContext | None = None,
    ) -> CommandResult:
        """Execute ``command`` with ``args`` and capture its output."""

        ctx = context or CommandContext()
        argv = (command, *args)
        if self.verbose:
            logger.info("Running: '%s'", shlex.join(argv))
        try:
            program = local[command]
        except CommandNotFound:
            return CommandResult(
                argv=argv,
                outcome=CommandOutcome.NOT_FOUND,
                stderr=f"{command}: command not found",
                return_code=_NOT_FOUND_RETURN_CODE,
            )

        bound = program[list(args)]
        if ctx.stdin is not None:
            bound = bound << ctx.stdin
        env = dict(ctx.env) if ctx.env is not None else None
        try:
            return_code, stdout, stderr = bound.run(retcode=None, env=env)
        except OSError as exc:
            return CommandResult(
                argv=argv,
                outcome=CommandOutcome.FAILED,
                stderr=f"{command}: {exc.strerror or exc}",
                return_code=_EXEC_FAILURE_RETURN_CODE,
            )

        if self.verbose:
            if stdout.strip() and not ctx.sensitive:
                logger.debug("%s", stdout.rstrip())
            if stderr.strip():
                logger.debug("%s", stderr.rstrip())

        outcome = CommandOutcome.SUCCEEDED if return_code == 0 else CommandOutcome.FAILED
        return CommandResult(
            argv=argv,
            outcome=outcome,
            stdout=stdout,
            stderr=stderr,
            return_code=return_code,
        )

    def check(
        self,
        command: str,
        *args: str,
        context: CommandContext | None = None,
    ) -> str:
        """Execute a command that must succeed and return its stdout."""

        return self.run(command, *args, context=context).check().stdout


def find_missing_commands(
    commands: cabc.Iterable[str],
    *,
    which: cabc.Callable[[str], str | None] = shutil.which,
) -> list[str]:
    """Return the commands that are not discoverable on ``PATH``.

    Examples
    --------
    >>> find_missing_commands(["kubectl", "kpt"], which=lambda name: None)
    ['kubectl', 'kpt']
    """

    return [command for command in commands if which(command) is None]


def check_prerequisites(
    commands: cabc.Iterable[str],
    *,
    which: cabc.Callable[[str], str | None] = shutil.which,
) -> None:
    """Fail with every missing command listed when any is absent."""

    logger.info("Checking prerequisite commands...")
    missing = find_missing_commands(commands, which=which)
    for command in missing:
        logger.warning("Command '%s' not found.", command)
    if missing:
        msg = "One or more prerequisites are not installed: " + ", ".join(missing)
        raise PrerequisiteError(msg, missing)
