"""Unit tests for command execution helpers."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from hybrid_setup._commands import (
    CommandContext,
    CommandOutcome,
    CommandResult,
    CommandRunner,
    check_prerequisites,
    find_missing_commands,
)
from hybrid_setup._setup_errors import CommandFailedError, PrerequisiteError


def test_check_returns_successful_result() -> None:
    result = CommandResult(("kubectl", "version"), CommandOutcome.SUCCEEDED, stdout="v1")
    assert result.check() is result, "successful results should pass through check()"


def test_check_raises_with_stderr_detail() -> None:
    result = CommandResult(
        ("kubectl", "apply", "-f", "ns.yaml"),
        CommandOutcome.FAILED,
        stderr="error: forbidden\n",
        return_code=1,
    )
    with pytest.raises(CommandFailedError) as excinfo:
        result.check()
    message = str(excinfo.value)
    assert "kubectl apply -f ns.yaml" in message, "message should name the command"
    assert "exit status 1" in message
    assert message.endswith("error: forbidden"), "stderr should be appended"


def test_check_reports_missing_binary() -> None:
    result = CommandResult(("kpt", "fn"), CommandOutcome.NOT_FOUND, return_code=127)
    with pytest.raises(CommandFailedError, match="'kpt' was not found"):
        result.check()


def test_find_missing_commands_preserves_order() -> None:
    available = {"gcloud"}
    missing = find_missing_commands(
        ["gcloud", "kubectl", "kpt"],
        which=lambda name: f"/usr/bin/{name}" if name in available else None,
    )
    assert missing == ["kubectl", "kpt"]


def test_check_prerequisites_reports_every_missing_command(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with pytest.raises(PrerequisiteError) as excinfo:
        check_prerequisites(
            ["gcloud", "kubectl", "kpt"],
            which=lambda name: "/usr/bin/gcloud" if name == "gcloud" else None,
        )
    assert excinfo.value.missing == ("kubectl", "kpt"), "all missing tools should be listed"
    assert excinfo.value.exit_code == 2
    warnings = [record.getMessage() for record in caplog.records if record.levelno == logging.WARNING]
    assert warnings == ["Command 'kubectl' not found.", "Command 'kpt' not found."]


def test_check_prerequisites_passes_when_all_present() -> None:
    check_prerequisites(["gcloud", "kubectl"], which=lambda name: f"/bin/{name}")


def test_runner_reports_unknown_program() -> None:
    result = CommandRunner().run("apigee-hybrid-setup-no-such-binary")
    assert result.outcome is CommandOutcome.NOT_FOUND
    assert result.return_code == 127


def test_runner_captures_failure_output() -> None:
    result = CommandRunner().run("sh", "-c", "echo out; echo err >&2; exit 3")
    assert result.outcome is CommandOutcome.FAILED
    assert result.return_code == 3
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"


def test_runner_feeds_stdin() -> None:
    stdout = CommandRunner().check("cat", context=CommandContext(stdin="kind: Secret\n"))
    assert stdout == "kind: Secret\n"


def test_verbose_runner_hides_sensitive_stdout(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="hybrid_setup._commands")
    runner = CommandRunner(verbose=True)
    runner.run("sh", "-c", "echo secret-token", context=CommandContext(sensitive=True))

    messages = [record.getMessage() for record in caplog.records]
    assert "Running: 'sh -c 'echo secret-token''" in messages, "command line should be logged"
    assert "secret-token" not in [message.strip() for message in messages], (
        "sensitive stdout must not be logged"
    )


def test_runner_passes_environment() -> None:
    stdout = CommandRunner().check(
        "sh",
        "-c",
        'printf %s "$APIGEE_TEST_VALUE"',
        context=CommandContext(env={"APIGEE_TEST_VALUE": "from-env", "PATH": "/usr/bin:/bin"}),
    )
    assert stdout == "from-env"


def test_runner_reports_program_that_cannot_start(tmp_path: Path) -> None:
    helper = tmp_path / "create-service-account.sh"
    helper.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    helper.chmod(0o644)

    result = CommandRunner().run(str(helper), "--project-id", "my-org")

    assert result.outcome is CommandOutcome.FAILED
    assert result.return_code == 126
    assert "Permission denied" in result.stderr
    with pytest.raises(CommandFailedError, match="Permission denied"):
        result.check()
