from __future__ import annotations

import sys
from collections import abc as cabc
from dataclasses import dataclass
from pathlib import Path

import httpx
import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from hybrid_setup._apigee_api import ApigeeClient  # noqa: E402
from hybrid_setup._commands import (  # noqa: E402
    CommandContext,
    CommandOutcome,
    CommandResult,
    CommandRunner,
)
from hybrid_setup._setup_config import SetupConfig  # noqa: E402


@dataclass(slots=True)
class _Response:
    prefix: tuple[str, ...]
    stdout: str
    stderr: str
    return_code: int
    outcome: CommandOutcome | None
    effect: cabc.Callable[[tuple[str, ...]], None] | None


class RecordingRunner(CommandRunner):
    """Command runner that records invocations instead of spawning processes.

    Responses are matched by argv prefix in registration order; unmatched
    commands succeed with empty output.
    """

    def __init__(self) -> None:
        super().__init__(verbose=False)
        self.calls: list[tuple[str, ...]] = []
        self.contexts: list[CommandContext | None] = []
        self._responses: list[_Response] = []

    def respond(
        self,
        *prefix: str,
        stdout: str = "",
        stderr: str = "",
        return_code: int = 0,
        outcome: CommandOutcome | None = None,
        effect: cabc.Callable[[tuple[str, ...]], None] | None = None,
    ) -> None:
        self._responses.append(
            _Response(tuple(prefix), stdout, stderr, return_code, outcome, effect)
        )

    def run(
        self,
        command: str,
        *args: str,
        context: CommandContext | None = None,
    ) -> CommandResult:
        argv = (command, *args)
        self.calls.append(argv)
        self.contexts.append(context)
        for response in self._responses:
            if argv[: len(response.prefix)] != response.prefix:
                continue
            if response.effect is not None:
                response.effect(argv)
            outcome = response.outcome or (
                CommandOutcome.SUCCEEDED if response.return_code == 0 else CommandOutcome.FAILED
            )
            return CommandResult(
                argv=argv,
                outcome=outcome,
                stdout=response.stdout,
                stderr=response.stderr,
                return_code=response.return_code,
            )
        return CommandResult(argv=argv, outcome=CommandOutcome.SUCCEEDED)

    def calls_starting_with(self, *prefix: str) -> list[tuple[str, ...]]:
        return [call for call in self.calls if call[: len(prefix)] == prefix]


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def make_config(tmp_path: Path) -> cabc.Callable[..., SetupConfig]:
    """Return a factory for configs rooted in ``tmp_path``."""

    def _make(**overrides: object) -> SetupConfig:
        values: dict[str, object] = {
            "organization": "my-org",
            "environment": "test-env",
            "envgroup": "prod-group",
            "hostname": "api.example.com",
            "namespace": "apigee",
            "cluster_name": "hybrid",
            "cluster_region": "us-west1",
            "gcp_project_id": "my-org",
            "api_endpoint": "https://apigee.googleapis.com",
            "root_dir": tmp_path,
        }
        values.update(overrides)
        return SetupConfig(**values)

    return _make


def make_client(
    handler: cabc.Callable[[httpx.Request], httpx.Response],
    *,
    organization: str = "my-org",
    token: str = "token-123",
) -> ApigeeClient:
    """Build an API client whose requests are answered by ``handler``."""

    return ApigeeClient(
        "https://apigee.googleapis.com",
        organization,
        lambda: token,
        transport=httpx.MockTransport(handler),
    )


def write_file(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
