"""Unit tests for log formatting."""

from __future__ import annotations

import logging

import pytest

from hybrid_setup._setup_logging import SetupFormatter, log_banner


def _record(level: int, message: str) -> logging.LogRecord:
    return logging.LogRecord("hybrid_setup", level, __file__, 1, message, (), None)


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        pytest.param(logging.INFO, "apigee-hybrid-setup: ready", id="info"),
        pytest.param(logging.WARNING, "apigee-hybrid-setup: [WARNING]: ready", id="warning"),
        pytest.param(logging.ERROR, "apigee-hybrid-setup: [ERROR]: ready", id="error"),
    ],
)
def test_formatter_prefixes(level: int, expected: str) -> None:
    formatter = SetupFormatter("apigee-hybrid-setup")
    assert formatter.format(_record(level, "ready")) == expected


def test_formatter_timestamps_when_verbose() -> None:
    formatter = SetupFormatter("apigee-hybrid-setup", timestamps=True)
    record = _record(logging.WARNING, "slow")
    record.created = 0.0
    record.msecs = 0.0
    assert formatter.format(record) == (
        "1970-01-01T00:00:00 apigee-hybrid-setup: [WARNING]: slow"
    )


def test_log_banner(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    log_banner(logging.getLogger("hybrid_setup.test"), "SUCCESS")
    assert [record.getMessage() for record in caplog.records] == [
        "",
        "*" * 44,
        "SUCCESS",
        "*" * 44,
    ]
