"""Exception hierarchy for the Apigee hybrid setup helper.

Errors fall into two families. ``FatalSetupError`` subclasses describe
conditions the operator must fix before re-running (missing inputs, ambiguous
defaults, absent tools, waits that ran out of time) and map to exit status 2.
Everything else derived from ``HybridSetupError`` is a failure surfaced by a
delegated command or API call and maps to exit status 1.

Examples
--------
>>> str(AmbiguousChoiceError("Multiple environments found.", ("e1", "e2")))
'Multiple environments found. Found: e1, e2'
"""

from __future__ import annotations

from collections.abc import Iterable


class HybridSetupError(Exception):
    """Base error for setup helpers."""

    exit_code = 1


class FatalSetupError(HybridSetupError):
    """Raised for conditions the operator must correct before re-running."""

    exit_code = 2


class SetupValidationError(FatalSetupError):
    """Raised when a required input is missing or invalid.

    Parameters
    ----------
    message
        Human-readable description naming the offending field.
    candidates
        Valid values the operator may choose from, when known.
    """

    def __init__(self, message: str, candidates: Iterable[str] = ()) -> None:
        self.candidates = tuple(candidates)
        if self.candidates:
            message = f"{message} Found: {', '.join(self.candidates)}"
        super().__init__(message)


class AmbiguousChoiceError(SetupValidationError):
    """Raised when zero or several candidates exist where exactly one is needed."""


class PrerequisiteError(FatalSetupError):
    """Raised when required tooling or cluster capabilities are missing.

    Parameters
    ----------
    message
        Summary of the failed check.
    missing
        Every missing item, reported together.
    """

    def __init__(self, message: str, missing: Iterable[str] = ()) -> None:
        self.missing = tuple(missing)
        super().__init__(message)


class WaitTimeoutError(FatalSetupError):
    """Raised when a bounded readiness wait expires."""


class CommandFailedError(HybridSetupError):
    """Raised when a delegated command exits non-zero or cannot be executed."""


class ApigeeApiError(HybridSetupError):
    """Raised when an Apigee management API call fails."""


__all__ = [
    "AmbiguousChoiceError",
    "ApigeeApiError",
    "CommandFailedError",
    "FatalSetupError",
    "HybridSetupError",
    "PrerequisiteError",
    "SetupValidationError",
    "WaitTimeoutError",
]
