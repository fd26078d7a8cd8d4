# sitecheck/errors.py
"""
Error hierarchy.

Probe-level faults stay inside the orchestrator (they become ERROR results).
Request faults are translated to HTTP responses by the blueprint.
Stream faults are what a StreamClient caller sees when a scan does not
finish with a result.
"""

from __future__ import annotations


class SiteCheckError(Exception):
    """Base class for all sitecheck errors."""


class ProbeFault(SiteCheckError):
    """A single probe failed. Recovered locally as an ERROR result."""

    def __init__(self, probe: str, message: str):
        self.probe = probe
        super().__init__(f"{probe}: {message}")


class InvalidRequestError(SiteCheckError):
    """Missing or malformed scan target. No probes are run."""


class BlockedTargetError(SiteCheckError):
    """Target resolves to a private or reserved address."""


class InvalidTransitionError(SiteCheckError):
    """A progress stream was driven after reaching a terminal state."""

    def __init__(self, current: object, target: object) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid transition: {current} -> {target}")


class StreamTransportError(SiteCheckError):
    """The push channel broke before a terminal event arrived."""


class ScanFailedError(SiteCheckError):
    """The server reported a terminal error event."""


class ScanTimeoutError(SiteCheckError):
    """No terminal event arrived within the caller-side ceiling."""


class ScanCancelledError(SiteCheckError):
    """The scan was cancelled by the caller or superseded by a newer one."""


class PolicyError(SiteCheckError):
    """Scoring policy file is unreadable or inconsistent with the probe registry."""
