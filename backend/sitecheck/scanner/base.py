# sitecheck/scanner/base.py
"""
Base classes and data structures for the probe battery.

Architecture:
    ScanSession flows through:  Probes → Score Aggregator → ScanReport

BaseProbe:   Checks one security property of a target and returns a result.
             Probes never score; they only observe and classify.

Every probe result is expressed in the closed StatusCode vocabulary. A probe
that looks at several things (cookies, DNS records, headers...) reports each
one as a Finding and rolls them up into a top-level status.

Result shapes by probe kind:
    GENERIC          ProbeResult
    HEADER_BATTERY   ProbeResult, one Finding per checked header
    PORT_BATTERY     PortScanResult
    SUBDOMAIN_LIST   list[str] of resolvable host names
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

class StatusCode(str, Enum):
    OK = "OK"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    WEAK = "WEAK"
    EXPIRED = "EXPIRED"
    MISSING = "MISSING"
    ERROR = "ERROR"
    NOT_APPLICABLE = "NOT_APPLICABLE"


class ProbeKind(Enum):
    GENERIC = "generic"
    HEADER_BATTERY = "header_battery"
    PORT_BATTERY = "port_battery"
    SUBDOMAIN_LIST = "subdomain_list"


# ---------------------------------------------------------------------------
# Data structures (probe output → report)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Finding:
    """One sub-observation of a probe: what was seen and how to fix it."""
    name: str
    status: StatusCode
    problem: str = ""
    fix: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "problem": self.problem,
            "fix": self.fix,
        }


@dataclass(frozen=True)
class ProbeResult:
    """
    Standardized output of a probe run.

    Fields:
        status:          Top-level verdict for the probe.
        recommendation:  One-line summary / advice shown next to the verdict.
        details:         Individual findings, in the order they were checked.
                         May be empty.
    """
    status: StatusCode
    recommendation: str = ""
    details: Tuple[Finding, ...] = ()

    @classmethod
    def error(cls, message: str, name: str = "Probe failed") -> "ProbeResult":
        """Synthetic ERROR result used when a probe could not complete."""
        return cls(
            status=StatusCode.ERROR,
            recommendation=message,
            details=(Finding(
                name=name,
                status=StatusCode.ERROR,
                problem=message,
                fix="Check that the target is reachable and try again.",
            ),),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "recommendation": self.recommendation,
            "details": [d.to_dict() for d in self.details],
        }


@dataclass(frozen=True)
class PortObservation:
    port: int
    service: str
    is_open: bool


@dataclass(frozen=True)
class PortScanResult:
    """Raw result of the open-ports probe: every checked port, open or not."""
    ports: Tuple[PortObservation, ...] = ()

    @property
    def open_ports(self) -> List[int]:
        return [p.port for p in self.ports if p.is_open]

    def service_for(self, port: int) -> str:
        for p in self.ports:
            if p.port == port:
                return p.service
        return "unknown"

    def to_dict(self) -> Dict[str, Any]:
        return {
            str(p.port): {"status": "open" if p.is_open else "closed", "service": p.service}
            for p in self.ports
        }


RawResult = Union[ProbeResult, PortScanResult, List[str]]


def rollup_status(details: Iterable[Finding]) -> StatusCode:
    """
    Top-level status from findings: CRITICAL wins, then WARNING, else OK.

    ERROR findings alone do not fail the probe; a probe with one failed
    lookup and three clean ones is still OK.
    """
    statuses = [d.status for d in details]
    if StatusCode.CRITICAL in statuses:
        return StatusCode.CRITICAL
    if StatusCode.WARNING in statuses:
        return StatusCode.WARNING
    return StatusCode.OK


def result_to_dict(result: Optional[RawResult]) -> Any:
    """JSON form of any probe result shape."""
    if result is None:
        return None
    if isinstance(result, (ProbeResult, PortScanResult)):
        return result.to_dict()
    return list(result)


# ---------------------------------------------------------------------------
# Per-scan state
# ---------------------------------------------------------------------------

@dataclass
class ScanSession:
    """
    Ephemeral state of one in-flight scan.

    Created by the orchestrator when a scan request arrives and discarded once
    the report is delivered (or the caller disconnects). Never shared between
    scans and never persisted.
    """
    target: str
    include_optional: bool
    probes: List["BaseProbe"]

    # name -> result, in completion order. None marks a skipped optional probe.
    results: Dict[str, Optional[RawResult]] = field(default_factory=dict)
    completed: int = 0

    started_at: float = field(default_factory=time.monotonic)

    @property
    def total(self) -> int:
        return len(self.probes)

    def record(self, probe_name: str, result: Optional[RawResult]) -> int:
        """Store a finished probe's result; returns the new progress counter."""
        self.results[probe_name] = result
        self.completed += 1
        return self.completed

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class BaseProbe(ABC):
    """
    Abstract base for probes.

    To create a new probe:
        1. Subclass BaseProbe
        2. Set `name` (registry key, also used by the scoring policy)
           and `label` (shown in progress events)
        3. Set `kind` if the result is not a plain ProbeResult
        4. Implement `execute(target, timeout)`
        5. Register it in sitecheck/scanner/probes/__init__.py

    Probes bound their own I/O with `timeout` and convert expected network
    failures into ERROR results. Anything they raise is caught by the
    orchestrator and replaced with an ERROR result.
    """

    name: str = "base"
    label: str = "Base"
    kind: ProbeKind = ProbeKind.GENERIC
    optional: bool = False

    def run(self, target: str, timeout: float) -> RawResult:
        """
        Execute the probe with timing.

        DO NOT OVERRIDE THIS METHOD. Override `execute()` instead.
        """
        start = time.monotonic()
        try:
            return self.execute(target, timeout)
        finally:
            logger.debug(
                f"Probe '{self.name}' took {round(time.monotonic() - start, 2)}s for {target}"
            )

    @abstractmethod
    def execute(self, target: str, timeout: float) -> RawResult:
        """Perform the actual check. Override this in subclasses."""
        ...
