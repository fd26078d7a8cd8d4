# sitecheck/scanner/summary.py
"""
Per-probe display summaries (0-100) shown next to the weighted score.

These are for humans only and never feed back into the aggregate score.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sitecheck.scanner.base import PortScanResult, ProbeResult, RawResult, StatusCode
from sitecheck.scoring.aggregator import ALLOWED_PORTS, RISK_PORTS
from sitecheck.utils.scoring import round_half_up

DISPLAY_PERCENT: Dict[StatusCode, int] = {
    StatusCode.OK: 100,
    StatusCode.WARNING: 50,
    StatusCode.WEAK: 50,
}


def display_percent(status: StatusCode) -> int:
    return DISPLAY_PERCENT.get(status, 0)


def _entry(name: str, status: StatusCode) -> Dict[str, str]:
    return {"name": name, "status": f"{status.value} ({display_percent(status)}%)"}


@dataclass(frozen=True)
class ProbeSummary:
    score: int
    tests: Tuple[Dict[str, str], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "tests": list(self.tests)}


def port_status(port: int) -> StatusCode:
    if port in RISK_PORTS:
        return StatusCode.CRITICAL
    if port in ALLOWED_PORTS:
        return StatusCode.OK
    return StatusCode.WARNING


def _summarize_probe_result(label: str, result: ProbeResult) -> ProbeSummary:
    if result.details:
        tests = [_entry(d.name or label, d.status) for d in result.details]
        mean = sum(display_percent(d.status) for d in result.details) / len(result.details)
        return ProbeSummary(score=round_half_up(mean), tests=tuple(tests))

    tests: List[Dict[str, str]] = [_entry(label, result.status)]
    if result.recommendation:
        tests.append({"name": "Recommendation", "status": result.recommendation})
    return ProbeSummary(score=display_percent(result.status), tests=tuple(tests))


def _summarize_ports(result: PortScanResult) -> ProbeSummary:
    open_ports = result.open_ports
    if not open_ports:
        return ProbeSummary(score=100, tests=())
    statuses = [port_status(p) for p in open_ports]
    tests = tuple(
        _entry(f"{port} ({result.service_for(port)})", status)
        for port, status in zip(open_ports, statuses)
    )
    mean = sum(display_percent(s) for s in statuses) / len(statuses)
    return ProbeSummary(score=round_half_up(mean), tests=tests)


def _summarize_subdomains(result: List[str]) -> ProbeSummary:
    return ProbeSummary(
        score=100 if result else 0,
        tests=tuple({"name": sub, "status": "found (100%)"} for sub in result),
    )


def summarize(label: str, result: Optional[RawResult]) -> Optional[ProbeSummary]:
    """Display summary for one probe result; None for a skipped probe."""
    if result is None:
        return None
    if isinstance(result, ProbeResult):
        return _summarize_probe_result(label, result)
    if isinstance(result, PortScanResult):
        return _summarize_ports(result)
    if isinstance(result, list):
        return _summarize_subdomains(result)
    raise TypeError(f"Cannot summarize result of type {type(result).__name__}")
