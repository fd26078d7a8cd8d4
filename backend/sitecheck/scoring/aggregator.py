# sitecheck/scoring/aggregator.py
"""
Score Aggregator: turns one scan's probe results into cluster and total
scores.

Walks the policy's clusters in order and scores every probe listed there.
A probe listed in several clusters counts in each of them. Port and
subdomain results are the exception: they are scored once, after the
cluster walk, and always land in the "network" cluster, which is created
when the policy does not define it. How a result is scored depends on the
probe's kind:

    GENERIC          factor table on the top-level status
    HEADER_BATTERY   weight / 7 per finding, factor table per finding
    PORT_BATTERY     open-port risk classes
    SUBDOMAIN_LIST   keyword classes on the discovered host names

A probe with no result (skipped optional probe) or an ERROR result adds
nothing, neither points nor maximum. Points are rounded half up at every
contribution.

Pure and deterministic: same policy and results, same report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sitecheck.scanner.base import PortScanResult, ProbeKind, ProbeResult, RawResult, StatusCode
from sitecheck.scoring.policy import ScoringPolicy
from sitecheck.utils.scoring import percent_of, round_half_up

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

# None = excluded from scoring entirely.
STATUS_FACTORS: Dict[StatusCode, Optional[float]] = {
    StatusCode.OK: 1.0,
    StatusCode.WARNING: 0.5,
    StatusCode.WEAK: 0.5,
    StatusCode.CRITICAL: 0.0,
    StatusCode.EXPIRED: 0.0,
    StatusCode.MISSING: 0.0,
    StatusCode.NOT_APPLICABLE: 0.0,
    StatusCode.ERROR: None,
}

HEADER_SUBCHECKS = 7

RISK_PORTS = frozenset({21, 22, 25, 3306})
ALLOWED_PORTS = frozenset({53, 80, 443})
UNNECESSARY_PORTS = frozenset({110, 143, 8080})

RISK_SUBDOMAIN_KEYWORDS = (
    "admin", "login", "dashboard", "ftp", "backup", "old",
    "zugang", "intern", "portal", "webmail", "api",
)
SENSITIVE_SUBDOMAIN_KEYWORDS = ("dev", "test", "staging", "beta", "static", "cdn", "m", "secure")

NETWORK_CLUSTER = "network"
NETWORK_KINDS = frozenset({ProbeKind.PORT_BATTERY, ProbeKind.SUBDOMAIN_LIST})


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ClusterScore:
    score: int
    max_score: float
    percentage: int

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "maxScore": self.max_score, "percentage": self.percentage}


@dataclass(frozen=True)
class ScoreReport:
    total_score: int
    total_max: float
    percentage: int
    cluster_scores: Dict[str, ClusterScore]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalScore": self.total_score,
            "totalMax": self.total_max,
            "percentage": self.percentage,
            "clusterScores": {name: c.to_dict() for name, c in self.cluster_scores.items()},
        }


# ---------------------------------------------------------------------------
# Per-kind scoring
# ---------------------------------------------------------------------------

def port_factor(open_ports: List[int]) -> float:
    if not open_ports:
        return 1.0
    if any(p in RISK_PORTS for p in open_ports):
        return 0.0
    if all(p in ALLOWED_PORTS for p in open_ports):
        return 1.0
    if any(p in UNNECESSARY_PORTS for p in open_ports):
        return 0.5
    # Unclassified ports.
    return 0.5


def subdomain_labels(name: str, target: Optional[str] = None) -> List[str]:
    """
    Labels of `name` below the scanned domain.

    Without a target the registrable part is taken to be the last two labels.
    """
    name = name.lower().rstrip(".")
    if target:
        domain = target.lower().rstrip(".")
        if name == domain:
            return []
        if name.endswith("." + domain):
            return name[: -len(domain) - 1].split(".")
    return name.split(".")[:-2]


def subdomain_factor(subdomains: List[str], target: Optional[str] = None) -> float:
    if not subdomains:
        return 1.0
    labels = [label for sub in subdomains for label in subdomain_labels(sub, target)]
    if any(k in label for label in labels for k in RISK_SUBDOMAIN_KEYWORDS):
        return 0.0
    if any(k in label for label in labels for k in SENSITIVE_SUBDOMAIN_KEYWORDS):
        return 0.5
    return 1.0


def _status_points(status: StatusCode, weight: float) -> Optional[int]:
    factor = STATUS_FACTORS[status]
    if factor is None:
        return None
    return round_half_up(factor * weight)


def score_probe(
    kind: ProbeKind,
    result: RawResult,
    weight: float,
    target: Optional[str] = None,
) -> List[Tuple[int, float]]:
    """
    (points, max) contributions of one non-excluded result.

    Raises TypeError when `result` does not have the shape its kind needs.
    """
    if kind == ProbeKind.HEADER_BATTERY:
        if not isinstance(result, ProbeResult):
            raise TypeError(f"Header battery expects ProbeResult, got {type(result).__name__}")
        share = weight / HEADER_SUBCHECKS
        contributions = []
        for finding in result.details:
            points = _status_points(finding.status, share)
            if points is not None:
                contributions.append((points, share))
        return contributions

    if kind == ProbeKind.GENERIC:
        if not isinstance(result, ProbeResult):
            raise TypeError(f"Generic probe expects ProbeResult, got {type(result).__name__}")
        points = _status_points(result.status, weight)
        return [] if points is None else [(points, weight)]

    if kind == ProbeKind.PORT_BATTERY:
        if not isinstance(result, PortScanResult):
            raise TypeError(f"Port battery expects PortScanResult, got {type(result).__name__}")
        return [(round_half_up(port_factor(result.open_ports) * weight), weight)]

    if kind == ProbeKind.SUBDOMAIN_LIST:
        if not isinstance(result, list) or not all(isinstance(s, str) for s in result):
            raise TypeError(f"Subdomain list expects list[str], got {type(result).__name__}")
        return [(round_half_up(subdomain_factor(result, target) * weight), weight)]

    raise TypeError(f"Unknown probe kind {kind!r}")


def _is_excluded(result: Optional[RawResult]) -> bool:
    if result is None:
        return True
    return isinstance(result, ProbeResult) and result.status == StatusCode.ERROR


def default_kinds() -> Dict[str, ProbeKind]:
    from sitecheck.scanner.probes import ALL_PROBES
    return {name: cls.kind for name, cls in ALL_PROBES.items()}


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def aggregate(
    policy: ScoringPolicy,
    results: Mapping[str, Optional[RawResult]],
    kinds: Optional[Mapping[str, ProbeKind]] = None,
    target: Optional[str] = None,
) -> ScoreReport:
    """
    Score a completed scan.

    `kinds` maps probe name to ProbeKind and defaults to the probe
    registry. Probes missing from `results` are treated like skipped ones.
    `target` is the scanned domain; subdomain keywords are matched in the
    labels below it.
    """
    if kinds is None:
        kinds = default_kinds()

    total_score = 0
    total_max = 0.0
    cluster_totals: Dict[str, List[float]] = {}

    for cluster, probes in policy.clusters.items():
        score, max_score = 0, 0.0
        for probe in probes:
            result = results.get(probe)
            if _is_excluded(result):
                continue
            kind = kinds.get(probe, ProbeKind.GENERIC)
            if kind in NETWORK_KINDS:
                continue
            for points, weight in score_probe(kind, result, policy.weight_for(probe)):
                logger.debug(f"Score {cluster}/{probe}: {points}/{weight}")
                score += points
                max_score += weight
        cluster_totals[cluster] = [score, max_score]
        total_score += score
        total_max += max_score

    for probe, kind in kinds.items():
        if kind not in NETWORK_KINDS:
            continue
        result = results.get(probe)
        if _is_excluded(result):
            continue
        network = cluster_totals.setdefault(NETWORK_CLUSTER, [0, 0.0])
        for points, weight in score_probe(kind, result, policy.weight_for(probe), target):
            logger.debug(f"Score {NETWORK_CLUSTER}/{probe}: {points}/{weight}")
            network[0] += points
            network[1] += weight
            total_score += points
            total_max += weight

    cluster_scores = {
        name: ClusterScore(
            score=int(score),
            max_score=_clean(max_score),
            percentage=percent_of(score, max_score),
        )
        for name, (score, max_score) in cluster_totals.items()
    }

    report = ScoreReport(
        total_score=total_score,
        total_max=_clean(total_max),
        percentage=percent_of(total_score, total_max),
        cluster_scores=cluster_scores,
    )
    logger.debug(f"Total score {report.total_score}/{report.total_max} ({report.percentage}%)")
    return report


def _clean(value: float) -> float:
    """Drop float noise from sums of weight/7 shares (34.99999 -> 35)."""
    rounded = round(value, 6)
    return int(rounded) if rounded == int(rounded) else rounded
