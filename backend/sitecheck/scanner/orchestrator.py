# sitecheck/scanner/orchestrator.py
"""
Scan Orchestrator: runs the probe battery against one target and scores it.

Pipeline:

    1. start()     build a ScanSession (target, ordered probe plan)
    2. iter_scan() run each probe in order, yield a ProgressUpdate after each
    3. finish()    aggregate the results once and build the ScanReport

run_scan() does all three in one call. The streaming route drives
iter_scan() itself so it can emit a progress event per probe; both paths
share the same computation.

Usage:
    orchestrator = ScanOrchestrator(policy)
    report = orchestrator.run_scan("example.com", include_optional=True)

The orchestrator holds no per-scan state. Everything about an in-flight
scan lives in its ScanSession, so one instance serves concurrent scans.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from sitecheck import config
from sitecheck.errors import ProbeFault
from sitecheck.scanner.base import BaseProbe, ProbeResult, RawResult, ScanSession, result_to_dict
from sitecheck.scanner.probes import ALL_PROBES
from sitecheck.scanner.summary import ProbeSummary, summarize
from sitecheck.scoring.aggregator import ScoreReport, aggregate
from sitecheck.scoring.policy import ScoringPolicy, load_policy
from sitecheck.utils.scoring import round_half_up

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProgressUpdate:
    """Emitted after each probe finishes."""
    probe: str
    label: str
    completed: int
    total: int
    percentage: int


@dataclass(frozen=True)
class ScanReport:
    target: str
    score: ScoreReport
    per_probe_summaries: Dict[str, Optional[ProbeSummary]]
    results: Dict[str, Optional[RawResult]]
    scan_duration_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "score": self.score.to_dict(),
            "modules": {
                name: summary.to_dict() if summary is not None else None
                for name, summary in self.per_probe_summaries.items()
            },
            "modulesRaw": {name: result_to_dict(r) for name, r in self.results.items()},
            "scanDurationMs": self.scan_duration_ms,
        }


def progress_percentage(completed: int, total: int) -> int:
    """Share of finished probes, exactly 100 once the last one is done."""
    if total <= 0 or completed >= total:
        return 100
    return round_half_up(100 * completed / total)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class ScanOrchestrator:
    """
    Coordinates one scan at a time per ScanSession.

    `probes` is the ordered battery (defaults to the registry in
    sitecheck.scanner.probes); optional probes run only when a scan asks
    for them.
    """

    def __init__(
        self,
        policy: Optional[ScoringPolicy] = None,
        probes: Optional[Sequence[BaseProbe]] = None,
        probe_timeout: Optional[float] = None,
    ):
        self.probes: List[BaseProbe] = (
            list(probes) if probes is not None else [cls() for cls in ALL_PROBES.values()]
        )
        self.policy = policy or load_policy(known_probes=[p.name for p in self.probes])
        self.probe_timeout = probe_timeout if probe_timeout is not None else config.PROBE_TIMEOUT_SECONDS
        self.kinds = {p.name: p.kind for p in self.probes}

    def start(self, target: str, include_optional: bool = False) -> ScanSession:
        plan = [p for p in self.probes if include_optional or not p.optional]
        logger.info(
            f"Starting scan of {target} ({len(plan)} probes, optional={'on' if include_optional else 'off'})"
        )
        return ScanSession(target=target, include_optional=include_optional, probes=plan)

    def run_probe(self, probe: BaseProbe, target: str) -> RawResult:
        """Run one probe. Never raises; failures become an ERROR result."""
        try:
            return probe.run(target, self.probe_timeout)
        except ProbeFault as e:
            logger.warning(f"Probe '{probe.name}' failed for {target}: {e}")
            return ProbeResult.error(str(e))
        except Exception as e:
            logger.exception(f"Probe '{probe.name}' crashed for {target}")
            return ProbeResult.error(f"{probe.label} check failed: {e}")

    def iter_scan(self, session: ScanSession) -> Iterator[ProgressUpdate]:
        """
        Run the session's probes in order, yielding after each one.

        Closing the generator early (client went away) stops the scan before
        the next probe starts.
        """
        for probe in session.probes:
            result = self.run_probe(probe, session.target)
            completed = session.record(probe.name, result)
            status = getattr(result, "status", None)
            logger.info(
                f"Probe '{probe.name}' done for {session.target} "
                f"({completed}/{session.total}){f' status={status.value}' if status else ''}"
            )
            yield ProgressUpdate(
                probe=probe.name,
                label=probe.label,
                completed=completed,
                total=session.total,
                percentage=progress_percentage(completed, session.total),
            )

    def finish(self, session: ScanSession) -> ScanReport:
        """Score a session whose probes have all run."""
        results: Dict[str, Optional[RawResult]] = {}
        for probe in self.probes:
            # Probes outside the plan (skipped optional ones) are reported as None.
            results[probe.name] = session.results.get(probe.name)

        score = aggregate(self.policy, results, kinds=self.kinds, target=session.target)
        labels = {p.name: p.label for p in self.probes}
        summaries = {name: summarize(labels[name], r) for name, r in results.items()}

        report = ScanReport(
            target=session.target,
            score=score,
            per_probe_summaries=summaries,
            results=results,
            scan_duration_ms=session.elapsed_ms(),
        )
        logger.info(
            f"Scan of {session.target} finished in {report.scan_duration_ms}ms: "
            f"{score.total_score}/{score.total_max} ({score.percentage}%)"
        )
        return report

    def run_scan(
        self,
        target: str,
        include_optional: bool = False,
        on_progress: Optional[Callable[[str, int], None]] = None,
    ) -> ScanReport:
        session = self.start(target, include_optional)
        for update in self.iter_scan(session):
            if on_progress is not None:
                on_progress(update.label, update.percentage)
        return self.finish(session)
