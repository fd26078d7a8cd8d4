# sitecheck/scanner/__init__.py
"""
Probe battery and scan orchestration.

Usage:
    from sitecheck.scanner.orchestrator import ScanOrchestrator

    orchestrator = ScanOrchestrator(policy)
    report = orchestrator.run_scan("example.com")

Architecture:
    Orchestrator
    ├── Probes (observe and classify, never score)
    │   ├── ssl, spf, dmarc, api, dns, xss, webvuln
    │   ├── ports         PortScanResult
    │   ├── subdomains    list of host names
    │   ├── cookie, oauth, csp
    │   ├── headers       one finding per security header
    │   └── wordpress     optional
    │
    └── Score Aggregator (policy weights + clusters → ScoreReport)
"""
