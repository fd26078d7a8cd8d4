# sitecheck/scan/__init__.py
"""
Scan endpoints.

Nothing is persisted: each request builds its own ScanSession, runs the
probes and returns (or streams) the report.

Endpoints:
    POST /scan
    GET  /scan-progress
    GET  /health
"""

from sitecheck.scan.routes import scan_bp

__all__ = ["scan_bp"]
