# sitecheck/scanner/probes/csp_probe.py
"""Content-Security-Policy directive probe."""

from __future__ import annotations

import logging
from typing import List, Optional

import requests

from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode, rollup_status
from sitecheck.scanner.probes import http_client

logger = logging.getLogger(__name__)


def inspect_csp(csp: Optional[str]) -> ProbeResult:
    details: List[Finding] = []

    if not csp:
        details.append(Finding(
            name="CSP missing",
            status=StatusCode.WARNING,
            problem="No Content-Security-Policy header found, so XSS and injection protection is reduced.",
            fix=(
                "Send a restrictive CSP, e.g. \"default-src 'self'; script-src 'self'\". "
                "Use nonces or hashes instead of unsafe-inline."
            ),
        ))
    else:
        details.append(Finding(
            name="CSP present",
            status=StatusCode.OK,
            problem=f"CSP header found: {csp}",
            fix="Review the CSP regularly.",
        ))

        lower = csp.lower()
        if "unsafe-inline" in lower:
            details.append(Finding(
                name="CSP: unsafe-inline",
                status=StatusCode.WARNING,
                problem="'unsafe-inline' allows inline scripts and styles and weakens the policy.",
                fix="Drop 'unsafe-inline' and use nonces or hashes for required inline code.",
            ))
        if "unsafe-eval" in lower:
            details.append(Finding(
                name="CSP: unsafe-eval",
                status=StatusCode.CRITICAL,
                problem="'unsafe-eval' allows eval() of dynamic code and makes XSS easier.",
                fix="Remove 'unsafe-eval' and refactor the libraries that need it.",
            ))
        if "*" in lower:
            details.append(Finding(
                name="CSP: wildcards",
                status=StatusCode.WARNING,
                problem="The CSP contains wildcards (*) that loosen resource restrictions.",
                fix="Replace wildcards with explicit trusted origins.",
            ))

    return ProbeResult(
        status=rollup_status(details),
        recommendation="See the CSP details for recommended changes.",
        details=tuple(details),
    )


class CSPProbe(BaseProbe):
    name = "csp"
    label = "CSP"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        try:
            response = http_client.fetch(http_client.base_url(target), timeout)
        except requests.RequestException as e:
            logger.debug(f"CSP probe failed for {target}: {e}")
            return ProbeResult.error(
                f"CSP could not be checked: {e}",
                name="CSP check failed",
            )
        return inspect_csp(response.headers.get("content-security-policy"))
