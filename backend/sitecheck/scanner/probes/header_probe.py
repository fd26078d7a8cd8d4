# sitecheck/scanner/probes/header_probe.py
"""
Security header battery.

One Finding per header in SECURITY_HEADERS, always in that order, so the
scoring layer can split the probe weight evenly across the seven checks:

    header present with a sound value   OK
    header present but weak             WARNING
    header absent                       MISSING
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import requests

from sitecheck.scanner.base import BaseProbe, Finding, ProbeKind, ProbeResult, StatusCode
from sitecheck.scanner.probes import http_client

logger = logging.getLogger(__name__)

HSTS_MIN_MAX_AGE = 15552000  # 180 days

SECURITY_HEADERS: List[Dict[str, Any]] = [
    {
        "header": "strict-transport-security",
        "missingDesc": "HSTS is not set, which allows downgrade attacks from HTTPS to HTTP.",
        "recommendation": "Add: Strict-Transport-Security: max-age=31536000; includeSubDomains",
    },
    {
        "header": "x-content-type-options",
        "missingDesc": "Browsers may MIME-sniff responses, enabling XSS through uploaded files.",
        "recommendation": "Add: X-Content-Type-Options: nosniff",
    },
    {
        "header": "x-frame-options",
        "missingDesc": "The site can be embedded in iframes, enabling clickjacking.",
        "recommendation": "Add: X-Frame-Options: DENY or SAMEORIGIN",
    },
    {
        "header": "x-xss-protection",
        "missingDesc": "Legacy browsers run without their built-in XSS filter.",
        "recommendation": "Add: X-XSS-Protection: 1; mode=block (or rely on a strict CSP)",
    },
    {
        "header": "referrer-policy",
        "missingDesc": "Full URLs, including query strings, may leak to other sites.",
        "recommendation": "Add: Referrer-Policy: strict-origin-when-cross-origin",
    },
    {
        "header": "content-security-policy",
        "missingDesc": "No CSP restricts which resources can load, so XSS is easier.",
        "recommendation": "Add a Content-Security-Policy restricting default-src and script-src.",
    },
    {
        "header": "permissions-policy",
        "missingDesc": "Browser features such as camera, microphone and geolocation are unrestricted.",
        "recommendation": "Add: Permissions-Policy: camera=(), microphone=(), geolocation=()",
    },
]


def _weakness(header: str, value: str) -> Optional[str]:
    """Why a present header value is weak, or None if it is fine."""
    v = value.strip().lower()
    if header == "strict-transport-security":
        m = re.search(r"max-age=(\d+)", v)
        if not m or int(m.group(1)) < HSTS_MIN_MAX_AGE:
            return "max-age is missing or shorter than 180 days."
    elif header == "x-content-type-options":
        if v != "nosniff":
            return "the only valid value is 'nosniff'."
    elif header == "x-xss-protection":
        if v.startswith("0"):
            return "the filter is explicitly disabled."
    return None


def inspect_headers(headers) -> ProbeResult:
    """`headers` is any case-insensitive mapping (requests' CaseInsensitiveDict)."""
    details: List[Finding] = []

    for spec in SECURITY_HEADERS:
        header = spec["header"]
        value = headers.get(header)

        if not value:
            details.append(Finding(
                name=header,
                status=StatusCode.MISSING,
                problem=f"Header {header} is missing. {spec['missingDesc']}",
                fix=spec["recommendation"],
            ))
            continue

        weakness = _weakness(header, value)
        if weakness:
            details.append(Finding(
                name=header,
                status=StatusCode.WARNING,
                problem=f"Header {header} is set to '{value}' but {weakness}",
                fix=spec["recommendation"],
            ))
        else:
            details.append(Finding(
                name=header,
                status=StatusCode.OK,
                problem=f"Header {header} present: {value}",
                fix="No action required.",
            ))

    statuses = {d.status for d in details}
    if statuses == {StatusCode.OK}:
        status = StatusCode.OK
        recommendation = "All security headers are set."
    elif statuses == {StatusCode.MISSING}:
        status = StatusCode.MISSING
        recommendation = "No security headers are set. Add the headers listed in the details."
    else:
        status = StatusCode.WARNING
        missing = sum(1 for d in details if d.status != StatusCode.OK)
        recommendation = f"{missing} of {len(details)} security headers are missing or weak."

    return ProbeResult(status=status, recommendation=recommendation, details=tuple(details))


class HeaderProbe(BaseProbe):
    name = "headers"
    label = "Security Headers"
    kind = ProbeKind.HEADER_BATTERY

    def execute(self, target: str, timeout: float) -> ProbeResult:
        url = http_client.base_url(target)
        try:
            response = http_client.fetch(url, timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.debug(f"Header probe failed for {target}: {e}")
            return ProbeResult.error(
                f"Fetching {url} failed: {e}",
                name="Header check failed",
            )
        return inspect_headers(response.headers)
