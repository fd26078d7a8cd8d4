# sitecheck/scanner/probes/wordpress_probe.py
"""
Optional WordPress exposure probe.

Only runs when the caller asks for it. Detection uses well-known WordPress
paths plus markers in the landing page HTML; a site with no trace of
WordPress is NOT_APPLICABLE. Every exposure, the HTML markers included,
adds to a risk tally out of RISK_CEILING:

    tally < RISK_CEILING WARNING
    otherwise            CRITICAL
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

import requests

from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode
from sitecheck.scanner.probes import http_client

logger = logging.getLogger(__name__)

RISK_CEILING = 10

PATH_CHECKS = [
    {
        "path": "/wp-login.php",
        "name": "Login page",
        "risk": 2,
        "status": StatusCode.WARNING,
        "problem": "The login page is publicly reachable and a target for brute-force attacks.",
        "fix": "Protect it with a captcha, rate limiting, an IP allow-list or a login-limiting plugin.",
    },
    {
        "path": "/wp-admin/",
        "name": "Admin area",
        "risk": 1,
        "status": StatusCode.WARNING,
        "problem": "The admin area is reachable and a target for automated attacks.",
        "fix": "Require 2FA and consider moving the admin path.",
    },
    {
        "path": "/wp-content/",
        "name": "wp-content visible",
        "risk": 1,
        "status": StatusCode.WARNING,
        "problem": "wp-content is public, exposing installed plugins and themes.",
        "fix": "Restrict access in the server configuration and disable directory listing.",
    },
    {
        "path": "/readme.html",
        "name": "Version leak",
        "risk": 1,
        "status": StatusCode.WARNING,
        "problem": "readme.html reveals the WordPress version, which makes targeted attacks easier.",
        "fix": "Delete the file or block it in the server configuration.",
    },
    {
        "path": "/wp-config.php",
        "name": "wp-config visible",
        "risk": 2,
        "status": StatusCode.CRITICAL,
        "problem": "The configuration file is reachable; it holds the database credentials.",
        "fix": "Block access to wp-config.php in the server configuration.",
    },
]

HTML_MARKERS = ["wp-content", "wp-includes", "wordpress", "generator", "wp-json", "generatepress"]
VERSION_RE = re.compile(r"Version\s([\d.]+)", re.IGNORECASE)


def _get(url: str, timeout: float) -> Optional[requests.Response]:
    try:
        return http_client.fetch(url, timeout)
    except requests.RequestException as e:
        logger.debug(f"WordPress probe {url}: {e}")
        return None


class WordPressProbe(BaseProbe):
    name = "wordpress"
    label = "WordPress"
    optional = True

    def execute(self, target: str, timeout: float) -> ProbeResult:
        base = http_client.base_url(target)
        details: List[Finding] = []
        hits = 0
        risk = 0.0

        for check in PATH_CHECKS:
            response = _get(base + check["path"], timeout)
            if response is None or response.status_code >= 400:
                continue
            hits += 1
            risk += check["risk"]
            details.append(Finding(
                name=check["name"],
                status=check["status"],
                problem=check["problem"],
                fix=check["fix"],
            ))

            if check["path"] == "/readme.html":
                body = http_client.body_text(response)
                match = VERSION_RE.search(body) if "WordPress" in body else None
                if match:
                    risk += 1
                    details.append(Finding(
                        name="WordPress version",
                        status=StatusCode.WARNING,
                        problem=(
                            f"WordPress version {match.group(1)} detected. "
                            "Outdated versions are exposed to known exploits."
                        ),
                        fix="Keep WordPress up to date.",
                    ))

        landing = _get(base, timeout)
        if landing is not None:
            if not landing.headers.get("x-frame-options"):
                risk += 0.5
                details.append(Finding(
                    name="X-Frame-Options missing",
                    status=StatusCode.WARNING,
                    problem="X-Frame-Options is missing, so there is no clickjacking protection.",
                    fix='Send "X-Frame-Options: SAMEORIGIN".',
                ))
            if not landing.headers.get("content-security-policy"):
                risk += 0.5
                details.append(Finding(
                    name="Content-Security-Policy missing",
                    status=StatusCode.WARNING,
                    problem="Content-Security-Policy is missing, so there is no XSS mitigation.",
                    fix="Define a Content-Security-Policy via plugin or server configuration.",
                ))

            html = http_client.body_text(landing).lower()
            markers = [m for m in HTML_MARKERS if m in html]
            if markers:
                hits += 2
                risk += 1
                details.append(Finding(
                    name="WordPress detected",
                    status=StatusCode.OK,
                    problem=f"WordPress traces in the page HTML: {', '.join(markers)}",
                    fix="WordPress appears to be in use even if its paths are hidden.",
                ))

        if hits < 1:
            return ProbeResult(
                status=StatusCode.NOT_APPLICABLE,
                recommendation="No WordPress installation detected.",
            )

        # Every hit carries risk, so a detected install is never OK.
        status = StatusCode.WARNING if risk < RISK_CEILING else StatusCode.CRITICAL
        logger.info(f"WordPress probe {target}: hits={hits} risk={risk}")
        return ProbeResult(
            status=status,
            recommendation="Several potential WordPress weaknesses detected.",
            details=tuple(details),
        )
