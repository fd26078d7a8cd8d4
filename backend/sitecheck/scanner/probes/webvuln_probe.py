# sitecheck/scanner/probes/webvuln_probe.py
"""
Common web misconfiguration probe.

    exposed dotfiles / config files        CRITICAL
    directory listing on /uploads/         WARNING
    Server header discloses software       WARNING
"""

from __future__ import annotations

import logging
from typing import List, Optional

import requests

from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode, rollup_status
from sitecheck.scanner.probes import http_client

logger = logging.getLogger(__name__)

SENSITIVE_PATHS = ["/.env", "/config.php", "/.git/config", "/.htaccess", "/web.config"]
LISTING_PATH = "/uploads/"
LISTING_MARKERS = ("Index of", "Directory listing for", "<title>Index of")


def _try_fetch(url: str, timeout: float) -> Optional[requests.Response]:
    try:
        return http_client.fetch(url, timeout)
    except requests.RequestException as e:
        logger.debug(f"Web vulnerability probe {url}: {e}")
        return None


class WebVulnProbe(BaseProbe):
    name = "webvuln"
    label = "Web Vulnerabilities"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        base = http_client.base_url(target)
        details: List[Finding] = []

        for path in SENSITIVE_PATHS:
            response = _try_fetch(base + path, timeout)
            if response is not None and response.status_code < 400 and response.content:
                details.append(Finding(
                    name=f"Exposed file {path}",
                    status=StatusCode.CRITICAL,
                    problem=f"{path} is served over HTTP. Such files often contain credentials or keys.",
                    fix="Block access to configuration and VCS files in the web server and remove them from the web root.",
                ))

        response = _try_fetch(base + LISTING_PATH, timeout)
        if response is not None:
            body = http_client.body_text(response)
            if any(marker in body for marker in LISTING_MARKERS):
                details.append(Finding(
                    name="Directory listing",
                    status=StatusCode.WARNING,
                    problem=f"Directory listing is enabled on {LISTING_PATH} and exposes file names.",
                    fix="Disable directory listing in the web server configuration.",
                ))

        response = _try_fetch(base, timeout)
        server = response.headers.get("server") if response is not None else None
        if server:
            details.append(Finding(
                name="Server header",
                status=StatusCode.WARNING,
                problem=f"Server header discloses: {server}",
                fix='Remove the Server header or reduce it to a generic value (e.g. "Server: web").',
            ))

        if not details:
            return ProbeResult(
                status=StatusCode.OK,
                recommendation="No simple web vulnerabilities found. A deeper scan is recommended.",
            )

        return ProbeResult(
            status=rollup_status(details),
            recommendation="See the details and fix critical items first.",
            details=tuple(details),
        )
