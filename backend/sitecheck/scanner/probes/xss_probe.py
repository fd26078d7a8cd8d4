# sitecheck/scanner/probes/xss_probe.py
"""
Reflected XSS probe.

Sends a harmless script marker through common search/query parameters and
flags any page that echoes it back unescaped. This is a smoke test, not a
crawler; authenticated flows and stored XSS are out of reach.
"""

from __future__ import annotations

import logging
from typing import List
from urllib.parse import quote

import requests

from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode
from sitecheck.scanner.probes import http_client

logger = logging.getLogger(__name__)

PAYLOAD = "<script>/*x*/</script>"
TEST_PATHS = ["/?q=", "/search?q=", "/?s="]


class XSSProbe(BaseProbe):
    name = "xss"
    label = "XSS"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        base = http_client.base_url(target)
        details: List[Finding] = []

        for path in TEST_PATHS:
            url = base + path + quote(PAYLOAD, safe="")
            try:
                response = http_client.fetch(url, timeout)
            except requests.RequestException as e:
                logger.debug(f"XSS probe {url}: {e}")
                continue

            if PAYLOAD in http_client.body_text(response):
                details.append(Finding(
                    name=f"Reflected XSS possible: {path}",
                    status=StatusCode.CRITICAL,
                    problem=(
                        f"The payload {PAYLOAD} was reflected unescaped. Reflected XSS "
                        "lets an attacker run script in a victim's session."
                    ),
                    fix=(
                        "Escape output by context and validate input on the server. "
                        "Add a Content-Security-Policy without unsafe-inline."
                    ),
                ))

        if not details:
            return ProbeResult(
                status=StatusCode.OK,
                recommendation=(
                    "No simple reflected XSS found on standard parameters. "
                    "Deeper testing of authenticated flows is recommended."
                ),
            )

        return ProbeResult(
            status=StatusCode.CRITICAL,
            recommendation="Fix immediately: input validation, output encoding and CSP.",
            details=tuple(details),
        )
