# sitecheck/scanner/probes/cookie_probe.py
"""
Cookie flag probe.

For every Set-Cookie header on the landing page:
    no Secure     CRITICAL
    no HttpOnly   WARNING
    no SameSite   WARNING
"""

from __future__ import annotations

import logging
from typing import List, Tuple

import requests

from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode, rollup_status
from sitecheck.scanner.probes import http_client

logger = logging.getLogger(__name__)


def parse_set_cookie(raw: str) -> Tuple[str, List[str]]:
    """(cookie name, lower-cased attribute list) of one Set-Cookie value."""
    parts = [p.strip() for p in raw.split(";")]
    name = parts[0].split("=", 1)[0]
    return name, [a.lower() for a in parts[1:]]


def inspect_cookies(set_cookies: List[str]) -> ProbeResult:
    if not set_cookies:
        return ProbeResult(
            status=StatusCode.OK,
            recommendation=(
                "No Set-Cookie headers found. If the application relies on "
                "cookies, review its session management."
            ),
        )

    details: List[Finding] = []
    for raw in set_cookies:
        name, attrs = parse_set_cookie(raw)

        if "secure" not in attrs:
            details.append(Finding(
                name=f"Cookie Secure: {name}",
                status=StatusCode.CRITICAL,
                problem=f"Cookie {name} is set without the Secure flag and can leak over unencrypted connections.",
                fix="Set the Secure flag so the cookie is only sent over HTTPS.",
            ))
        if "httponly" not in attrs:
            details.append(Finding(
                name=f"Cookie HttpOnly: {name}",
                status=StatusCode.WARNING,
                problem=f"Cookie {name} lacks HttpOnly, so page scripts can read it. This makes XSS easier to exploit.",
                fix="Set HttpOnly on every cookie the client-side code does not need.",
            ))
        if not any(a.startswith("samesite") for a in attrs):
            details.append(Finding(
                name=f"Cookie SameSite: {name}",
                status=StatusCode.WARNING,
                problem=f"Cookie {name} has no SameSite attribute, which raises the CSRF risk.",
                fix="Use SameSite=Lax or SameSite=Strict for authenticating cookies.",
            ))

    status = rollup_status(details)
    recommendation = (
        "Cookie flags are fine."
        if status == StatusCode.OK
        else "See the cookie details and set the recommended flags."
    )
    return ProbeResult(status=status, recommendation=recommendation, details=tuple(details))


class CookieProbe(BaseProbe):
    name = "cookie"
    label = "Cookies"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        try:
            response = http_client.fetch(http_client.base_url(target), timeout)
        except requests.RequestException as e:
            logger.debug(f"Cookie probe failed for {target}: {e}")
            return ProbeResult.error(
                "Fetching the page failed. Check connectivity.",
                name="Cookie check failed",
            )
        return inspect_cookies(http_client.set_cookie_headers(response))
