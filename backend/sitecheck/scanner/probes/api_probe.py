# sitecheck/scanner/probes/api_probe.py
"""
Exposed API probe.

Requests a handful of well-known API and OpenAPI/Swagger locations and
reports anything that answers with JSON:

    OpenAPI / Swagger document served publicly   CRITICAL
    other JSON endpoint answering without auth   WARNING
    Access-Control-Allow-Origin: *               WARNING
"""

from __future__ import annotations

import logging
from typing import List

import requests

from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode, rollup_status
from sitecheck.scanner.probes import http_client

logger = logging.getLogger(__name__)

API_PATHS = [
    "/.well-known/openapi.json",
    "/openapi.json",
    "/swagger.json",
    "/api",
    "/api/",
    "/api/v1",
    "/api/v2",
]

SPEC_MARKERS = ("openapi", "swagger", "paths")


def inspect_endpoint(path: str, response: requests.Response) -> List[Finding]:
    findings: List[Finding] = []
    content_type = response.headers.get("content-type", "")
    if response.status_code >= 400 or "json" not in content_type:
        return findings

    body = http_client.body_text(response)
    if any(marker in body for marker in SPEC_MARKERS):
        findings.append(Finding(
            name=f"Exposed API specification: {path}",
            status=StatusCode.CRITICAL,
            problem=(
                f"A publicly reachable OpenAPI/Swagger document was found at {path}. "
                "It hands attackers a map of endpoints and parameters."
            ),
            fix=(
                "Do not serve API specifications unauthenticated. Move them behind "
                "authentication or strip internal paths before publishing."
            ),
        ))
    else:
        findings.append(Finding(
            name=f"JSON endpoint reachable: {path}",
            status=StatusCode.WARNING,
            problem=f"JSON endpoint at {path} answered with HTTP {response.status_code} without authentication.",
            fix="Enforce access control (API keys, OAuth2), remove unused endpoints, add rate limiting.",
        ))

    if response.headers.get("access-control-allow-origin") == "*":
        findings.append(Finding(
            name=f"CORS: {path}",
            status=StatusCode.WARNING,
            problem="Access-Control-Allow-Origin is '*', so any website can call this API from a browser.",
            fix="Restrict CORS to trusted origins or drop the header on sensitive endpoints.",
        ))
    return findings


class APIProbe(BaseProbe):
    name = "api"
    label = "API"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        base = http_client.base_url(target)
        details: List[Finding] = []

        for path in API_PATHS:
            try:
                response = http_client.fetch(base + path, timeout)
            except requests.RequestException as e:
                logger.debug(f"API probe {base}{path}: {e}")
                continue
            details.extend(inspect_endpoint(path, response))

        if not details:
            return ProbeResult(
                status=StatusCode.OK,
                recommendation="No publicly discoverable API specifications or open JSON endpoints found.",
            )

        return ProbeResult(
            status=rollup_status(details),
            recommendation="Review and protect the API endpoints listed in the details.",
            details=tuple(details),
        )
