# sitecheck/scanner/probes/oauth_probe.py
"""
OpenID Connect / OAuth discovery probe.

Looks for /.well-known/openid-configuration. A site that publishes none is
NOT_APPLICABLE. A published document is checked for:
    "none" among token endpoint auth methods   CRITICAL
    issuer not on the scanned domain           WARNING
    no token_endpoint                          ERROR finding
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

import requests

from sitecheck.errors import ProbeFault
from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode, rollup_status
from sitecheck.scanner.probes import http_client

logger = logging.getLogger(__name__)

DISCOVERY_PATH = "/.well-known/openid-configuration"


def inspect_discovery(target: str, document: Dict[str, Any]) -> ProbeResult:
    details: List[Finding] = [Finding(
        name="Discovery document found",
        status=StatusCode.OK,
        problem="An OpenID Connect / OAuth discovery document is published.",
        fix="Make sure the published endpoints are correct and contain no internal URLs.",
    )]

    methods = document.get("token_endpoint_auth_methods_supported") or []
    if "none" in methods:
        details.append(Finding(
            name="Token endpoint auth methods",
            status=StatusCode.CRITICAL,
            problem=(
                'The token endpoint accepts "none" as authentication method, which '
                "may allow tokens to be issued without client authentication."
            ),
            fix=(
                'Disable "none" for confidential clients. Use client_secret_basic, '
                "private_key_jwt, or PKCE for public clients."
            ),
        ))

    issuer = document.get("issuer")
    if issuer and target not in str(issuer):
        details.append(Finding(
            name="Issuer mismatch",
            status=StatusCode.WARNING,
            problem=f"The issuer in the discovery document ({issuer}) does not match the scanned domain.",
            fix="Set the issuer correctly and do not publish internal host names.",
        ))

    if not document.get("token_endpoint"):
        details.append(Finding(
            name="Token endpoint",
            status=StatusCode.ERROR,
            problem="The discovery document has no token_endpoint.",
            fix="Configure the discovery document to publish the token endpoint.",
        ))

    return ProbeResult(
        status=rollup_status(details),
        recommendation="See the OAuth/OpenID configuration details.",
        details=tuple(details),
    )


class OAuthProbe(BaseProbe):
    name = "oauth"
    label = "OAuth"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        url = http_client.base_url(target) + DISCOVERY_PATH
        try:
            response = http_client.fetch(url, timeout)
        except requests.RequestException as e:
            logger.debug(f"OAuth discovery fetch failed for {target}: {e}")
            return ProbeResult.error(
                f"Fetching the OAuth/OpenID discovery document failed: {e}",
                name="OAuth lookup failed",
            )

        if response.status_code >= 400:
            return ProbeResult(
                status=StatusCode.NOT_APPLICABLE,
                recommendation="No OAuth/OpenID discovery document found.",
                details=(Finding(
                    name="OAuth/OpenID not detected",
                    status=StatusCode.NOT_APPLICABLE,
                    problem=f"Nothing is published at {DISCOVERY_PATH}.",
                    fix="If OAuth/OpenID is in use, publish the discovery document at this path.",
                ),),
            )

        try:
            document = response.json()
        except ValueError:
            document = None
        if not isinstance(document, dict):
            raise ProbeFault(self.name, f"{DISCOVERY_PATH} is not a JSON object")
        return inspect_discovery(target, document)
