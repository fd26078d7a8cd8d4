# sitecheck/scanner/probes/ssl_probe.py
"""
TLS certificate probe.

Connects to port 443 with SNI, pulls the leaf certificate and checks how
long it remains valid. Verification is disabled on purpose so an expired or
self-signed certificate can still be inspected.

    expired (<= 0 days)   EXPIRED,  finding CRITICAL
    expires in <= 30 days OK,       finding WARNING
    otherwise             OK,       finding OK
    no certificate / no TLS connection   ERROR
"""

from __future__ import annotations

import logging
import socket
import ssl
from datetime import datetime, timezone
from typing import Optional

from cryptography import x509

from sitecheck.errors import ProbeFault
from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode
from sitecheck.utils.scoring import round_half_up

logger = logging.getLogger(__name__)

TLS_PORT = 443
EXPIRY_WARNING_DAYS = 30


def fetch_certificate(host: str, port: int, timeout: float) -> Optional[bytes]:
    """DER bytes of the peer certificate, or None if the server sent none."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE

    with socket.create_connection((host, port), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host) as ssock:
            return ssock.getpeercert(binary_form=True)


def days_until(not_after: datetime, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    return round_half_up((not_after - now).total_seconds() / 86400)


def _not_valid_after(cert: x509.Certificate) -> datetime:
    if hasattr(cert, "not_valid_after_utc"):
        return cert.not_valid_after_utc
    return cert.not_valid_after.replace(tzinfo=timezone.utc)


def classify_expiry(days_left: int) -> ProbeResult:
    if days_left <= 0:
        return ProbeResult(
            status=StatusCode.EXPIRED,
            recommendation="Certificate has expired; renew it immediately.",
            details=(Finding(
                name="Certificate expired",
                status=StatusCode.CRITICAL,
                problem=(
                    f"The TLS certificate expired {abs(days_left)} days ago. "
                    "Browsers show a security warning to every visitor."
                ),
                fix="Renew the certificate with your CA (e.g. Let's Encrypt) right away.",
            ),),
        )

    if days_left <= EXPIRY_WARNING_DAYS:
        finding = Finding(
            name="Certificate expires soon",
            status=StatusCode.WARNING,
            problem=f"The TLS certificate expires in {days_left} days.",
            fix="Renew the certificate now to avoid an outage; most CAs allow early renewal.",
        )
    else:
        finding = Finding(
            name="Certificate valid",
            status=StatusCode.OK,
            problem=f"The TLS certificate is valid and expires in {days_left} days.",
            fix="No action required. Keep automatic renewal enabled.",
        )

    return ProbeResult(
        status=StatusCode.OK,
        recommendation=f"Certificate valid; expires in {days_left} days.",
        details=(finding,),
    )


class SSLProbe(BaseProbe):
    name = "ssl"
    label = "SSL"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        try:
            der = fetch_certificate(target, TLS_PORT, timeout)
        except (OSError, ssl.SSLError) as e:
            logger.debug(f"TLS connection to {target}:{TLS_PORT} failed: {e}")
            return ProbeResult.error(
                "TLS connection could not be established.",
                name="Connection error",
            )

        if not der:
            return ProbeResult.error(
                "The server did not present a certificate.",
                name="Certificate error",
            )

        try:
            cert = x509.load_der_x509_certificate(der)
        except ValueError as e:
            raise ProbeFault(self.name, f"certificate could not be parsed: {e}") from e
        return classify_expiry(days_until(_not_valid_after(cert)))
