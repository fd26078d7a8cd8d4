# sitecheck/scanner/probes/dmarc_probe.py
"""DMARC record probe (_dmarc.<domain>): p=none is WEAK, absent is MISSING."""

from __future__ import annotations

import logging

import dns.exception

from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode
from sitecheck.scanner.probes import dns_client

logger = logging.getLogger(__name__)


def classify_dmarc(txt_records: list) -> ProbeResult:
    record = next((r for r in txt_records if r.startswith("v=DMARC1")), None)

    if not record:
        return ProbeResult(
            status=StatusCode.MISSING,
            recommendation="No valid DMARC record found. Start with: v=DMARC1; p=none",
            details=(Finding(
                name="DMARC record missing",
                status=StatusCode.MISSING,
                problem="No valid v=DMARC1 record is published at _dmarc for this domain.",
                fix="Publish a TXT record at _dmarc, e.g. v=DMARC1; p=none; rua=mailto:reports@example.com",
            ),),
        )

    policy = record.replace(" ", "")
    if "p=none" in policy:
        return ProbeResult(
            status=StatusCode.WEAK,
            recommendation="Set p=quarantine or p=reject to actually block spoofed mail.",
            details=(Finding(
                name="DMARC monitor-only policy",
                status=StatusCode.WEAK,
                problem="The DMARC policy is p=none: failures are reported but not blocked.",
                fix="Move to p=quarantine, then p=reject once reports look clean.",
            ),),
        )

    return ProbeResult(
        status=StatusCode.OK,
        recommendation="DMARC configuration looks good.",
        details=(Finding(
            name="DMARC enforced",
            status=StatusCode.OK,
            problem=f"DMARC record found: {record}",
            fix="No action required.",
        ),),
    )


class DMARCProbe(BaseProbe):
    name = "dmarc"
    label = "DMARC"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        try:
            records = dns_client.query_txt(f"_dmarc.{target}", timeout)
        except dns.exception.DNSException as e:
            logger.debug(f"DMARC lookup failed for {target}: {e}")
            return ProbeResult.error(
                "DNS lookup failed. Check the domain or network connectivity.",
                name="DMARC lookup failed",
            )
        return classify_dmarc(records)
