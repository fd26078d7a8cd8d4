# sitecheck/scanner/probes/spf_probe.py
"""SPF record probe: present with -all is OK, ~all is WARNING, absent is MISSING."""

from __future__ import annotations

import logging

import dns.exception

from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode
from sitecheck.scanner.probes import dns_client

logger = logging.getLogger(__name__)


def classify_spf(txt_records: list) -> ProbeResult:
    spf = next((r for r in txt_records if r.lower().startswith("v=spf1")), None)

    if not spf:
        return ProbeResult(
            status=StatusCode.MISSING,
            recommendation="Add an SPF record.",
            details=(Finding(
                name="SPF record missing",
                status=StatusCode.CRITICAL,
                problem=(
                    "There is no SPF record (v=spf1) for this domain, so anyone "
                    "can send mail that claims to come from it."
                ),
                fix="Publish a TXT record such as: v=spf1 include:_spf.google.com -all",
            ),),
        )

    if "~all" in spf:
        return ProbeResult(
            status=StatusCode.WARNING,
            recommendation="Change ~all to -all for stricter enforcement.",
            details=(Finding(
                name="Soft-fail SPF qualifier",
                status=StatusCode.WARNING,
                problem="The SPF record ends with ~all (soft fail); unauthorized senders may still be accepted.",
                fix="Replace '~all' with '-all' once every legitimate sender is listed.",
            ),),
        )

    return ProbeResult(
        status=StatusCode.OK,
        recommendation="SPF configuration looks good.",
        details=(Finding(
            name="SPF record present",
            status=StatusCode.OK,
            problem=f"SPF record found: {spf}",
            fix="No action required. Review the record when adding new mail services.",
        ),),
    )


class SPFProbe(BaseProbe):
    name = "spf"
    label = "SPF"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        try:
            records = dns_client.query_txt(target, timeout)
        except dns.exception.DNSException as e:
            logger.debug(f"SPF lookup failed for {target}: {e}")
            return ProbeResult.error("SPF lookup failed.", name="SPF lookup failed")
        return classify_spf(records)
