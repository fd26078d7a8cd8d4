# sitecheck/scanner/probes/dns_probe.py
"""
DNS hygiene probe.

Four independent lookups, each reported as its own finding:
    MX       present → OK, absent → CRITICAL
    SPF      TXT v=spf1 present → OK, absent → WARNING
    DMARC    _dmarc TXT v=DMARC1 present → OK, absent → WARNING
    DNSSEC   DNSKEY present → OK, absent or unsupported → WARNING

A failed lookup becomes an ERROR finding; it does not fail the probe.
"""

from __future__ import annotations

import logging
import re
from typing import List

import dns.exception

from sitecheck.scanner.base import BaseProbe, Finding, ProbeResult, StatusCode, rollup_status
from sitecheck.scanner.probes import dns_client

logger = logging.getLogger(__name__)

SPF_RE = re.compile(r"v=spf1[^;\n]*", re.IGNORECASE)


def _check_mx(target: str, timeout: float) -> Finding:
    try:
        mx = dns_client.query_mx(target, timeout)
    except dns.exception.DNSException:
        return Finding(
            name="MX record",
            status=StatusCode.ERROR,
            problem="MX lookup failed.",
            fix="Check the DNS provider, zone file and TTLs.",
        )
    if not mx:
        return Finding(
            name="MX record",
            status=StatusCode.CRITICAL,
            problem="No MX records found. Mail delivery may fail or be misrouted.",
            fix="Publish MX records pointing at valid mail servers.",
        )
    return Finding(
        name="MX record",
        status=StatusCode.OK,
        problem=f"MX records found: {', '.join(mx)}.",
        fix="No action required if these mail servers are intended.",
    )


def _check_spf(target: str, timeout: float) -> Finding:
    try:
        joined = " ".join(dns_client.query_txt(target, timeout))
    except dns.exception.DNSException:
        return Finding(
            name="SPF record",
            status=StatusCode.ERROR,
            problem="TXT lookup failed.",
            fix="Check DNS resolution and resolver configuration.",
        )
    match = SPF_RE.search(joined)
    if match:
        return Finding(
            name="SPF record",
            status=StatusCode.OK,
            problem=f"SPF record found: {match.group(0)}",
            fix="Review the record regularly and list only authorized mail servers.",
        )
    return Finding(
        name="SPF record",
        status=StatusCode.WARNING,
        problem="No SPF record (v=spf1) found, which makes mail spoofing easier.",
        fix='Publish an SPF TXT record, e.g. "v=spf1 include:_spf.example.com -all".',
    )


def _check_dmarc(target: str, timeout: float) -> Finding:
    try:
        joined = " ".join(dns_client.query_txt(f"_dmarc.{target}", timeout))
    except dns.exception.DNSException:
        return Finding(
            name="DMARC",
            status=StatusCode.ERROR,
            problem="Reading the _dmarc TXT record failed.",
            fix="Check the DNS provider and add the DMARC record manually if needed.",
        )
    if "v=dmarc1" in joined.lower():
        return Finding(
            name="DMARC",
            status=StatusCode.OK,
            problem=f"DMARC record found: {joined}",
            fix="Review the DMARC policy regularly and enable aggregate reports.",
        )
    return Finding(
        name="DMARC",
        status=StatusCode.WARNING,
        problem="No DMARC record (_dmarc) found. The domain is easier to spoof.",
        fix='Add "v=DMARC1; p=quarantine; rua=mailto:reports@example.com" and tighten gradually.',
    )


def _check_dnssec(target: str, timeout: float) -> Finding:
    # Some resolvers refuse DNSKEY queries; treat that the same as unsigned.
    try:
        dnskey = dns_client.query(target, "DNSKEY", timeout)
    except dns.exception.DNSException:
        dnskey = []
    if dnskey:
        return Finding(
            name="DNSSEC",
            status=StatusCode.OK,
            problem="DNSSEC keys found, the zone is signed.",
            fix="No action required. Plan regular key rollover.",
        )
    return Finding(
        name="DNSSEC",
        status=StatusCode.WARNING,
        problem="No DNSSEC signatures found. DNS answers could be spoofed.",
        fix="Enable DNSSEC at your DNS provider and publish the DS record at your registrar.",
    )


class DNSProbe(BaseProbe):
    name = "dns"
    label = "DNS"

    def execute(self, target: str, timeout: float) -> ProbeResult:
        details: List[Finding] = [
            _check_mx(target, timeout),
            _check_spf(target, timeout),
            _check_dmarc(target, timeout),
            _check_dnssec(target, timeout),
        ]
        status = rollup_status(details)
        recommendation = (
            "DNS configuration looks solid."
            if status == StatusCode.OK
            else "See the details on DNS records and DNSSEC."
        )
        return ProbeResult(status=status, recommendation=recommendation, details=tuple(details))
