# sitecheck/scanner/probes/dns_client.py
"""
Shared DNS plumbing for the mail and DNS probes.

"No such record" (NXDOMAIN / NoAnswer) is a normal answer and comes back
as an empty list. Resolver failures (timeouts, no reachable nameserver)
raise dns.exception.DNSException so the probe can report ERROR instead of
a false MISSING.
"""

from __future__ import annotations

import logging
from typing import List

import dns.exception
import dns.resolver

from sitecheck import config

logger = logging.getLogger(__name__)


def make_resolver(timeout: float) -> dns.resolver.Resolver:
    r = dns.resolver.Resolver()
    r.timeout = timeout
    r.lifetime = timeout * 2
    r.nameservers = list(config.DNS_NAMESERVERS)
    return r


def query(name: str, rdtype: str, timeout: float) -> List[str]:
    """Return the text form of every record of `rdtype` for `name`."""
    resolver = make_resolver(timeout)
    try:
        answers = resolver.resolve(name, rdtype)
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return []
    return [rdata.to_text() for rdata in answers]


def query_txt(name: str, timeout: float) -> List[str]:
    """Return all TXT record strings for a name, multi-string records joined."""
    resolver = make_resolver(timeout)
    try:
        answers = resolver.resolve(name, "TXT")
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return []
    results = []
    for rdata in answers:
        txt = b"".join(rdata.strings).decode("utf-8", errors="replace")
        results.append(txt)
    return results


def query_mx(name: str, timeout: float) -> List[str]:
    """Mail exchanger host names, lowest preference first."""
    resolver = make_resolver(timeout)
    try:
        answers = resolver.resolve(name, "MX")
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        return []
    records = sorted(answers, key=lambda r: r.preference)
    return [str(r.exchange).rstrip(".") for r in records]

