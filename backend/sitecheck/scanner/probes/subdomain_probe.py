# sitecheck/scanner/probes/subdomain_probe.py
"""
Wordlist subdomain enumeration.

Resolves <prefix>.<target> for every prefix in data/subdomains.txt and
returns the names that answer, in wordlist order. When the zone has a
wildcard record, names resolving to the wildcard addresses are dropped.
If the wordlist file is missing a small built-in list is used instead.

When the resolver cannot be reached (the wildcard lookup fails, or every
candidate lookup does) the result is an ERROR instead of an empty list, so
an outage is not scored as a clean zone.
"""

from __future__ import annotations

import logging
import os
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Set, Union

import dns.exception

from sitecheck.scanner.base import BaseProbe, ProbeKind, ProbeResult
from sitecheck.scanner.probes import dns_client

logger = logging.getLogger(__name__)

WORDLIST_PATH = os.path.join(os.path.dirname(__file__), "..", "..", "data", "subdomains.txt")

FALLBACK_PREFIXES = [
    "www", "mail", "webmail", "admin", "api", "dev", "test", "staging",
    "beta", "portal", "login", "vpn", "ftp", "cdn", "static", "m", "app",
]

MAX_WORKERS = 20


def _load_wordlist(path: str) -> List[str]:
    """Load a newline-delimited wordlist file."""
    try:
        with open(path, "r") as f:
            return [line.strip().lower() for line in f if line.strip() and not line.startswith("#")]
    except FileNotFoundError:
        logger.warning("Wordlist not found: %s", path)
        return []


def get_prefixes() -> List[str]:
    wordlist = _load_wordlist(WORDLIST_PATH)
    if wordlist:
        return wordlist
    logger.warning("Subdomain wordlist missing, using built-in fallback (%d prefixes)", len(FALLBACK_PREFIXES))
    return list(FALLBACK_PREFIXES)


def _addresses(name: str, timeout: float) -> Optional[Set[str]]:
    """A records of `name`; empty when it does not exist, None when the lookup failed."""
    try:
        return set(dns_client.query(name, "A", timeout))
    except dns.exception.DNSException as e:
        logger.debug("Subdomain lookup failed for %s: %s", name, e)
        return None


class SubdomainProbe(BaseProbe):
    name = "subdomains"
    label = "Subdomains"
    kind = ProbeKind.SUBDOMAIN_LIST

    def execute(self, target: str, timeout: float) -> Union[List[str], ProbeResult]:
        prefixes = get_prefixes()

        wildcard_ips = _addresses(f"sitecheck-wildcard-{uuid.uuid4().hex[:12]}.{target}", timeout)
        if wildcard_ips is None:
            logger.warning("Subdomains: resolver unavailable for %s", target)
            return ProbeResult.error("Subdomain lookup failed.", name="Subdomain lookup failed")
        if wildcard_ips:
            logger.info("Subdomains: wildcard detected for %s, filtering false positives", target)

        candidates = [f"{prefix}.{target}" for prefix in prefixes]
        with ThreadPoolExecutor(max_workers=MAX_WORKERS) as pool:
            resolved = list(pool.map(lambda name: _addresses(name, timeout), candidates))

        failed = sum(1 for ips in resolved if ips is None)
        if failed == len(candidates):
            logger.warning("Subdomains: all %d lookups failed for %s", failed, target)
            return ProbeResult.error("Subdomain lookup failed.", name="Subdomain lookup failed")
        if failed:
            logger.info("Subdomains: %d of %d lookups failed for %s", failed, len(candidates), target)

        found = [
            name for name, ips in zip(candidates, resolved)
            if ips and ips != wildcard_ips
        ]
        logger.info("Subdomains: %s, %d of %d prefixes resolved", target, len(found), len(candidates))
        return found
