# sitecheck/scanner/probes/__init__.py
"""
Security probes.
Each probe checks one property of a target and classifies what it saw.
Probes do NOT score; the aggregator turns their results into points.
"""
from sitecheck.scanner.probes.ssl_probe import SSLProbe
from sitecheck.scanner.probes.spf_probe import SPFProbe
from sitecheck.scanner.probes.dmarc_probe import DMARCProbe
from sitecheck.scanner.probes.api_probe import APIProbe
from sitecheck.scanner.probes.dns_probe import DNSProbe
from sitecheck.scanner.probes.xss_probe import XSSProbe
from sitecheck.scanner.probes.webvuln_probe import WebVulnProbe
from sitecheck.scanner.probes.port_probe import PortProbe
from sitecheck.scanner.probes.subdomain_probe import SubdomainProbe
from sitecheck.scanner.probes.cookie_probe import CookieProbe
from sitecheck.scanner.probes.oauth_probe import OAuthProbe
from sitecheck.scanner.probes.csp_probe import CSPProbe
from sitecheck.scanner.probes.header_probe import HeaderProbe
from sitecheck.scanner.probes.wordpress_probe import WordPressProbe

# Registry of all available probes, in execution order.
# Optional probes come last; the orchestrator skips them unless asked.
ALL_PROBES = {
    "ssl": SSLProbe,
    "spf": SPFProbe,
    "dmarc": DMARCProbe,
    "api": APIProbe,
    "dns": DNSProbe,
    "xss": XSSProbe,
    "webvuln": WebVulnProbe,
    "ports": PortProbe,
    "subdomains": SubdomainProbe,
    "cookie": CookieProbe,
    "oauth": OAuthProbe,
    "csp": CSPProbe,
    "headers": HeaderProbe,
    "wordpress": WordPressProbe,
}

__all__ = [
    "SSLProbe", "SPFProbe", "DMARCProbe", "APIProbe", "DNSProbe",
    "XSSProbe", "WebVulnProbe", "PortProbe", "SubdomainProbe",
    "CookieProbe", "OAuthProbe", "CSPProbe", "HeaderProbe",
    "WordPressProbe",
    "ALL_PROBES",
]
