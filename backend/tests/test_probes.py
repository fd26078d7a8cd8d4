"""
Probe classification tests.

No network: http_client.fetch, the dns_client lookups and the port/subdomain
resolvers are monkeypatched per test.
"""
from datetime import datetime, timedelta, timezone

import dns.exception
import pytest
import requests
from requests.structures import CaseInsensitiveDict

from sitecheck.errors import ProbeFault
from sitecheck.scanner.base import PortScanResult, ProbeKind, StatusCode
from sitecheck.scanner.probes import (
    APIProbe,
    CookieProbe,
    CSPProbe,
    DMARCProbe,
    DNSProbe,
    HeaderProbe,
    OAuthProbe,
    PortProbe,
    SPFProbe,
    SSLProbe,
    SubdomainProbe,
    WebVulnProbe,
    WordPressProbe,
    XSSProbe,
    dns_client,
    http_client,
    port_probe,
    ssl_probe,
    subdomain_probe,
)
from sitecheck.scanner.probes.cookie_probe import inspect_cookies, parse_set_cookie
from sitecheck.scanner.probes.csp_probe import inspect_csp
from sitecheck.scanner.probes.dmarc_probe import classify_dmarc
from sitecheck.scanner.probes.header_probe import SECURITY_HEADERS, inspect_headers
from sitecheck.scanner.probes.oauth_probe import inspect_discovery
from sitecheck.scanner.probes.spf_probe import classify_spf
from sitecheck.scanner.probes.ssl_probe import classify_expiry, days_until
from sitecheck.scoring.aggregator import score_probe

TARGET = "example.com"


class FakeResponse:
    def __init__(self, status_code=200, text="", headers=None, json_body=None):
        self.status_code = status_code
        self.text = text
        self.content = text.encode()
        self.headers = CaseInsensitiveDict(headers or {})
        self._json = json_body

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")


@pytest.fixture
def web(monkeypatch):
    """
    Route fetch() by path: `web[path] = FakeResponse(...)`. A trailing `*`
    matches by prefix. Unrouted paths answer 404; a routed exception is raised.
    """
    routes = {}

    def fake_fetch(url, timeout, allow_redirects=True):
        path = url[len(f"https://{TARGET}"):] or "/"
        for key, value in routes.items():
            if path == key or (key.endswith("*") and path.startswith(key[:-1])):
                if isinstance(value, Exception):
                    raise value
                return value
        return FakeResponse(status_code=404)

    monkeypatch.setattr(http_client, "fetch", fake_fetch)
    return routes


# ---------------------------------------------------------------------------
# SSL
# ---------------------------------------------------------------------------

class TestSSL:
    @pytest.mark.parametrize("days, status, finding", [
        (-3, StatusCode.EXPIRED, StatusCode.CRITICAL),
        (0, StatusCode.EXPIRED, StatusCode.CRITICAL),
        (12, StatusCode.OK, StatusCode.WARNING),
        (30, StatusCode.OK, StatusCode.WARNING),
        (200, StatusCode.OK, StatusCode.OK),
    ])
    def test_classify_expiry(self, days, status, finding):
        result = classify_expiry(days)
        assert result.status == status
        assert result.details[0].status == finding

    def test_days_until_rounds_half_up(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert days_until(now + timedelta(days=10, hours=12), now) == 11
        assert days_until(now + timedelta(days=10, hours=11), now) == 10

    def test_connection_failure_is_error(self, monkeypatch):
        def refuse(host, port, timeout):
            raise ConnectionRefusedError("refused")
        monkeypatch.setattr(ssl_probe, "fetch_certificate", refuse)
        result = SSLProbe().execute(TARGET, 1)
        assert result.status == StatusCode.ERROR

    def test_no_certificate_is_error(self, monkeypatch):
        monkeypatch.setattr(ssl_probe, "fetch_certificate", lambda h, p, t: None)
        assert SSLProbe().execute(TARGET, 1).status == StatusCode.ERROR

    def test_garbage_certificate_is_probe_fault(self, monkeypatch):
        monkeypatch.setattr(ssl_probe, "fetch_certificate", lambda h, p, t: b"not a certificate")
        with pytest.raises(ProbeFault):
            SSLProbe().execute(TARGET, 1)


# ---------------------------------------------------------------------------
# Mail records
# ---------------------------------------------------------------------------

class TestSPF:
    def test_missing(self):
        assert classify_spf([]).status == StatusCode.MISSING
        assert classify_spf(["google-site-verification=abc"]).status == StatusCode.MISSING

    def test_soft_fail(self):
        assert classify_spf(["v=spf1 include:_spf.google.com ~all"]).status == StatusCode.WARNING

    def test_hard_fail(self):
        assert classify_spf(["v=spf1 mx -all"]).status == StatusCode.OK

    def test_lookup_failure_is_error(self, monkeypatch):
        def boom(name, timeout):
            raise dns.exception.Timeout()
        monkeypatch.setattr(dns_client, "query_txt", boom)
        assert SPFProbe().execute(TARGET, 1).status == StatusCode.ERROR

    def test_probe_reads_apex_txt(self, monkeypatch):
        seen = []
        monkeypatch.setattr(dns_client, "query_txt", lambda name, t: seen.append(name) or ["v=spf1 -all"])
        assert SPFProbe().execute(TARGET, 1).status == StatusCode.OK
        assert seen == [TARGET]


class TestDMARC:
    @pytest.mark.parametrize("records, status", [
        ([], StatusCode.MISSING),
        (["v=spf1 -all"], StatusCode.MISSING),
        (["v=DMARC1; p=none; rua=mailto:r@example.com"], StatusCode.WEAK),
        (["v=DMARC1;p = none"], StatusCode.WEAK),
        (["v=DMARC1; p=reject"], StatusCode.OK),
        (["v=DMARC1; p=quarantine"], StatusCode.OK),
    ])
    def test_classify(self, records, status):
        assert classify_dmarc(records).status == status

    def test_probe_queries_dmarc_label(self, monkeypatch):
        seen = []
        monkeypatch.setattr(dns_client, "query_txt", lambda name, t: seen.append(name) or [])
        assert DMARCProbe().execute(TARGET, 1).status == StatusCode.MISSING
        assert seen == [f"_dmarc.{TARGET}"]


class TestDNS:
    def _patch(self, monkeypatch, mx=(), txt=(), dmarc=(), dnskey=()):
        monkeypatch.setattr(dns_client, "query_mx", lambda n, t: list(mx))
        monkeypatch.setattr(
            dns_client, "query_txt",
            lambda n, t: list(dmarc) if n.startswith("_dmarc.") else list(txt),
        )
        monkeypatch.setattr(dns_client, "query", lambda n, rd, t: list(dnskey))

    def test_all_present(self, monkeypatch):
        self._patch(monkeypatch, mx=["mx1.example.com"], txt=["v=spf1 -all"],
                    dmarc=["v=DMARC1; p=reject"], dnskey=["257 3 13 abc"])
        result = DNSProbe().execute(TARGET, 1)
        assert result.status == StatusCode.OK
        assert [d.name for d in result.details] == ["MX record", "SPF record", "DMARC", "DNSSEC"]

    def test_no_mx_is_critical(self, monkeypatch):
        self._patch(monkeypatch, txt=["v=spf1 -all"], dmarc=["v=DMARC1; p=reject"], dnskey=["k"])
        assert DNSProbe().execute(TARGET, 1).status == StatusCode.CRITICAL

    def test_unsigned_zone_is_warning(self, monkeypatch):
        self._patch(monkeypatch, mx=["mx"], txt=["v=spf1 -all"], dmarc=["v=DMARC1; p=reject"])
        result = DNSProbe().execute(TARGET, 1)
        assert result.status == StatusCode.WARNING
        assert result.details[3].status == StatusCode.WARNING

    def test_failed_lookup_is_error_finding(self, monkeypatch):
        self._patch(monkeypatch, txt=["v=spf1 -all"], dmarc=["v=DMARC1; p=reject"], dnskey=["k"])

        def boom(n, t):
            raise dns.exception.Timeout()
        monkeypatch.setattr(dns_client, "query_mx", boom)
        result = DNSProbe().execute(TARGET, 1)
        assert result.details[0].status == StatusCode.ERROR
        assert result.status == StatusCode.OK


# ---------------------------------------------------------------------------
# Web
# ---------------------------------------------------------------------------

class TestAPI:
    def test_nothing_exposed(self, web):
        result = APIProbe().execute(TARGET, 1)
        assert result.status == StatusCode.OK
        assert result.details == ()

    def test_openapi_document_is_critical(self, web):
        web["/openapi.json"] = FakeResponse(
            text='{"openapi": "3.0.0", "paths": {}}',
            headers={"Content-Type": "application/json"},
        )
        result = APIProbe().execute(TARGET, 1)
        assert result.status == StatusCode.CRITICAL

    def test_open_json_with_wildcard_cors(self, web):
        web["/api"] = FakeResponse(
            text='{"ok": true}',
            headers={"Content-Type": "application/json", "Access-Control-Allow-Origin": "*"},
        )
        result = APIProbe().execute(TARGET, 1)
        assert result.status == StatusCode.WARNING
        assert len(result.details) == 2

    def test_html_is_ignored(self, web):
        web["/api"] = FakeResponse(text="<html>swagger</html>", headers={"Content-Type": "text/html"})
        assert APIProbe().execute(TARGET, 1).status == StatusCode.OK


class TestXSS:
    def test_reflection_is_critical(self, web):
        web["/search?q=*"] = FakeResponse(text="<p>Results for <script>/*x*/</script></p>")
        result = XSSProbe().execute(TARGET, 1)
        assert result.status == StatusCode.CRITICAL
        assert len(result.details) == 1

    def test_escaped_output_is_ok(self, web):
        web["/?q=*"] = FakeResponse(text="&lt;script&gt;/*x*/&lt;/script&gt;")
        assert XSSProbe().execute(TARGET, 1).status == StatusCode.OK

    def test_unreachable_is_ok(self, web):
        web["/*"] = requests.ConnectionError("down")
        assert XSSProbe().execute(TARGET, 1).status == StatusCode.OK


class TestWebVuln:
    def test_clean(self, web):
        web["/"] = FakeResponse(text="hello")
        assert WebVulnProbe().execute(TARGET, 1).status == StatusCode.OK

    def test_exposed_env_file(self, web):
        web["/.env"] = FakeResponse(text="DB_PASSWORD=hunter2")
        assert WebVulnProbe().execute(TARGET, 1).status == StatusCode.CRITICAL

    def test_listing_and_server_header(self, web):
        web["/uploads/"] = FakeResponse(text="<title>Index of /uploads</title>")
        web["/"] = FakeResponse(text="hi", headers={"Server": "Apache/2.4.1"})
        result = WebVulnProbe().execute(TARGET, 1)
        assert result.status == StatusCode.WARNING
        assert {d.name for d in result.details} == {"Directory listing", "Server header"}


class TestCookies:
    def test_parse(self):
        assert parse_set_cookie("sid=abc; Path=/; Secure; HttpOnly") == ("sid", ["path=/", "secure", "httponly"])

    def test_no_cookies(self):
        assert inspect_cookies([]).status == StatusCode.OK

    def test_hardened_cookie(self):
        result = inspect_cookies(["sid=1; Secure; HttpOnly; SameSite=Lax"])
        assert result.status == StatusCode.OK
        assert result.details == ()

    def test_missing_secure_is_critical(self):
        result = inspect_cookies(["sid=1; HttpOnly; SameSite=Strict"])
        assert result.status == StatusCode.CRITICAL

    def test_missing_samesite_is_warning(self):
        result = inspect_cookies(["sid=1; Secure; HttpOnly"])
        assert result.status == StatusCode.WARNING
        assert result.details[0].name == "Cookie SameSite: sid"

    def test_probe(self, web):
        web["/"] = FakeResponse(headers={"Set-Cookie": "sid=1; Secure; HttpOnly; SameSite=Lax"})
        assert CookieProbe().execute(TARGET, 1).status == StatusCode.OK

    def test_probe_unreachable(self, web):
        web["/"] = requests.Timeout("slow")
        assert CookieProbe().execute(TARGET, 1).status == StatusCode.ERROR


class TestOAuth:
    def test_no_discovery_is_not_applicable(self, web):
        assert OAuthProbe().execute(TARGET, 1).status == StatusCode.NOT_APPLICABLE

    def test_clean_document(self):
        result = inspect_discovery(TARGET, {
            "issuer": "https://example.com",
            "token_endpoint": "https://example.com/token",
            "token_endpoint_auth_methods_supported": ["client_secret_basic"],
        })
        assert result.status == StatusCode.OK

    def test_none_auth_method_is_critical(self):
        result = inspect_discovery(TARGET, {
            "issuer": "https://example.com",
            "token_endpoint": "https://example.com/token",
            "token_endpoint_auth_methods_supported": ["none"],
        })
        assert result.status == StatusCode.CRITICAL

    def test_foreign_issuer_is_warning(self):
        result = inspect_discovery(TARGET, {
            "issuer": "https://login.other.net",
            "token_endpoint": "https://login.other.net/token",
        })
        assert result.status == StatusCode.WARNING

    def test_non_object_document_faults(self, web):
        web["/.well-known/openid-configuration"] = FakeResponse(text="<html/>")
        with pytest.raises(ProbeFault):
            OAuthProbe().execute(TARGET, 1)

    def test_probe_with_document(self, web):
        web["/.well-known/openid-configuration"] = FakeResponse(json_body={
            "issuer": "https://example.com", "token_endpoint": "https://example.com/t",
        })
        assert OAuthProbe().execute(TARGET, 1).status == StatusCode.OK


class TestCSP:
    def test_missing(self):
        assert inspect_csp(None).status == StatusCode.WARNING

    def test_strict(self):
        assert inspect_csp("default-src 'self'").status == StatusCode.OK

    def test_unsafe_eval_is_critical(self):
        assert inspect_csp("script-src 'self' 'unsafe-eval'").status == StatusCode.CRITICAL

    def test_wildcard_is_warning(self):
        assert inspect_csp("img-src *").status == StatusCode.WARNING

    def test_probe(self, web):
        web["/"] = FakeResponse(headers={"Content-Security-Policy": "default-src 'self'"})
        assert CSPProbe().execute(TARGET, 1).status == StatusCode.OK


class TestHeaders:
    GOOD = {
        "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": "default-src 'self'",
        "Permissions-Policy": "camera=()",
    }

    def test_all_present(self):
        result = inspect_headers(CaseInsensitiveDict(self.GOOD))
        assert result.status == StatusCode.OK
        assert [d.name for d in result.details] == [h["header"] for h in SECURITY_HEADERS]

    def test_all_missing(self):
        result = inspect_headers(CaseInsensitiveDict())
        assert result.status == StatusCode.MISSING
        assert len(result.details) == 7
        assert all(d.status == StatusCode.MISSING for d in result.details)

    def test_short_hsts_is_warning(self):
        headers = dict(self.GOOD, **{"Strict-Transport-Security": "max-age=300"})
        result = inspect_headers(CaseInsensitiveDict(headers))
        assert result.status == StatusCode.WARNING
        assert result.details[0].status == StatusCode.WARNING

    @pytest.mark.parametrize("header, value", [
        ("Strict-Transport-Security", "max-age=300"),
        ("X-Content-Type-Options", "sniff"),
        ("X-XSS-Protection", "0"),
    ])
    def test_weak_value_scores_three_of_five(self, header, value):
        headers = dict(self.GOOD, **{header: value})
        result = inspect_headers(CaseInsensitiveDict(headers))
        share = score_probe(ProbeKind.HEADER_BATTERY, result, 35)
        assert sum(points for points, _ in share) == 33
        assert sum(weight for _, weight in share) == pytest.approx(35)

    def test_partial(self):
        headers = dict(self.GOOD)
        del headers["Permissions-Policy"]
        result = inspect_headers(CaseInsensitiveDict(headers))
        assert result.status == StatusCode.WARNING
        assert result.details[-1].status == StatusCode.MISSING

    def test_server_error_is_error(self, web):
        web["/"] = FakeResponse(status_code=503)
        assert HeaderProbe().execute(TARGET, 1).status == StatusCode.ERROR


class TestWordPress:
    def test_not_wordpress(self, web):
        web["/"] = FakeResponse(
            text="<html>plain site</html>",
            headers={"X-Frame-Options": "DENY", "Content-Security-Policy": "default-src 'self'"},
        )
        assert WordPressProbe().execute(TARGET, 1).status == StatusCode.NOT_APPLICABLE

    def test_exposed_install(self, web):
        web["/wp-login.php"] = FakeResponse(text="login")
        web["/readme.html"] = FakeResponse(text="WordPress Version 5.8.1")
        web["/"] = FakeResponse(text='<link href="/wp-content/themes/x.css">')
        result = WordPressProbe().execute(TARGET, 1)
        assert result.status == StatusCode.WARNING
        assert any(d.name == "WordPress version" for d in result.details)

    def test_risk_ceiling_is_critical(self, web):
        for path in ("/wp-login.php", "/wp-admin/", "/wp-content/", "/wp-config.php"):
            web[path] = FakeResponse(text="x")
        web["/readme.html"] = FakeResponse(text="WordPress Version 6.0")
        web["/"] = FakeResponse(text="wp-includes")
        # 2 + 1 + 1 + 1 + 1 + 2 + 0.5 + 0.5 + 1 = 10
        assert WordPressProbe().execute(TARGET, 1).status == StatusCode.CRITICAL

    def test_hardened_install_is_still_warning(self, web):
        web["/"] = FakeResponse(
            text='<meta name="generator" content="WordPress 6.4">',
            headers={"X-Frame-Options": "DENY", "Content-Security-Policy": "default-src 'self'"},
        )
        result = WordPressProbe().execute(TARGET, 1)
        assert result.status == StatusCode.WARNING
        assert [d.name for d in result.details] == ["WordPress detected"]


# ---------------------------------------------------------------------------
# Ports and subdomains
# ---------------------------------------------------------------------------

class TestPorts:
    def test_reports_every_port(self, monkeypatch):
        monkeypatch.setattr(port_probe, "is_port_open", lambda host, port, timeout: port in (22, 443))
        result = PortProbe().execute(TARGET, 1)
        assert isinstance(result, PortScanResult)
        assert result.open_ports == [22, 443]
        assert len(result.ports) == len(port_probe.COMMON_PORTS)
        assert result.service_for(22) == "SSH"

    def test_closed_port(self):
        # Port 0 never accepts connections.
        assert port_probe.is_port_open("127.0.0.1", 0, 0.2) is False


class TestSubdomains:
    def test_found_in_wordlist_order(self, monkeypatch):
        monkeypatch.setattr(subdomain_probe, "get_prefixes", lambda: ["www", "admin", "nope"])
        answers = {"www.example.com": {"1.2.3.4"}, "admin.example.com": {"1.2.3.5"}}
        monkeypatch.setattr(subdomain_probe, "_addresses", lambda name, t: answers.get(name, set()))
        assert SubdomainProbe().execute(TARGET, 1) == ["www.example.com", "admin.example.com"]

    def test_wildcard_answers_filtered(self, monkeypatch):
        monkeypatch.setattr(subdomain_probe, "get_prefixes", lambda: ["www", "shop"])

        def addresses(name, t):
            if name.startswith("www."):
                return {"5.6.7.8"}
            return {"9.9.9.9"}
        monkeypatch.setattr(subdomain_probe, "_addresses", addresses)
        assert SubdomainProbe().execute(TARGET, 1) == ["www.example.com"]

    def test_wordlist_loads(self):
        prefixes = subdomain_probe.get_prefixes()
        assert "www" in prefixes
        assert not any(p.startswith("#") for p in prefixes)

    def test_missing_wordlist_falls_back(self, monkeypatch, tmp_path):
        monkeypatch.setattr(subdomain_probe, "WORDLIST_PATH", str(tmp_path / "missing.txt"))
        assert subdomain_probe.get_prefixes() == subdomain_probe.FALLBACK_PREFIXES

    def test_lookup_failure_is_none(self, monkeypatch):
        def boom(name, rdtype, timeout):
            raise dns.exception.Timeout()
        monkeypatch.setattr(dns_client, "query", boom)
        assert subdomain_probe._addresses("www.example.com", 1) is None

    def test_nxdomain_is_empty(self, monkeypatch):
        monkeypatch.setattr(dns_client, "query", lambda name, rdtype, timeout: [])
        assert subdomain_probe._addresses("nope.example.com", 1) == set()

    def test_resolver_outage_is_error(self, monkeypatch):
        monkeypatch.setattr(subdomain_probe, "get_prefixes", lambda: ["www", "admin"])

        def boom(name, rdtype, timeout):
            raise dns.exception.Timeout()
        monkeypatch.setattr(dns_client, "query", boom)
        result = SubdomainProbe().execute(TARGET, 1)
        assert result.status == StatusCode.ERROR
        assert result.details[0].name == "Subdomain lookup failed"

    def test_wildcard_lookup_failure_is_error(self, monkeypatch):
        monkeypatch.setattr(subdomain_probe, "get_prefixes", lambda: ["www"])

        def addresses(name, t):
            return None if name.startswith("sitecheck-wildcard-") else {"1.2.3.4"}
        monkeypatch.setattr(subdomain_probe, "_addresses", addresses)
        assert SubdomainProbe().execute(TARGET, 1).status == StatusCode.ERROR

    def test_every_candidate_failing_is_error(self, monkeypatch):
        monkeypatch.setattr(subdomain_probe, "get_prefixes", lambda: ["www", "shop"])

        def addresses(name, t):
            return set() if name.startswith("sitecheck-wildcard-") else None
        monkeypatch.setattr(subdomain_probe, "_addresses", addresses)
        assert SubdomainProbe().execute(TARGET, 1).status == StatusCode.ERROR

    def test_partial_failure_keeps_answers(self, monkeypatch):
        monkeypatch.setattr(subdomain_probe, "get_prefixes", lambda: ["www", "shop"])
        answers = {"www.example.com": {"1.2.3.4"}, "shop.example.com": None}
        monkeypatch.setattr(subdomain_probe, "_addresses", lambda name, t: answers.get(name, set()))
        assert SubdomainProbe().execute(TARGET, 1) == ["www.example.com"]
