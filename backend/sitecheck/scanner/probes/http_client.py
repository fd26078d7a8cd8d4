# sitecheck/scanner/probes/http_client.py
"""
Shared HTTP plumbing for the web-facing probes.

All probes go through `fetch()` so timeouts, headers and redirect handling
are the same everywhere (and so tests have one seam to patch).
"""

from __future__ import annotations

import logging
from typing import List

import requests

from sitecheck import config

logger = logging.getLogger(__name__)

HEADERS = {"User-Agent": config.USER_AGENT}


def base_url(target: str) -> str:
    return f"https://{target}"


def fetch(url: str, timeout: float, allow_redirects: bool = True) -> requests.Response:
    """
    GET a URL. Never raises for HTTP status codes, only for transport
    failures (requests.RequestException).
    """
    return requests.get(
        url,
        timeout=timeout,
        headers=HEADERS,
        allow_redirects=allow_redirects,
    )


def body_text(response: requests.Response) -> str:
    try:
        return response.text or ""
    except (UnicodeDecodeError, LookupError):
        return ""


def set_cookie_headers(response: requests.Response) -> List[str]:
    """
    Every Set-Cookie header of a response, unmerged.

    requests folds repeated headers into one comma-joined string, which is
    ambiguous for cookies (Expires contains a comma), so read them from the
    underlying urllib3 response when it is available.
    """
    raw_headers = getattr(getattr(response, "raw", None), "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        return list(raw_headers.getlist("Set-Cookie"))
    value = response.headers.get("Set-Cookie")
    return [value] if value else []
