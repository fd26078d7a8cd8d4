# sitecheck/config.py
"""
Runtime configuration, read once from the environment at import time.

Every value has a development-friendly default so the app boots with no
.env at all. Production deployments set at least CORS_ORIGINS.

    PROBE_TIMEOUT_SECONDS            per-probe network timeout (default 5)
    PORT_TIMEOUT_SECONDS             TCP connect timeout per port (default 1)
    SCAN_TIMEOUT_SECONDS             caller-side ceiling for a streamed scan (default 120)
    SITECHECK_SCORING_POLICY         optional path to a JSON scoring policy
    SITECHECK_ALLOW_PRIVATE_TARGETS  "true" to allow scanning internal hosts
    DNS_NAMESERVERS                  comma-separated resolvers (default 8.8.8.8,1.1.1.1)
    USER_AGENT                       User-Agent sent by HTTP probes
    CORS_ORIGINS                     comma-separated allowed origins
"""

from __future__ import annotations

import os
from typing import List


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [v.strip() for v in raw.split(",") if v.strip()]


PROBE_TIMEOUT_SECONDS = _env_float("PROBE_TIMEOUT_SECONDS", 5.0)
PORT_TIMEOUT_SECONDS = _env_float("PORT_TIMEOUT_SECONDS", 1.0)
SCAN_TIMEOUT_SECONDS = _env_float("SCAN_TIMEOUT_SECONDS", 120.0)

SCORING_POLICY_PATH = os.getenv("SITECHECK_SCORING_POLICY") or None
ALLOW_PRIVATE_TARGETS = _env_bool("SITECHECK_ALLOW_PRIVATE_TARGETS")

DNS_NAMESERVERS = _env_list("DNS_NAMESERVERS", ["8.8.8.8", "1.1.1.1"])
USER_AGENT = os.getenv("USER_AGENT", "sitecheck-scanner/1.0")

# Empty means development defaults (localhost:3000), see create_app().
CORS_ORIGINS = _env_list("CORS_ORIGINS", [])
