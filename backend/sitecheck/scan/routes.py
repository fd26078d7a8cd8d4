# sitecheck/scan/routes.py
"""
Scan API routes.

    POST /scan            run a scan and return the full report (blocking)
    GET  /scan-progress   run a scan and stream progress as Server-Sent Events
    GET  /health          liveness probe

/scan-progress is a GET because browser EventSource can only issue GETs.
Both scan routes validate the target and refuse internal addresses before
any probe runs.
"""

from __future__ import annotations

import ipaddress
import logging
import re
import socket
from typing import Any, Optional

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from sitecheck.errors import BlockedTargetError, InvalidRequestError
from sitecheck.scanner.orchestrator import ScanOrchestrator
from sitecheck.streaming.events import ProgressStream

logger = logging.getLogger(__name__)

scan_bp = Blueprint("scan", __name__)

DOMAIN_RE = re.compile(r"^([a-z0-9]([a-z0-9-]*[a-z0-9])?\.)+[a-z]{2,63}$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# SSRF protection: private/reserved IP blocklist
# ---------------------------------------------------------------------------

# Networks a scan must never reach
BLOCKED_NETWORKS = [
    ipaddress.ip_network("0.0.0.0/8"),         # "This" network
    ipaddress.ip_network("10.0.0.0/8"),         # Private (RFC 1918)
    ipaddress.ip_network("100.64.0.0/10"),      # Carrier-grade NAT
    ipaddress.ip_network("127.0.0.0/8"),        # Loopback
    ipaddress.ip_network("169.254.0.0/16"),     # Link-local / cloud metadata
    ipaddress.ip_network("172.16.0.0/12"),      # Private (RFC 1918)
    ipaddress.ip_network("192.168.0.0/16"),     # Private (RFC 1918)
    ipaddress.ip_network("198.18.0.0/15"),      # Benchmarking
    ipaddress.ip_network("224.0.0.0/4"),        # Multicast
    ipaddress.ip_network("240.0.0.0/4"),        # Reserved
    # IPv6
    ipaddress.ip_network("::1/128"),            # Loopback
    ipaddress.ip_network("fc00::/7"),           # Unique local
    ipaddress.ip_network("fe80::/10"),          # Link-local
]


def _is_private_ip(ip_str: str) -> bool:
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped:
        addr = addr.ipv4_mapped
    return any(addr in network for network in BLOCKED_NETWORKS)


def check_target_allowed(host: str) -> None:
    """Raise BlockedTargetError if any address `host` resolves to is internal."""
    if current_app.config.get("SITECHECK_ALLOW_PRIVATE_TARGETS"):
        return
    try:
        results = socket.getaddrinfo(host, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except (socket.gaierror, socket.herror, OSError):
        raise InvalidRequestError(f"Could not resolve hostname '{host}'.")

    for *_rest, sockaddr in results:
        if _is_private_ip(sockaddr[0]):
            logger.warning(f"SSRF blocked: {host} resolved to private IP {sockaddr[0]}")
            raise BlockedTargetError(
                "Target resolves to a private or reserved IP address. "
                "Scanning internal networks is not allowed."
            )


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def normalize_target(raw: Any) -> str:
    d = str(raw or "").strip().lower()
    if d.startswith("http://") or d.startswith("https://"):
        d = d.split("://", 1)[1]
    d = d.split("/", 1)[0].split("?", 1)[0].split(":", 1)[0]
    return d.strip().strip(".")


def validate_target(raw: Any) -> str:
    target = normalize_target(raw)
    if not target:
        raise InvalidRequestError("Target is required.")
    if len(target) > 253 or not DOMAIN_RE.match(target):
        raise InvalidRequestError("Invalid domain format.")
    return target


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


def _orchestrator() -> ScanOrchestrator:
    return current_app.extensions["sitecheck.orchestrator"]


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@scan_bp.errorhandler(InvalidRequestError)
def _invalid_request(e: InvalidRequestError):
    return jsonify(error="Bad request", message=str(e)), 400


@scan_bp.errorhandler(BlockedTargetError)
def _blocked_target(e: BlockedTargetError):
    return jsonify(error="Forbidden", message=str(e)), 403


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@scan_bp.get("/health")
def health():
    return jsonify(status="up and running"), 200


@scan_bp.post("/scan")
def scan():
    """Run the full battery and return the report in one response."""
    body = request.get_json(silent=True) or {}
    target = validate_target(body.get("target") or body.get("domain"))
    include_optional = parse_bool(body.get("includeOptionalProbe"))
    check_target_allowed(target)

    report = _orchestrator().run_scan(target, include_optional=include_optional)
    return jsonify(report.to_dict()), 200


@scan_bp.get("/scan-progress")
def scan_progress():
    """
    Run the battery and stream one event per finished probe, then exactly
    one terminal event (result or error).
    """
    target = validate_target(request.args.get("target") or request.args.get("domain"))
    include_optional = parse_bool(request.args.get("includeOptionalProbe"))
    check_target_allowed(target)

    orchestrator = _orchestrator()

    def generate():
        stream = ProgressStream()
        session = orchestrator.start(target, include_optional)
        updates = orchestrator.iter_scan(session)
        error: Optional[str] = None
        try:
            for update in updates:
                yield stream.progress(update.percentage, update.label)
            report = orchestrator.finish(session)
        except Exception:
            logger.exception(f"Streamed scan of {target} failed")
            error = "Scan failed. Please try again later."
        finally:
            # Client disconnects close this generator; stop before the next probe.
            updates.close()

        if error is not None:
            yield stream.fail(error)
        else:
            yield stream.complete(report.to_dict())

    response = Response(stream_with_context(generate()), mimetype="text/event-stream")
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response
