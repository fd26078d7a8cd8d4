# sitecheck/__init__.py
"""
App factory.

    - CORS origins read from CORS_ORIGINS (localhost defaults in development)
    - Scoring policy loaded once here and shared read-only by every scan
    - JSON errors everywhere; tracebacks are logged, never returned
"""

from __future__ import annotations

import logging
import re
import traceback
from typing import Any, Dict, Optional, Sequence

from flask import Flask, jsonify
from flask_cors import CORS

from sitecheck import config
from sitecheck.scan import scan_bp
from sitecheck.scanner.base import BaseProbe
from sitecheck.scanner.orchestrator import ScanOrchestrator
from sitecheck.scoring.policy import load_policy

error_logger = logging.getLogger("sitecheck.errors")


def _is_production() -> bool:
    """Detect production by checking CORS_ORIGINS for https."""
    return any(o.startswith("https://") for o in config.CORS_ORIGINS)


def create_app(
    test_config: Optional[Dict[str, Any]] = None,
    probes: Optional[Sequence[BaseProbe]] = None,
) -> Flask:
    app = Flask(__name__)

    is_prod = _is_production()

    # ── Logging ──────────────────────────────────────────────────────
    if is_prod:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        app.logger.setLevel(logging.INFO)
    else:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        )
        app.logger.setLevel(logging.DEBUG)

    logging.getLogger("werkzeug").setLevel(logging.INFO)
    # Quieten noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    # ─────────────────────────────────────────────────────────────────

    app.config.update(
        SITECHECK_ALLOW_PRIVATE_TARGETS=config.ALLOW_PRIVATE_TARGETS,
        SITECHECK_SCORING_POLICY=config.SCORING_POLICY_PATH,
        PROBE_TIMEOUT_SECONDS=config.PROBE_TIMEOUT_SECONDS,
    )
    if test_config:
        app.config.update(test_config)

    # ── CORS ────────────────────────────────────────────────────────
    # Production: set CORS_ORIGINS="https://scan.example.com" in .env
    # Dev: falls back to localhost origins if env var is not set
    if config.CORS_ORIGINS:
        cors_origins = list(config.CORS_ORIGINS)
    else:
        cors_origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            re.compile(r"http://192\.168\.\d+\.\d+:3000"),
        ]

    CORS(app, resources={
        r"/*": {
            "origins": cors_origins,
            "allow_headers": ["Content-Type"],
            "methods": ["GET", "POST", "OPTIONS"],
        }
    })

    # ── Scoring policy + orchestrator ────────────────────────────────
    probe_list = list(probes) if probes is not None else None
    known = [p.name for p in probe_list] if probe_list is not None else None
    policy = load_policy(app.config["SITECHECK_SCORING_POLICY"], known_probes=known)
    app.extensions["sitecheck.policy"] = policy
    app.extensions["sitecheck.orchestrator"] = ScanOrchestrator(
        policy=policy,
        probes=probe_list,
        probe_timeout=app.config["PROBE_TIMEOUT_SECONDS"],
    )

    # ── Blueprints ───────────────────────────────────────────────────
    app.register_blueprint(scan_bp)

    # ── Global Error Handlers ────────────────────────────────────────
    # Return clean JSON for all errors; errors are logged server-side.

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({
            "error": "Bad request",
            "message": str(e.description) if hasattr(e, "description") else "The request was malformed or invalid.",
        }), 400

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({
            "error": "Forbidden",
            "message": "You do not have permission to access this resource.",
        }), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({
            "error": "Not found",
            "message": "The requested resource was not found.",
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({
            "error": "Method not allowed",
            "message": "This HTTP method is not allowed for this endpoint.",
        }), 405

    @app.errorhandler(500)
    def internal_error(e):
        error_logger.error(
            "500 Internal Server Error:\n%s", traceback.format_exc()
        )
        return jsonify({
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        }), 500

    @app.errorhandler(Exception)
    def unhandled_exception(e):
        from werkzeug.exceptions import HTTPException
        if isinstance(e, HTTPException):
            return e
        error_logger.error(
            "Unhandled exception:\n%s", traceback.format_exc()
        )
        return jsonify({
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        }), 500

    return app
