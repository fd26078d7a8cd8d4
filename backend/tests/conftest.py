"""
Shared pytest fixtures for backend tests.

Provides fake probes (no network access), a default battery mirroring the
real registry, and a Flask app / test client wired to that battery.
"""
import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from sitecheck import create_app
from sitecheck.scanner.base import (
    BaseProbe,
    Finding,
    PortObservation,
    PortScanResult,
    ProbeKind,
    ProbeResult,
    StatusCode,
)
from sitecheck.scanner.probes import ALL_PROBES
from sitecheck.scanner.probes.header_probe import SECURITY_HEADERS


class FakeProbe(BaseProbe):
    """Returns a canned result (or raises) and records every call."""

    def __init__(self, name, label, kind=ProbeKind.GENERIC, optional=False, result=None, raises=None):
        self.name = name
        self.label = label
        self.kind = kind
        self.optional = optional
        self.result = result
        self.raises = raises
        self.calls: List[str] = []

    def execute(self, target, timeout):
        self.calls.append(target)
        if self.raises is not None:
            raise self.raises
        return self.result


def ok_result(name: str = "check") -> ProbeResult:
    return ProbeResult(
        status=StatusCode.OK,
        recommendation="fine",
        details=(Finding(name=name, status=StatusCode.OK),),
    )


def header_result(*statuses: StatusCode) -> ProbeResult:
    """Header battery result; unspecified headers default to OK."""
    padded = list(statuses) + [StatusCode.OK] * (len(SECURITY_HEADERS) - len(statuses))
    return ProbeResult(
        status=StatusCode.WARNING,
        details=tuple(
            Finding(name=spec["header"], status=status)
            for spec, status in zip(SECURITY_HEADERS, padded)
        ),
    )


def port_result(*open_ports: int) -> PortScanResult:
    from sitecheck.scanner.probes.port_probe import COMMON_PORTS
    ports = dict(COMMON_PORTS)
    for p in open_ports:
        ports.setdefault(p, "unknown")
    return PortScanResult(ports=tuple(
        PortObservation(port=p, service=s, is_open=p in open_ports)
        for p, s in sorted(ports.items())
    ))


def default_results() -> Dict[str, object]:
    """Clean result per probe name, shaped the way each kind returns it."""
    results = {}
    for name, cls in ALL_PROBES.items():
        if cls.kind == ProbeKind.HEADER_BATTERY:
            results[name] = header_result()
        elif cls.kind == ProbeKind.PORT_BATTERY:
            results[name] = port_result()
        elif cls.kind == ProbeKind.SUBDOMAIN_LIST:
            results[name] = []
        else:
            results[name] = ok_result(name)
    return results


def make_battery(overrides: Optional[Dict[str, dict]] = None) -> List[FakeProbe]:
    """
    Fake probes with the real names, labels, kinds and order.

    `overrides` maps probe name to FakeProbe keyword overrides
    (e.g. {"ssl": {"raises": RuntimeError("boom")}}).
    """
    overrides = overrides or {}
    results = default_results()
    battery = []
    for name, cls in ALL_PROBES.items():
        kwargs = dict(
            name=name,
            label=cls.label,
            kind=cls.kind,
            optional=cls.optional,
            result=results[name],
        )
        kwargs.update(overrides.get(name, {}))
        battery.append(FakeProbe(**kwargs))
    return battery


@pytest.fixture
def battery():
    return make_battery()


@pytest.fixture
def app(battery):
    app = create_app(
        test_config={"TESTING": True, "SITECHECK_ALLOW_PRIVATE_TARGETS": True},
        probes=battery,
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
