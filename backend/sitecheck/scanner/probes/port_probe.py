# sitecheck/scanner/probes/port_probe.py
"""
TCP connect scan of a fixed set of well-known ports.

Returns every checked port (open or closed) as a PortScanResult; the
scoring and summary layers decide what an open port means.
"""

from __future__ import annotations

import logging
import socket
from concurrent.futures import ThreadPoolExecutor
from typing import Dict

from sitecheck import config
from sitecheck.scanner.base import BaseProbe, PortObservation, PortScanResult, ProbeKind

logger = logging.getLogger(__name__)

COMMON_PORTS: Dict[int, str] = {
    21: "FTP",
    22: "SSH",
    25: "SMTP",
    53: "DNS",
    80: "HTTP",
    110: "POP3",
    143: "IMAP",
    443: "HTTPS",
    3306: "MySQL",
    8080: "HTTP-Alt",
}


def is_port_open(host: str, port: int, timeout: float) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError:
        return False


class PortProbe(BaseProbe):
    name = "ports"
    label = "Ports"
    kind = ProbeKind.PORT_BATTERY

    def execute(self, target: str, timeout: float) -> PortScanResult:
        connect_timeout = min(config.PORT_TIMEOUT_SECONDS, timeout)
        ports = list(COMMON_PORTS)

        with ThreadPoolExecutor(max_workers=len(ports)) as pool:
            states = list(pool.map(lambda p: is_port_open(target, p, connect_timeout), ports))

        observations = tuple(
            PortObservation(port=port, service=COMMON_PORTS[port], is_open=is_open)
            for port, is_open in zip(ports, states)
        )
        result = PortScanResult(ports=observations)
        logger.info(f"Port scan {target}: open={result.open_ports}")
        return result
