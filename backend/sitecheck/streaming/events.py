# sitecheck/streaming/events.py
"""
Server side of the progress stream.

A ProgressStream turns orchestrator progress into Server-Sent Events frames
and guarantees the stream ends with exactly one terminal event:

    IDLE ──progress()──▶ RUNNING ──progress()──▶ RUNNING
      │                     │
      └──complete()/fail()──┴──▶ COMPLETE | FAILED   (terminal)

Wire format, one frame per event:

    data: {"progress": 46, "module": "Ports"}
    data: {"progress": 100, "module": "Fertig", "result": {...ScanReport...}}
    data: {"error": "..."}
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict

from sitecheck.errors import InvalidTransitionError

logger = logging.getLogger(__name__)

# Module name carried by the terminal success event. Existing front-ends
# match on this exact value.
DONE_MODULE = "Fertig"


class StreamState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


TERMINAL_STATES = (StreamState.COMPLETE, StreamState.FAILED)


def format_sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


class ProgressStream:
    """One per scan request. Not thread-safe; driven by a single generator."""

    def __init__(self) -> None:
        self.state = StreamState.IDLE

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def _enter(self, target: StreamState) -> None:
        if self.finished:
            raise InvalidTransitionError(self.state.value, target.value)
        self.state = target

    def progress(self, percentage: int, module: str) -> str:
        self._enter(StreamState.RUNNING)
        return format_sse({"progress": percentage, "module": module})

    def complete(self, report: Dict[str, Any]) -> str:
        self._enter(StreamState.COMPLETE)
        return format_sse({"progress": 100, "module": DONE_MODULE, "result": report})

    def fail(self, message: str) -> str:
        self._enter(StreamState.FAILED)
        return format_sse({"error": message})
