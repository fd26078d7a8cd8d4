# sitecheck/streaming/client.py
"""
Caller side of the progress stream.

StreamClient opens GET /scan-progress, reports each progress event and
hands back the final report. Exactly one outcome is delivered per scan:

    terminal result event         → ScanHandle.wait() returns the report dict
    terminal {"error": ...}       → ScanFailedError
    no terminal within the limit  → ScanTimeoutError
    channel broke before terminal → StreamTransportError
    cancelled / superseded        → ScanCancelledError

One scan at a time per client: start() cancels the previous scan first
(last request wins).

Usage:
    client = StreamClient("http://localhost:5000", on_progress=print)
    report = client.scan("example.com", include_optional=True)
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import requests

from sitecheck import config
from sitecheck.errors import (
    ScanCancelledError,
    ScanFailedError,
    ScanTimeoutError,
    SiteCheckError,
    StreamTransportError,
)

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 10


# ---------------------------------------------------------------------------
# Cancellation and terminal bookkeeping
# ---------------------------------------------------------------------------

class CancelToken:
    """
    Cooperative cancellation flag shared by a scan's reader thread and its
    owner. Callbacks run once, on the first cancel().
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self, reason: str = "cancelled") -> bool:
        """Returns False if the token was already cancelled."""
        with self._lock:
            if self._event.is_set():
                return False
            self.reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Cancel callback failed")
        return True


class TerminalGuard:
    """Lets exactly one of result / error / timeout / cancel through."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def finish(self) -> bool:
        with self._lock:
            if self._finished:
                return False
            self._finished = True
            return True


class ScanHandle:
    """A running streamed scan. wait() blocks until its one outcome is known."""

    def __init__(self, target: str, token: CancelToken):
        self.target = target
        self.token = token
        self.guard = TerminalGuard()
        self._done = threading.Event()
        self._result: Optional[Dict[str, Any]] = None
        self._error: Optional[SiteCheckError] = None
        self.thread: Optional[threading.Thread] = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def settle(self, result: Dict[str, Any]) -> bool:
        if not self.guard.finish():
            return False
        self._result = result
        self._done.set()
        return True

    def settle_error(self, error: SiteCheckError) -> bool:
        if not self.guard.finish():
            return False
        self._error = error
        self._done.set()
        return True

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self.token.cancel(reason)

    def wait(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        if not self._done.wait(timeout):
            raise ScanTimeoutError(f"Scan of {self.target} still running after {timeout}s")
        if self._error is not None:
            raise self._error
        return self._result


# ---------------------------------------------------------------------------
# SSE parsing
# ---------------------------------------------------------------------------

def parse_sse_line(line: Optional[str]) -> Optional[Dict[str, Any]]:
    """Payload of one `data:` line, or None for blank, comment and malformed lines."""
    if not line or not line.startswith("data:"):
        return None
    raw = line[len("data:"):].strip()
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.warning(f"Ignoring malformed stream event: {raw[:200]}")
        return None
    return payload if isinstance(payload, dict) else None


def is_terminal(event: Dict[str, Any]) -> bool:
    return "error" in event or "result" in event


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class StreamClient:
    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        scan_timeout: Optional[float] = None,
        on_progress: Optional[Callable[[str, int], None]] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.scan_timeout = scan_timeout if scan_timeout is not None else config.SCAN_TIMEOUT_SECONDS
        self.on_progress = on_progress
        self._lock = threading.Lock()
        self._current: Optional[ScanHandle] = None

    def start(self, target: str, include_optional: bool = False) -> ScanHandle:
        token = CancelToken()
        handle = ScanHandle(target, token)
        token.add_callback(
            lambda: handle.settle_error(ScanCancelledError(token.reason or "cancelled"))
        )

        with self._lock:
            previous, self._current = self._current, handle
        if previous is not None and not previous.done:
            logger.info(f"Superseding scan of {previous.target} with {target}")
            previous.cancel("superseded by a newer scan")

        handle.thread = threading.Thread(
            target=self._run,
            args=(handle, include_optional),
            name=f"sitecheck-stream-{target}",
            daemon=True,
        )
        handle.thread.start()
        return handle

    def scan(self, target: str, include_optional: bool = False) -> Dict[str, Any]:
        """Blocking convenience wrapper around start().wait()."""
        return self.start(target, include_optional).wait()

    def cancel(self) -> None:
        with self._lock:
            current = self._current
        if current is not None:
            current.cancel()

    # -- reader thread ------------------------------------------------------

    def _on_timeout(self, handle: ScanHandle) -> None:
        if handle.settle_error(ScanTimeoutError(
            f"No result for {handle.target} within {self.scan_timeout}s"
        )):
            logger.warning(f"Scan of {handle.target} timed out after {self.scan_timeout}s")
        handle.token.cancel("timed out")

    def _run(self, handle: ScanHandle, include_optional: bool) -> None:
        token = handle.token
        timer = threading.Timer(self.scan_timeout, self._on_timeout, args=(handle,))
        timer.daemon = True
        timer.start()

        try:
            response = self.session.get(
                f"{self.base_url}/scan-progress",
                params={
                    "target": handle.target,
                    "includeOptionalProbe": "true" if include_optional else "false",
                },
                stream=True,
                timeout=(CONNECT_TIMEOUT_SECONDS, self.scan_timeout),
            )
            token.add_callback(response.close)
            if token.cancelled:
                return
            response.raise_for_status()

            for line in response.iter_lines(decode_unicode=True):
                if token.cancelled:
                    return
                event = parse_sse_line(line)
                if event is not None:
                    self._dispatch(handle, event)

            if not handle.guard.finished and not token.cancelled:
                handle.settle_error(StreamTransportError("Stream closed before the scan finished"))
        except Exception as e:
            # Reader-thread boundary: the caller only ever sees the handle's outcome.
            if token.cancelled:
                logger.debug(f"Stream for {handle.target} closed after cancel: {e}")
            elif handle.settle_error(StreamTransportError(f"Stream broke: {e}")):
                logger.warning(f"Stream for {handle.target} broke: {e}")
        finally:
            timer.cancel()

    def _dispatch(self, handle: ScanHandle, event: Dict[str, Any]) -> None:
        if is_terminal(event):
            if handle.guard.finished:
                logger.warning(f"Ignoring extra terminal event for {handle.target}")
                return
            if "error" in event:
                handle.settle_error(ScanFailedError(str(event["error"])))
            else:
                handle.settle(event["result"])
            return

        if handle.guard.finished:
            return
        if self.on_progress is not None and "progress" in event:
            self.on_progress(str(event.get("module", "")), int(event["progress"]))
