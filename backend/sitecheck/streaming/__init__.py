from sitecheck.streaming.client import CancelToken, ScanHandle, StreamClient, TerminalGuard
from sitecheck.streaming.events import DONE_MODULE, ProgressStream, StreamState, format_sse

__all__ = [
    "CancelToken", "ScanHandle", "StreamClient", "TerminalGuard",
    "DONE_MODULE", "ProgressStream", "StreamState", "format_sse",
]
