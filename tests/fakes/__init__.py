"""Exports for test fakes."""

from .clock import FakeClock
from .transport import FakeTransport, RecordedCall, error_response, network_failure

__all__ = [
    "FakeClock",
    "FakeTransport",
    "RecordedCall",
    "error_response",
    "network_failure",
]
