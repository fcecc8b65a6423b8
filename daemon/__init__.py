"""
Transport layer for talking to the local capture daemon
"""

from .exceptions import (
    DaemonError,
    DaemonUnavailableError,
    DaemonRequestError,
    MalformedPayloadError,
    DaemonNotConnectedError,
)
from .sse import SseEvent, SseDecoder, EventChannel

__all__ = [
    "DaemonError",
    "DaemonUnavailableError",
    "DaemonRequestError",
    "MalformedPayloadError",
    "DaemonNotConnectedError",
    "SseEvent",
    "SseDecoder",
    "EventChannel",
]
