"""
Custom exceptions for daemon communication
"""

from typing import Optional, Dict, Any


class DaemonError(Exception):
    """Base exception for all daemon-related errors"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class DaemonUnavailableError(DaemonError):
    """Raised when the daemon cannot be reached (refused, timed out, reset)"""
    pass


class DaemonRequestError(DaemonError):
    """Raised when the daemon answers a request with an error status"""
    def __init__(self, path: str, status: int, message: str, details: Optional[Dict[str, Any]] = None):
        self.path = path
        self.status = status
        super().__init__(f"{path} failed with HTTP {status}: {message}", details)


class MalformedPayloadError(DaemonError):
    """Raised when a daemon payload cannot be decoded"""
    pass


class DaemonNotConnectedError(DaemonError):
    """Raised when an action requires a connected daemon and the link is down"""
    def __init__(self, action: str, status: str):
        self.action = action
        self.status = status
        super().__init__(f"Cannot {action} while daemon is {status}")
