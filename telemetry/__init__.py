"""
Live daemon log telemetry
"""

from .models import LogEvent, LogLevel
from .log_buffer import LogBuffer, MAX_LOGS
from .ingestor import TelemetryIngestor, StreamState

__all__ = ["LogEvent", "LogLevel", "LogBuffer", "MAX_LOGS", "TelemetryIngestor", "StreamState"]
