"""
Data models for daemon log telemetry
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any

from daemon.exceptions import MalformedPayloadError


SYSTEM_SOURCE = "system"


class LogLevel(str, Enum):
    """Severity of a daemon log event"""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class LogEvent:
    """A single log line, either emitted by the daemon or synthesized locally"""
    timestamp: str
    level: LogLevel
    source: str
    message: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LogEvent':
        """Create LogEvent from a decoded daemon payload"""
        if not isinstance(data, dict):
            raise MalformedPayloadError(f"Log event must be an object, got {type(data).__name__}")

        missing = [key for key in ("timestamp", "level", "source", "message") if key not in data]
        if missing:
            raise MalformedPayloadError(f"Log event missing fields: {', '.join(missing)}",
                                        {"payload": data})

        timestamp = data["timestamp"]
        if not isinstance(timestamp, str) or not timestamp.strip():
            raise MalformedPayloadError("Log event timestamp must be a non-empty string",
                                        {"payload": data})

        try:
            level = LogLevel(str(data["level"]).lower())
        except ValueError:
            raise MalformedPayloadError(f"Unknown log level: {data['level']!r}", {"payload": data})

        return cls(
            timestamp=timestamp,
            level=level,
            source=str(data["source"]),
            message=str(data["message"]),
        )

    @classmethod
    def from_json(cls, raw: str) -> 'LogEvent':
        """Decode a LogEvent from a JSON document"""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise MalformedPayloadError(f"Log event is not valid JSON: {e}", {"raw": raw})
        return cls.from_dict(data)

    @classmethod
    def synthetic(cls, message: str, level: LogLevel = LogLevel.WARNING) -> 'LogEvent':
        """Build a locally generated entry describing a transport failure"""
        return cls(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            source=SYSTEM_SOURCE,
            message=message,
        )

    @property
    def is_synthetic(self) -> bool:
        return self.source == SYSTEM_SOURCE

    def display_time(self) -> str:
        """Timestamp formatted for display, raw value if it does not parse"""
        try:
            parsed = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        except ValueError:
            return self.timestamp
        return parsed.strftime("%Y-%m-%d %H:%M:%S")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "source": self.source,
            "message": self.message,
        }
