"""
Device and encoder listings exposed by the daemon
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from daemon.exceptions import DaemonError, MalformedPayloadError
from .gate import ConnectionGate


@dataclass(frozen=True)
class VideoDevice:
    id: str
    label: str
    kind: str
    capabilities: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VideoDevice':
        _require(data, "id", "label")
        return cls(
            id=str(data["id"]),
            label=str(data["label"]),
            kind=str(data.get("kind", "unknown")),
            capabilities=dict(data.get("capabilities") or {}),
        )


@dataclass(frozen=True)
class AudioDevice:
    id: str
    label: str
    is_input: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AudioDevice':
        _require(data, "id", "label")
        return cls(id=str(data["id"]), label=str(data["label"]), is_input=bool(data.get("is_input", False)))


@dataclass(frozen=True)
class VideoEncoder:
    id: str
    name: str
    is_hardware: bool = False
    required_memory: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VideoEncoder':
        _require(data, "id", "name")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            is_hardware=bool(data.get("is_hardware", False)),
            required_memory=data.get("required_memory"),
        )


def _require(data: Any, *keys: str):
    if not isinstance(data, dict):
        raise MalformedPayloadError(f"Expected an object, got {type(data).__name__}")
    missing = [key for key in keys if key not in data]
    if missing:
        raise MalformedPayloadError(f"Missing fields: {', '.join(missing)}", {"payload": data})


class DeviceCatalog:
    """Fetches capture devices and encoders, only while the daemon is connected"""

    def __init__(self, client, gate: ConnectionGate):
        self.client = client
        self.gate = gate

    async def video_devices(self) -> List[VideoDevice]:
        return await self._list("list video devices", "Error fetching video devices",
                                self.client.get_video_devices, VideoDevice.from_dict)

    async def audio_devices(self) -> List[AudioDevice]:
        return await self._list("list audio devices", "Error fetching audio devices",
                                self.client.get_audio_devices, AudioDevice.from_dict)

    async def microphone_devices(self) -> List[AudioDevice]:
        return await self._list("list microphone devices", "Error fetching microphone devices",
                                self.client.get_microphone_devices, AudioDevice.from_dict)

    async def video_encoders(self) -> List[VideoEncoder]:
        return await self._list("list video encoders", "Error fetching video encoders",
                                self.client.get_video_encoders, VideoEncoder.from_dict)

    async def _list(self, action, title, fetch, decode) -> list:
        self.gate.require_connected(action)
        try:
            payload = await fetch()
            if not isinstance(payload, list):
                raise MalformedPayloadError(f"Expected a list for {action}")
            return [decode(entry) for entry in payload]
        except DaemonError as e:
            self.gate.notify_error(title, e)
            raise
