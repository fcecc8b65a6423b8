"""
User settings read/write against the daemon
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from daemon.exceptions import DaemonError, MalformedPayloadError
from .gate import ConnectionGate


@dataclass(frozen=True)
class UserSettings:
    """Capture settings persisted by the daemon"""
    video_device_id: str
    audio_device_id: str
    video_encoder_id: str
    framerate: int = 60
    bitrate_kbps: int = 20_000

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserSettings':
        if not isinstance(data, dict):
            raise MalformedPayloadError(f"Settings must be an object, got {type(data).__name__}")
        try:
            return cls(
                video_device_id=str(data["video_device_id"]),
                audio_device_id=str(data["audio_device_id"]),
                video_encoder_id=str(data["video_encoder_id"]),
                framerate=int(data["framerate"]),
                bitrate_kbps=int(data["bitrate_kbps"]),
            )
        except KeyError as e:
            raise MalformedPayloadError(f"Settings missing field {e}", {"payload": data})
        except (TypeError, ValueError) as e:
            raise MalformedPayloadError(f"Invalid settings value: {e}", {"payload": data})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self):
        """Reject values the daemon would never accept"""
        if self.framerate <= 0:
            raise ValueError(f"framerate must be positive, got {self.framerate}")
        if self.bitrate_kbps <= 0:
            raise ValueError(f"bitrate_kbps must be positive, got {self.bitrate_kbps}")
        for name in ("video_device_id", "audio_device_id", "video_encoder_id"):
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty")


class SettingsService:
    """Fetches and applies settings; failures become user notifications"""

    def __init__(self, client, gate: ConnectionGate):
        self.client = client
        self.gate = gate
        self.current: Optional[UserSettings] = None

    async def fetch(self) -> UserSettings:
        self.gate.require_connected("fetch settings")
        try:
            self.current = UserSettings.from_dict(await self.client.get_settings())
        except DaemonError as e:
            self.gate.notify_error("Error fetching settings", e)
            raise
        return self.current

    async def apply(self, settings: UserSettings) -> UserSettings:
        settings.validate()
        self.gate.require_connected("apply settings")
        try:
            reply = await self.client.update_settings(settings.to_dict())
            self.current = UserSettings.from_dict(reply) if reply else settings
        except DaemonError as e:
            self.gate.notify_error("Error updating settings", e)
            raise

        self.gate.notify_info("Settings updated", "capture restarted with new settings")
        return self.current
