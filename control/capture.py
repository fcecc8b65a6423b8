"""
Capture controls: clip, status, clip listing and shutdown
"""

from typing import Any, Dict, List, Optional

from daemon.exceptions import DaemonError
from .gate import ConnectionGate


class CaptureControls:
    """Buttons of the control panel, each refused unless the daemon is connected"""

    def __init__(self, client, gate: ConnectionGate):
        self.client = client
        self.gate = gate

    async def status(self) -> Dict[str, Any]:
        return await self._call("query status", "Error fetching status", self.client.get_status)

    async def clip(self) -> Dict[str, Any]:
        result = await self._call("save clip", "Error saving clip", self.client.clip)
        if result and result.get("filename"):
            self.gate.notify_info("Clip saved", result["filename"])
        return result

    async def list_clips(self) -> List[Dict[str, Any]]:
        return await self._call("list clips", "Error listing clips", self.client.list_clips) or []

    async def set_capture_config(self, video_device_id: str, framerate: int,
                                 audio_device_id: Optional[str] = None) -> Any:
        if framerate <= 0:
            raise ValueError(f"framerate must be positive, got {framerate}")
        config = {"video_device_id": video_device_id, "framerate": framerate}
        if audio_device_id is not None:
            config["audio_device_id"] = audio_device_id
        return await self._call("set capture config", "Error updating capture config",
                                self.client.set_capture_config, config)

    async def stop_capture(self) -> Any:
        return await self._call("stop capture", "Error stopping capture", self.client.shutdown)

    async def _call(self, action: str, title: str, request, *args):
        self.gate.require_connected(action)
        try:
            return await request(*args)
        except DaemonError as e:
            self.gate.notify_error(title, e)
            raise
