"""
HTTP client for the local capture daemon
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from config import DAEMON_CONFIG
from telemetry.models import LogEvent
from .exceptions import (
    DaemonUnavailableError,
    DaemonRequestError,
    MalformedPayloadError,
)
from .sse import EventChannel

logger = logging.getLogger(__name__)


class DaemonClient:
    """Thin async client over the daemon's local REST + SSE endpoints"""

    def __init__(self,
                 base_url: Optional[str] = None,
                 timeout: Optional[float] = None,
                 endpoints: Optional[Dict[str, str]] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize daemon client

        Args:
            base_url: Daemon root URL (defaults to DAEMON_CONFIG["base_url"])
            timeout: Per-request timeout in seconds
            endpoints: Overrides for endpoint paths
            session: Externally owned session; not closed by this client
        """
        self.base_url = (base_url or DAEMON_CONFIG["base_url"]).rstrip("/")
        self.timeout = timeout if timeout is not None else DAEMON_CONFIG["request_timeout"]
        self.endpoints = {**DAEMON_CONFIG["endpoints"], **(endpoints or {})}

        self._session = session
        self._owns_session = session is None

        # Stats
        self.request_count = 0
        self.failed_requests = 0

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}{self.endpoints[endpoint]}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"Content-Type": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def _request(self, method: str, endpoint: str, payload: Any = None) -> Any:
        """Issue one request and decode its JSON reply (None for empty bodies)"""
        url = self.url_for(endpoint)
        session = self._get_session()
        self.request_count += 1

        try:
            async with session.request(method, url, json=payload) as response:
                try:
                    body = await response.text()
                except UnicodeDecodeError as e:
                    self.failed_requests += 1
                    raise MalformedPayloadError(f"Undecodable reply from {url}: {e}",
                                                {"method": method, "url": url}) from e

                if response.status >= 400:
                    self.failed_requests += 1
                    raise DaemonRequestError(
                        self.endpoints[endpoint],
                        response.status,
                        _error_message(body),
                        {"method": method, "url": url},
                    )

        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self.failed_requests += 1
            message = str(e) or type(e).__name__
            raise DaemonUnavailableError(f"Daemon unreachable at {url}: {message}",
                                         {"method": method, "url": url}) from e

        if not body.strip():
            return None

        try:
            return json.loads(body)
        except ValueError as e:
            self.failed_requests += 1
            raise MalformedPayloadError(f"Invalid JSON from {url}: {e}", {"body": body[:200]}) from e

    # Core subsystem endpoints

    async def probe(self) -> Dict[str, Any]:
        """Liveness probe; any successful reply means the daemon is up"""
        return await self._request("GET", "status") or {}

    async def fetch_recent_logs(self) -> List[LogEvent]:
        """One-shot backfill of recent daemon log events, in server order"""
        payload = await self._request("GET", "recent_logs")
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise MalformedPayloadError("Recent logs payload must be a list",
                                        {"type": type(payload).__name__})

        events = []
        for entry in payload:
            try:
                events.append(LogEvent.from_dict(entry))
            except MalformedPayloadError as e:
                logger.debug(f"Dropping malformed backfill entry: {e}")
        return events

    async def open_connection_channel(self) -> EventChannel:
        return await EventChannel(self._get_session(), self.url_for("connection"), self.timeout).open()

    async def open_log_channel(self) -> EventChannel:
        return await EventChannel(self._get_session(), self.url_for("logs"), self.timeout).open()

    # Collaborator endpoints

    async def get_video_devices(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "video_devices") or []

    async def get_audio_devices(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "audio_devices") or []

    async def get_microphone_devices(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "microphone_devices") or []

    async def get_video_encoders(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "video_encoders") or []

    async def get_settings(self) -> Dict[str, Any]:
        return await self._request("GET", "settings")

    async def update_settings(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "settings", settings)

    async def set_capture_config(self, config: Dict[str, Any]) -> Any:
        return await self._request("POST", "capture_config", config)

    async def get_status(self) -> Dict[str, Any]:
        return await self._request("GET", "status") or {}

    async def clip(self) -> Dict[str, Any]:
        return await self._request("POST", "clip")

    async def list_clips(self) -> List[Dict[str, Any]]:
        return await self._request("GET", "clips") or []

    async def shutdown(self) -> Any:
        return await self._request("POST", "shutdown")

    def get_stats(self) -> Dict[str, Any]:
        return {
            "base_url": self.base_url,
            "request_count": self.request_count,
            "failed_requests": self.failed_requests,
        }

    async def close(self):
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None


def _error_message(body: str) -> str:
    """Extract the daemon's {"message": ...} error text when present"""
    try:
        data = json.loads(body)
    except ValueError:
        return body[:200] or "Unknown Error"
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return body[:200] or "Unknown Error"
