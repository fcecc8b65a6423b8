"""Tests for the collaborators gated on link health."""

from unittest.mock import AsyncMock, Mock

import pytest

from control import (
    AudioDevice,
    CaptureControls,
    ConnectionGate,
    DeviceCatalog,
    SettingsService,
    UserSettings,
    VideoDevice,
    VideoEncoder,
)
from daemon.exceptions import (
    DaemonNotConnectedError,
    DaemonRequestError,
    DaemonUnavailableError,
    MalformedPayloadError,
)
from events import EventTypes


SETTINGS = {
    "video_device_id": "cam0",
    "audio_device_id": "mic0",
    "video_encoder_id": "nvenc",
    "framerate": 60,
    "bitrate_kbps": 20000,
}


@pytest.fixture
def writer(store):
    return store.claim_writer("test")


@pytest.fixture
def gate(store, event_bus):
    return ConnectionGate(store, event_bus)


@pytest.fixture
def client():
    client = Mock()
    client.get_video_devices = AsyncMock(return_value=[
        {"id": "cam0", "label": "Capture Card", "kind": "capture_card", "capabilities": {"max_fps": 120}},
        {"id": "cam1", "label": "Webcam"},
    ])
    client.get_audio_devices = AsyncMock(return_value=[{"id": "out0", "label": "Speakers"}])
    client.get_microphone_devices = AsyncMock(return_value=[{"id": "mic0", "label": "Mic", "is_input": True}])
    client.get_video_encoders = AsyncMock(return_value=[
        {"id": "nvenc", "name": "NVENC", "is_hardware": True, "required_memory": "512MB"},
    ])
    client.get_settings = AsyncMock(return_value=dict(SETTINGS))
    client.update_settings = AsyncMock(side_effect=lambda settings: settings)
    client.get_status = AsyncMock(return_value={"buffering": True})
    client.clip = AsyncMock(return_value={"filename": "clip-0001.mp4"})
    client.list_clips = AsyncMock(return_value=[{"filename": "clip-0001.mp4"}])
    client.set_capture_config = AsyncMock(return_value=None)
    client.shutdown = AsyncMock(return_value=None)
    return client


def notifications(event_bus, event_type=EventTypes.NOTIFICATION_ERROR):
    return [e["data"] for e in event_bus.get_recent_events(event_type=event_type)]


class TestConnectionGate:

    def test_closed_until_connected(self, gate, writer):
        assert not gate.is_open
        writer.mark_connecting()
        assert not gate.is_open
        writer.mark_connected()
        assert gate.is_open

    def test_require_connected_names_action_and_status(self, gate):
        with pytest.raises(DaemonNotConnectedError) as excinfo:
            gate.require_connected("apply settings")
        assert str(excinfo.value) == "Cannot apply settings while daemon is disconnected"

    def test_notify_error(self, gate, event_bus):
        gate.notify_error("Error fetching settings", DaemonUnavailableError("refused"))
        assert notifications(event_bus) == [{
            "title": "Error fetching settings",
            "description": "refused",
            "error_type": "DaemonUnavailableError",
        }]


class TestDeviceCatalog:

    @pytest.mark.asyncio
    async def test_refused_while_disconnected(self, gate, client):
        catalog = DeviceCatalog(client, gate)
        with pytest.raises(DaemonNotConnectedError):
            await catalog.video_devices()
        client.get_video_devices.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_decodes_devices(self, gate, writer, client):
        writer.mark_connected()
        catalog = DeviceCatalog(client, gate)

        video = await catalog.video_devices()
        audio = await catalog.audio_devices()
        microphones = await catalog.microphone_devices()
        encoders = await catalog.video_encoders()

        assert video[0] == VideoDevice("cam0", "Capture Card", "capture_card", {"max_fps": 120})
        assert video[1].kind == "unknown"
        assert audio == [AudioDevice("out0", "Speakers", False)]
        assert microphones[0].is_input
        assert encoders == [VideoEncoder("nvenc", "NVENC", True, "512MB")]

    @pytest.mark.asyncio
    async def test_malformed_listing_notifies_and_raises(self, gate, writer, client, event_bus):
        writer.mark_connected()
        client.get_video_encoders.return_value = [{"id": "x264"}]
        catalog = DeviceCatalog(client, gate)

        with pytest.raises(MalformedPayloadError):
            await catalog.video_encoders()
        assert notifications(event_bus)[0]["title"] == "Error fetching video encoders"

    @pytest.mark.asyncio
    async def test_non_list_payload_is_malformed(self, gate, writer, client):
        writer.mark_connected()
        client.get_audio_devices.return_value = {"devices": []}
        with pytest.raises(MalformedPayloadError):
            await DeviceCatalog(client, gate).audio_devices()


class TestSettingsService:

    @pytest.mark.asyncio
    async def test_fetch(self, gate, writer, client):
        writer.mark_connected()
        service = SettingsService(client, gate)

        settings = await service.fetch()

        assert settings == UserSettings(**SETTINGS)
        assert service.current is settings

    @pytest.mark.asyncio
    async def test_apply_refused_while_disconnected(self, gate, client):
        service = SettingsService(client, gate)
        with pytest.raises(DaemonNotConnectedError):
            await service.apply(UserSettings(**SETTINGS))
        client.update_settings.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_apply_validates_before_sending(self, gate, writer, client):
        writer.mark_connected()
        service = SettingsService(client, gate)
        with pytest.raises(ValueError):
            await service.apply(UserSettings(**{**SETTINGS, "framerate": 0}))
        with pytest.raises(ValueError):
            await service.apply(UserSettings(**{**SETTINGS, "video_device_id": ""}))
        client.update_settings.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_apply_success_notifies(self, gate, writer, client, event_bus):
        writer.mark_connected()
        service = SettingsService(client, gate)
        wanted = UserSettings(**{**SETTINGS, "framerate": 30})

        applied = await service.apply(wanted)

        assert applied == wanted
        client.update_settings.assert_awaited_once_with(wanted.to_dict())
        assert notifications(event_bus, EventTypes.NOTIFICATION_INFO)[0]["title"] == "Settings updated"

    @pytest.mark.asyncio
    async def test_apply_failure_notifies_and_raises(self, gate, writer, client, event_bus):
        writer.mark_connected()
        client.update_settings.side_effect = DaemonRequestError(
            "/settings", 400, "selected video device is not available")
        service = SettingsService(client, gate)

        with pytest.raises(DaemonRequestError):
            await service.apply(UserSettings(**SETTINGS))

        assert service.current is None
        errors = notifications(event_bus)
        assert errors[0]["title"] == "Error updating settings"
        assert "selected video device is not available" in errors[0]["description"]

    def test_settings_from_dict_requires_fields(self):
        with pytest.raises(MalformedPayloadError):
            UserSettings.from_dict({"video_device_id": "cam0"})
        with pytest.raises(MalformedPayloadError):
            UserSettings.from_dict({**SETTINGS, "framerate": "fast"})


class TestCaptureControls:

    @pytest.mark.asyncio
    async def test_clip_notifies_filename(self, gate, writer, client, event_bus):
        writer.mark_connected()
        result = await CaptureControls(client, gate).clip()

        assert result["filename"] == "clip-0001.mp4"
        info = notifications(event_bus, EventTypes.NOTIFICATION_INFO)
        assert info == [{"title": "Clip saved", "description": "clip-0001.mp4"}]

    @pytest.mark.asyncio
    async def test_every_action_is_gated(self, gate, client):
        controls = CaptureControls(client, gate)
        for action in (controls.status, controls.clip, controls.list_clips, controls.stop_capture):
            with pytest.raises(DaemonNotConnectedError):
                await action()
        client.shutdown.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_set_capture_config(self, gate, writer, client):
        writer.mark_connected()
        controls = CaptureControls(client, gate)

        await controls.set_capture_config("cam0", 60, audio_device_id="mic0")
        client.set_capture_config.assert_awaited_once_with(
            {"video_device_id": "cam0", "framerate": 60, "audio_device_id": "mic0"})

        with pytest.raises(ValueError):
            await controls.set_capture_config("cam0", 0)

    @pytest.mark.asyncio
    async def test_failure_notifies(self, gate, writer, client, event_bus):
        writer.mark_connected()
        client.list_clips.side_effect = DaemonUnavailableError("refused")

        with pytest.raises(DaemonUnavailableError):
            await CaptureControls(client, gate).list_clips()
        assert notifications(event_bus)[0]["title"] == "Error listing clips"

    @pytest.mark.asyncio
    async def test_status_and_stop(self, gate, writer, client):
        writer.mark_connected()
        controls = CaptureControls(client, gate)
        assert await controls.status() == {"buffering": True}
        await controls.stop_capture()
        client.shutdown.assert_awaited_once()
