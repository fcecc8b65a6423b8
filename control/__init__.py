"""
Daemon-dependent actions gated on connection status
"""

from .gate import ConnectionGate
from .devices import DeviceCatalog, VideoDevice, AudioDevice, VideoEncoder
from .settings import SettingsService, UserSettings
from .capture import CaptureControls

__all__ = [
    "ConnectionGate",
    "DeviceCatalog",
    "VideoDevice",
    "AudioDevice",
    "VideoEncoder",
    "SettingsService",
    "UserSettings",
    "CaptureControls",
]
