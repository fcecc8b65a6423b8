#!/usr/bin/env python3
"""
Main application - Supervises the capture daemon link and renders its live log
"""

import asyncio
import signal
import sys

from config import DAEMON_CONFIG, DISPLAY_CONFIG, LOGGING_CONFIG, TELEMETRY_CONFIG
from control import CaptureControls, ConnectionGate, DeviceCatalog, SettingsService
from core import ConnectionStore, ConnectionSupervisor
from core.config_validator import validate_startup_config, ConfigValidationError
from core.logging_config import setup_logging, get_logger, log_error_with_context
from daemon.client import DaemonClient
from events import EventBus, EventTypes, SystemEvent
from telemetry import LogBuffer, LogEvent, TelemetryIngestor


class ConsoleView:
    """Prints connection status changes, notifications and log lines"""

    def __init__(self, event_bus: EventBus, out=None):
        self.out = out or sys.stdout
        self.colors = DISPLAY_CONFIG["colors"]
        self.emojis = DISPLAY_CONFIG["emojis"]

        event_bus.on(EventTypes.CONNECTION_STATUS_CHANGED, self._on_status)
        event_bus.on(EventTypes.TELEMETRY_LOG_APPENDED, self._on_log)
        event_bus.on(EventTypes.TELEMETRY_BACKFILL_LOADED, self._on_backfill)
        event_bus.on(EventTypes.NOTIFICATION_ERROR, self._on_notification)
        event_bus.on(EventTypes.NOTIFICATION_INFO, self._on_notification)

    def _write(self, line: str):
        print(line, file=self.out, flush=True)

    def format_status(self, status: str, last_error: str = None) -> str:
        color = self.colors.get(status, "")
        line = f"{self.emojis.get(status, '')} {color}{status.capitalize()}{self.colors['reset']}"
        if last_error:
            line += f" ({last_error})"
        return line

    def format_log(self, event: LogEvent) -> str:
        color = self.colors.get(event.level.value, "")
        return f"{event.display_time()} {color}[{event.source}]{self.colors['reset']} {event.message}"

    def _on_status(self, event: SystemEvent):
        self._write(self.format_status(event.data["to_status"], event.data.get("last_error")))

    def _on_log(self, event: SystemEvent):
        self._write(self.format_log(LogEvent.from_dict(event.data)))

    def _on_backfill(self, event: SystemEvent):
        history = event.data.get("events") or []
        if not history:
            return
        self._write(f"--- {len(history)} earlier log lines ---")
        for log in history[-DISPLAY_CONFIG["tail_on_start"]:]:
            self._write(self.format_log(LogEvent.from_dict(log)))

    def _on_notification(self, event: SystemEvent):
        prefix = self.emojis["error"] + " " if event.type == EventTypes.NOTIFICATION_ERROR else ""
        description = event.data.get("description")
        self._write(f"{prefix}{event.data['title']}" + (f": {description}" if description else ""))


class ControlSurface:
    """Wires the daemon link, telemetry and collaborators together"""

    def __init__(self, base_url: str = None):
        self.logger = get_logger(__name__)

        self.event_bus = EventBus()
        self.client = DaemonClient(base_url=base_url)

        # Connection supervision
        self.store = ConnectionStore(event_bus=self.event_bus)
        self.supervisor = ConnectionSupervisor(self.client, self.store)

        # Telemetry
        self.ingestor = TelemetryIngestor(
            self.client,
            buffer=LogBuffer(TELEMETRY_CONFIG["max_logs"]),
            event_bus=self.event_bus,
        )

        # Collaborators gated on link health
        self.gate = ConnectionGate(self.store, self.event_bus)
        self.devices = DeviceCatalog(self.client, self.gate)
        self.settings = SettingsService(self.client, self.gate)
        self.capture = CaptureControls(self.client, self.gate)

        self.view = ConsoleView(self.event_bus)
        self.running = False

    async def start(self):
        if self.running:
            return
        self.logger.info(f"Starting control surface for {self.client.base_url}")

        self.event_bus.start()
        await self.supervisor.start()
        await self.ingestor.start()

        self.running = True
        self.event_bus.emit(EventTypes.SYSTEM_START, {"daemon_url": self.client.base_url}, source="main")

    async def stop(self):
        if not self.running:
            return
        self.logger.info("Stopping control surface")
        self.running = False

        for component in (self.ingestor, self.supervisor):
            try:
                await component.stop()
            except Exception as e:
                log_error_with_context(self.logger, e, f"stopping {component.name}")

        self.event_bus.emit(EventTypes.SYSTEM_STOP, {
            "supervisor": self.supervisor.get_stats(),
            "telemetry": self.ingestor.get_stats()
        }, source="main")
        await self.event_bus.shutdown()
        await self.client.close()

        self.logger.info("Control surface stopped")


async def run():
    surface = ControlSurface()
    stop_requested = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_requested.set)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    await surface.start()
    try:
        await stop_requested.wait()
    finally:
        print("\n\nShutting down gracefully...")
        await surface.stop()


if __name__ == "__main__":
    # Validate configuration first (before logging setup)
    try:
        validate_startup_config()
    except ConfigValidationError as e:
        print(f"❌ Configuration validation failed: {e}")
        print("Please fix the configuration errors and try again.")
        sys.exit(1)

    setup_logging(LOGGING_CONFIG, daemon_url=DAEMON_CONFIG["base_url"])
    logger = get_logger(__name__)
    logger.info(f"Starting control surface, daemon at {DAEMON_CONFIG['base_url']}")

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.error("Control surface crashed", exc_info=True, extra={
            "extra_data": {"error_type": type(e).__name__, "error_message": str(e)}
        })
        sys.exit(1)
