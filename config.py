"""
Centralized configuration for the daemon link, telemetry and display
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Daemon endpoints
DAEMON_CONFIG = {
    "base_url": os.getenv("DAEMON_URL", "http://localhost:43123"),
    "request_timeout": float(os.getenv("DAEMON_TIMEOUT", "10")),  # seconds
    "endpoints": {
        "status": "/status",
        "connection": "/connection",  # SSE: "connected" then periodic "ping"
        "logs": "/logs",  # SSE: "log" events carrying one LogEvent each
        "recent_logs": "/logs/recent",
        "video_devices": "/devices/video",
        "audio_devices": "/devices/audio",
        "microphone_devices": "/devices/microphone",
        "video_encoders": "/encoders/video",
        "settings": "/settings",
        "capture_config": "/config/capture",
        "clip": "/clip",
        "clips": "/clips",
        "shutdown": "/shutdown",
    }
}

# Connection supervisor
SUPERVISOR_CONFIG = {
    "poll_interval": float(os.getenv("POLL_INTERVAL", "2.0")),  # seconds between liveness probes
    "reopen_channel_on_probe": True,  # reopen the status channel once a probe succeeds
    "lost_message": "Connection lost"
}

# Telemetry ingestion
TELEMETRY_CONFIG = {
    "max_logs": int(os.getenv("MAX_LOGS", "1000")),
    "retry_interval": float(os.getenv("LOG_RETRY_INTERVAL", "2.0")),  # seconds before reopening the log stream
    "log_event_name": "log",
    "disconnected_message": "Log stream disconnected",
    "backfill_failed_message": "Failed to load recent logs"
}

# Display settings
DISPLAY_CONFIG = {
    "colors": {
        "connected": "\033[92m",     # Green
        "connecting": "\033[93m",    # Yellow
        "disconnected": "\033[91m",  # Red
        "debug": "\033[90m",         # Grey
        "info": "\033[94m",          # Blue
        "warning": "\033[93m",       # Yellow
        "error": "\033[91m",         # Red
        "reset": "\033[0m"           # Reset
    },
    "emojis": {
        "connected": "🟢",
        "connecting": "🟡",
        "disconnected": "🔴",
        "error": "❌",
        "stop": "🛑"
    },
    "tail_on_start": 20  # Log lines printed when the view attaches
}

# Logging configuration
LOGGING_CONFIG = {
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "log_dir": os.getenv("LOG_DIR", "./logs"),
    "enable_file_logging": os.getenv("ENABLE_FILE_LOGGING", "true").lower() == "true",
    "enable_console_logging": os.getenv("ENABLE_CONSOLE_LOGGING", "true").lower() == "true",
    "structured_logging": os.getenv("ENVIRONMENT", "development").lower() == "production",
    "max_log_size_mb": int(os.getenv("MAX_LOG_SIZE_MB", "10")),
    "backup_count": int(os.getenv("LOG_BACKUP_COUNT", "5")),
}
