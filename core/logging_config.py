"""
Logging setup for the control surface.

Diagnostics go to stderr (colored in development, JSON in production) and to
rotating files under the log directory:

    control_surface.log  everything at the configured level
    errors.log           ERROR and above
    transport.log        daemon client, channels and the supervisor, always DEBUG

Malformed daemon payloads and transport failures are reported here and never
in the user-facing log buffer.
"""

import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any

# Loggers whose records also land in transport.log
TRANSPORT_LOGGERS = ("daemon", "core.connection_supervisor", "core.component", "telemetry.ingestor")


class ComponentFilter(logging.Filter):
    """Tags every record with its subsystem and the daemon it talks to"""

    def __init__(self, daemon_url: Optional[str] = None):
        super().__init__()
        self.daemon_url = daemon_url

    def filter(self, record: logging.LogRecord) -> bool:
        record.component = record.name.split(".", 1)[0]
        record.daemon_url = self.daemon_url
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log shipping"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "component": getattr(record, "component", record.name.split(".", 1)[0]),
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        daemon_url = getattr(record, "daemon_url", None)
        if daemon_url:
            entry["daemon_url"] = daemon_url

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_data"):
            entry.update(record.extra_data)

        return json.dumps(entry, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Short colored lines for a developer terminal"""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[92m',     # Green
        'WARNING': '\033[93m',  # Yellow
        'ERROR': '\033[91m',    # Red
        'CRITICAL': '\033[95m', # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, '')
        component = getattr(record, "component", record.module)
        stamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')

        # HH:MM:SS LEVEL component: message
        line = f"{stamp} {color}{record.levelname:<7}{self.RESET} {component}: {record.getMessage()}"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


class LoggingConfig:
    """Builds the root logger's handler set once per process"""

    def __init__(self,
                 log_level: str = "INFO",
                 log_dir: Optional[str] = None,
                 enable_file_logging: bool = True,
                 enable_console_logging: bool = True,
                 structured_logging: bool = False,
                 max_log_size_mb: int = 10,
                 backup_count: int = 5,
                 daemon_url: Optional[str] = None):
        """
        Args:
            log_level: Root level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for the rotating files (defaults to ./logs)
            enable_file_logging: Write control_surface.log, errors.log and transport.log
            enable_console_logging: Write to stderr
            structured_logging: JSON output instead of human-readable lines
            max_log_size_mb: Rotation threshold per file
            backup_count: Rotated files kept per log
            daemon_url: Daemon address stamped on every record
        """
        self.log_level = getattr(logging, log_level.upper())
        self.log_dir = Path(log_dir) if log_dir else Path("./logs")
        self.enable_file_logging = enable_file_logging
        self.enable_console_logging = enable_console_logging
        self.structured_logging = structured_logging
        self.max_bytes = max_log_size_mb * 1024 * 1024
        self.backup_count = backup_count
        self.context_filter = ComponentFilter(daemon_url)

        self._configured = False

    def configure(self) -> None:
        if self._configured:
            return

        root = logging.getLogger()
        root.handlers.clear()
        # transport.log wants DEBUG regardless of the console level
        root.setLevel(logging.DEBUG if self.enable_file_logging else self.log_level)

        if self.enable_console_logging:
            # stderr keeps diagnostics apart from the rendered view on stdout
            console = logging.StreamHandler(sys.stderr)
            console.setLevel(self.log_level)
            console.setFormatter(StructuredFormatter() if self.structured_logging
                                 else ColoredConsoleFormatter())
            self._attach(root, console)

        if self.enable_file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._attach(root, self._rotating("control_surface.log", self.log_level))
            self._attach(root, self._rotating("errors.log", logging.ERROR))

            transport = self._rotating("transport.log", logging.DEBUG)
            transport.addFilter(lambda record: record.name.startswith(TRANSPORT_LOGGERS))
            self._attach(root, transport)

        # aiohttp and asyncio are chatty at DEBUG
        for name in ("aiohttp", "aiohttp.access", "aiohttp.client", "asyncio"):
            logging.getLogger(name).setLevel(logging.WARNING)

        self._configured = True

        logging.getLogger(__name__).info("Logging configured", extra={
            "extra_data": {
                "log_level": logging.getLevelName(self.log_level),
                "log_dir": str(self.log_dir) if self.enable_file_logging else None,
                "structured": self.structured_logging,
            }
        })

    def _attach(self, root: logging.Logger, handler: logging.Handler):
        handler.addFilter(self.context_filter)
        root.addHandler(handler)

    def _rotating(self, filename: str, level: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        if self.structured_logging:
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(logging.Formatter(
                '[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
        return handler


_logging_config: Optional[LoggingConfig] = None


def setup_logging(config_dict: Optional[Dict[str, Any]] = None, daemon_url: Optional[str] = None) -> None:
    """
    Configure process-wide logging.

    Args:
        config_dict: Overrides for LoggingConfig arguments (see LOGGING_CONFIG)
        daemon_url: Daemon address stamped on every record
    """
    global _logging_config

    is_production = os.getenv("ENVIRONMENT", "development").lower() == "production"
    settings = {
        "log_level": os.getenv("LOG_LEVEL", "INFO" if is_production else "DEBUG"),
        "log_dir": os.getenv("LOG_DIR", "./logs"),
        "enable_file_logging": os.getenv("ENABLE_FILE_LOGGING", "true").lower() == "true",
        "enable_console_logging": os.getenv("ENABLE_CONSOLE_LOGGING", "true").lower() == "true",
        "structured_logging": is_production,
        **(config_dict or {}),
    }

    _logging_config = LoggingConfig(daemon_url=daemon_url, **settings)
    _logging_config.configure()


def get_logger(name: str) -> logging.Logger:
    """Logger for `name`, configuring logging with defaults on first use"""
    if _logging_config is None:
        setup_logging()
    return logging.getLogger(name)


def log_with_context(logger: logging.Logger, level: int, message: str, **context) -> None:
    """Log with key/value context that StructuredFormatter merges into the entry"""
    logger.log(level, message, extra={"extra_data": context})


def log_error_with_context(logger: logging.Logger, error: Exception,
                           operation: str, **context) -> None:
    log_with_context(logger, logging.ERROR, f"Error in {operation}: {error}",
                     operation=operation, error_type=type(error).__name__,
                     error_message=str(error), **context)
