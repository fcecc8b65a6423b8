"""
Configuration validation module.

Validates configuration settings on startup to catch misconfigurations
early and report them with clear messages before any connection is made.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Any, Optional, Tuple
from urllib.parse import urlparse


VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


class ConfigValidationError(Exception):
    """Raised when configuration validation fails"""
    pass


class ConfigValidator:
    """Validates application configuration dictionaries"""

    def __init__(self,
                 daemon_config: Optional[Dict[str, Any]] = None,
                 supervisor_config: Optional[Dict[str, Any]] = None,
                 telemetry_config: Optional[Dict[str, Any]] = None,
                 logging_config: Optional[Dict[str, Any]] = None):
        if None in (daemon_config, supervisor_config, telemetry_config, logging_config):
            from config import DAEMON_CONFIG, SUPERVISOR_CONFIG, TELEMETRY_CONFIG, LOGGING_CONFIG
            daemon_config = daemon_config if daemon_config is not None else DAEMON_CONFIG
            supervisor_config = supervisor_config if supervisor_config is not None else SUPERVISOR_CONFIG
            telemetry_config = telemetry_config if telemetry_config is not None else TELEMETRY_CONFIG
            logging_config = logging_config if logging_config is not None else LOGGING_CONFIG

        self.daemon_config = daemon_config
        self.supervisor_config = supervisor_config
        self.telemetry_config = telemetry_config
        self.logging_config = logging_config

        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        """
        Validate all configuration settings.

        Returns:
            Tuple of (is_valid, errors, warnings)
        """
        self.errors.clear()
        self.warnings.clear()

        self._validate_daemon_config()
        self._validate_supervisor_config()
        self._validate_telemetry_config()
        self._validate_logging_config()

        is_valid = len(self.errors) == 0
        return is_valid, self.errors.copy(), self.warnings.copy()

    def _validate_daemon_config(self):
        base_url = self.daemon_config.get("base_url", "")
        parsed = urlparse(base_url)

        if parsed.scheme not in ("http", "https"):
            self.errors.append(f"Daemon URL must use http or https, got '{base_url}'")
        elif not parsed.hostname:
            self.errors.append(f"Daemon URL has no host: '{base_url}'")
        elif parsed.hostname not in LOCAL_HOSTS:
            self.warnings.append(f"Daemon URL points at non-local host '{parsed.hostname}'")

        timeout = self.daemon_config.get("request_timeout", 0)
        if timeout <= 0:
            self.errors.append(f"Daemon request timeout must be positive, got {timeout}")
        elif timeout > 60:
            self.warnings.append(f"Daemon request timeout of {timeout}s delays failure detection")

        endpoints = self.daemon_config.get("endpoints", {})
        for required in ("status", "connection", "logs", "recent_logs"):
            if required not in endpoints:
                self.errors.append(f"Missing daemon endpoint '{required}'")
        for name, path in endpoints.items():
            if not str(path).startswith("/"):
                self.errors.append(f"Endpoint '{name}' must be an absolute path, got '{path}'")

    def _validate_supervisor_config(self):
        interval = self.supervisor_config.get("poll_interval", 0)
        if interval <= 0:
            self.errors.append(f"Poll interval must be positive, got {interval}")
        elif interval < 0.5:
            self.warnings.append(f"Poll interval {interval}s will probe the daemon very frequently")

        if not self.supervisor_config.get("lost_message"):
            self.errors.append("Supervisor lost_message must not be empty")

    def _validate_telemetry_config(self):
        max_logs = self.telemetry_config.get("max_logs", 0)
        if not isinstance(max_logs, int) or max_logs <= 0:
            self.errors.append(f"max_logs must be a positive integer, got {max_logs!r}")

        retry = self.telemetry_config.get("retry_interval", 0)
        if retry <= 0:
            self.errors.append(f"Log stream retry interval must be positive, got {retry}")

    def _validate_logging_config(self):
        level = str(self.logging_config.get("log_level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            self.errors.append(f"Invalid log level '{level}'. Valid levels: {', '.join(VALID_LOG_LEVELS)}")

        if self.logging_config.get("enable_file_logging", False):
            log_path = Path(self.logging_config.get("log_dir", "./logs"))
            parent_dir = log_path.parent
            if not parent_dir.exists():
                self.errors.append(f"Log directory parent '{parent_dir}' does not exist")
            elif not os.access(parent_dir, os.W_OK):
                self.errors.append(f"Log directory parent '{parent_dir}' is not writable")

        if self.logging_config.get("max_log_size_mb", 1) <= 0:
            self.errors.append("max_log_size_mb must be positive")


def validate_startup_config(**configs) -> List[str]:
    """
    Validate configuration before starting the application.

    Returns:
        List of warnings (errors raise)

    Raises:
        ConfigValidationError: if any setting is invalid
    """
    logger = logging.getLogger(__name__)
    validator = ConfigValidator(**configs)
    is_valid, errors, warnings = validator.validate_all()

    for warning in warnings:
        logger.warning(f"Config warning: {warning}")

    if not is_valid:
        raise ConfigValidationError("; ".join(errors))

    return warnings
