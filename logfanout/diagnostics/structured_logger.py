"""
Diagnostic Logger - the best-effort channel logfanout reports its own problems on

Sink failures never propagate to the caller of a log operation. Instead they
are reported here, by default as one JSON object per line on stderr at
WARNING level and above.

Features:
- Standard diagnostic levels (DEBUG, INFO, WARNING, ERROR, CRITICAL)
- Structured fields next to the message
- JSON (NDJSON) and human-readable text formats
- Masking of credentials such as telemetry connection strings

Usage:
    from logfanout.diagnostics import get_logger

    logger = get_logger("logfanout.sinks.local")
    logger.warning("Failed to write log entry", path="/var/log/app.log", error="Permission denied")
"""

import json
import os
import sys
import traceback
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Optional, TextIO


class LogLevel(IntEnum):
    """Diagnostic levels, numerically compatible with Python logging"""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class StructuredLogger:
    """
    Structured logger writing one entry per line to a text stream.

    Example:
        logger = StructuredLogger("logfanout.telemetry", level=LogLevel.DEBUG)
        logger.debug("Telemetry SDK cached", path="/home/me/.logfanout/cache")

        # Output:
        # {"timestamp":"2024-01-20T10:15:30.123456+00:00","level":"DEBUG","logger":"logfanout.telemetry","message":"Telemetry SDK cached","path":"/home/me/.logfanout/cache"}
    """

    def __init__(
        self,
        name: str,
        level: LogLevel = LogLevel.WARNING,
        output_stream: Optional[TextIO] = None,
        format_style: str = "json",
    ):
        self.name = name
        self.level = level
        self._output_stream = output_stream
        self.format_style = format_style
        self._context: Dict[str, Any] = {}
        self._sensitive_keys = {
            "connection_string",
            "connectionstring",
            "instrumentationkey",
            "instrumentation_key",
            "password",
            "secret",
            "token",
            "api_key",
            "apikey",
            "credential",
        }

    @property
    def output_stream(self) -> TextIO:
        # Resolved lazily so that redirected stderr (pytest capture, click runner) is honoured
        return self._output_stream or sys.stderr

    @output_stream.setter
    def output_stream(self, stream: Optional[TextIO]):
        self._output_stream = stream

    def _should_log(self, level: LogLevel) -> bool:
        return level.value >= self.level.value

    def _sanitize_value(self, key: str, value: Any) -> Any:
        """
        Mask values of credential-like fields.

        Connection strings are reduced to their non-secret parts, everything
        else keeps the first and last two characters.
        """
        key_lower = str(key).lower()
        for sensitive_key in self._sensitive_keys:
            if sensitive_key in key_lower:
                if isinstance(value, str):
                    if "connection" in key_lower and "=" in value:
                        return mask_connection_string(value)
                    if len(value) <= 4:
                        return "***"
                    return f"{value[:2]}***{value[-2:]}"
                return "***REDACTED***"
        return value

    def _format_log(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.name,
            "logger": self.name,
            "message": message,
        }

        for key, value in self._context.items():
            log_entry[key] = self._sanitize_value(key, value)

        if extra:
            for key, value in extra.items():
                log_entry[key] = self._sanitize_value(key, value)

        if self.format_style == "json":
            return json.dumps(log_entry, default=str)

        level_str = f"[{log_entry['level']}]".ljust(10)
        extra_parts = [
            f"{key}={value}" for key, value in log_entry.items() if key not in ("timestamp", "level", "logger", "message")
        ]
        extra_str = " | " + " ".join(extra_parts) if extra_parts else ""
        return f"{log_entry['timestamp']} {level_str} {self.name.ljust(24)} | {message}{extra_str}"

    def _write(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: bool = False):
        if not self._should_log(level):
            return

        if exc_info:
            extra = dict(extra or {})
            exc_type, exc_value, exc_tb = sys.exc_info()
            if exc_type is not None:
                extra["exception"] = {
                    "type": exc_type.__name__,
                    "message": str(exc_value),
                    "traceback": "".join(traceback.format_tb(exc_tb)),
                }

        log_line = self._format_log(level, message, extra)

        try:
            self.output_stream.write(log_line + "\n")
            self.output_stream.flush()
        except Exception:
            # The diagnostic channel is best effort, a broken stream must not break logging
            if self.output_stream is not sys.stderr:
                try:
                    sys.stderr.write(log_line + "\n")
                except Exception:
                    pass

    def debug(self, message: str, **extra):
        self._write(LogLevel.DEBUG, message, extra)

    def info(self, message: str, **extra):
        self._write(LogLevel.INFO, message, extra)

    def warning(self, message: str, **extra):
        """
        Log warning message.

        Example:
            logger.warning("Rotation failed", path="app_20240120.log", error="Access denied")
        """
        self._write(LogLevel.WARNING, message, extra)

    def error(self, message: str, exc_info: bool = False, **extra):
        self._write(LogLevel.ERROR, message, extra, exc_info=exc_info)

    def critical(self, message: str, exc_info: bool = False, **extra):
        self._write(LogLevel.CRITICAL, message, extra, exc_info=exc_info)

    def with_context(self, **context) -> "StructuredLogger":
        """Return a copy of this logger that adds `context` to every entry."""
        new_logger = StructuredLogger(self.name, self.level, self._output_stream, self.format_style)
        new_logger._context = {**self._context, **context}
        new_logger._sensitive_keys = self._sensitive_keys
        return new_logger


def mask_connection_string(connection_string: Optional[str]) -> Optional[str]:
    """
    Mask the secret parts of a `Key=Value;...` connection string.

    Example:
        mask_connection_string("InstrumentationKey=1234-abcd;IngestionEndpoint=https://x")
        # 'InstrumentationKey=12***cd;IngestionEndpoint=https://x'
    """
    if not connection_string:
        return connection_string
    masked_parts = []
    for part in connection_string.split(";"):
        if "=" not in part:
            masked_parts.append(part)
            continue
        key, value = part.split("=", 1)
        if key.strip().lower().endswith("endpoint") or key.strip().lower() == "applicationid":
            masked_parts.append(part)
        elif len(value) <= 4:
            masked_parts.append(f"{key}=***")
        else:
            masked_parts.append(f"{key}={value[:2]}***{value[-2:]}")
    return ";".join(masked_parts)


class LoggerFactory:
    """
    Hands out named diagnostic loggers sharing one configuration.

    Defaults come from LOGFANOUT_DIAG_LEVEL and LOGFANOUT_DIAG_FORMAT when set.
    """

    _default_level = LogLevel.WARNING
    _default_format = "json"
    _default_stream: Optional[TextIO] = None
    _loggers: Dict[str, StructuredLogger] = {}
    _env_applied = False

    @classmethod
    def configure(cls, level: str = "WARNING", format_style: str = "json", stream: Optional[TextIO] = None):
        """
        Configure all current and future diagnostic loggers.

        Example:
            LoggerFactory.configure(level="DEBUG", format_style="text")
        """
        level_upper = level.upper()
        if level_upper not in LogLevel.__members__:
            raise ValueError(f"Invalid log level: {level}. Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        if format_style not in ("json", "text"):
            raise ValueError(f"Invalid format style: {format_style}. Must be 'json' or 'text'")

        cls._default_level = LogLevel[level_upper]
        cls._default_format = format_style
        if stream:
            cls._default_stream = stream
        cls._env_applied = True

        for logger in cls._loggers.values():
            logger.level = cls._default_level
            logger.format_style = cls._default_format
            logger.output_stream = cls._default_stream

    @classmethod
    def _apply_env(cls):
        cls._env_applied = True
        level = os.environ.get("LOGFANOUT_DIAG_LEVEL", "").upper()
        if level in LogLevel.__members__:
            cls._default_level = LogLevel[level]
        format_style = os.environ.get("LOGFANOUT_DIAG_FORMAT", "").lower()
        if format_style in ("json", "text"):
            cls._default_format = format_style

    @classmethod
    def get_logger(cls, name: str) -> StructuredLogger:
        if not cls._env_applied:
            cls._apply_env()
        if name not in cls._loggers:
            cls._loggers[name] = StructuredLogger(name, cls._default_level, cls._default_stream, cls._default_format)
        return cls._loggers[name]

    @classmethod
    def reset(cls):
        """Reset factory to defaults and clear all cached loggers. Used by tests."""
        cls._default_level = LogLevel.WARNING
        cls._default_format = "json"
        cls._default_stream = None
        cls._loggers = {}
        cls._env_applied = False
