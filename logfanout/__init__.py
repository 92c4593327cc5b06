"""
logfanout - one log call, up to three sinks

Every `write_log` call goes to the console, to a rotating local file per
source and day, and to Application Insights as a trace. Each sink has its own
switch and none of them can make the call fail.

Usage:
    import logfanout

    logfanout.write_log("Import started")
    logfanout.write_log("Import failed:", err, severity="Error", foreground_color="red")

    logfanout.disable_console()
    logfanout.set_log_directory("/var/log/importer")
    logfanout.init_telemetry("InstrumentationKey=...;IngestionEndpoint=https://...")

Configuration:
    export LOGFANOUT_LOG_DIR=/var/log/importer
    export APPINSIGHTS_CONNECTION_STRING="InstrumentationKey=..."

    logfanout.configure(config_path="logfanout.yml")
"""

import atexit
from pathlib import Path

from beartype.typing import Any, Dict, Optional, Union

from logfanout._version import __version__
from logfanout.caller import resolve_source_name, set_source_name, source_name
from logfanout.config import FanoutConfig
from logfanout.constants import FAULT_MAPPING
from logfanout.context import LogContext
from logfanout.data_classes.log_entry import LogConfigSnapshot, Severity, TelemetryStatus
from logfanout.diagnostics import get_logger
from logfanout.dispatcher import LogDispatcher

logger = get_logger("logfanout")

__all__ = [
    "__version__",
    "LogContext",
    "LogDispatcher",
    "Severity",
    "configure",
    "disable_console",
    "disable_local",
    "disable_telemetry",
    "enable_console",
    "enable_local",
    "enable_telemetry",
    "get_context",
    "get_log_config",
    "get_telemetry_status",
    "init_telemetry",
    "reset_telemetry",
    "resolve_source_name",
    "send_telemetry_trace",
    "set_log_directory",
    "set_source_name",
    "source_name",
    "write_local_log",
    "write_log",
]

_context: Optional[LogContext] = None
_dispatcher: Optional[LogDispatcher] = None


def _install(context: LogContext) -> LogContext:
    global _context, _dispatcher
    if _context is not None and _context is not context:
        _context.telemetry.reset()
    _context = context
    _dispatcher = LogDispatcher(context)
    return context


def _load_default_context() -> LogContext:
    config = FanoutConfig.load()
    is_valid, error = FanoutConfig.validate(config)
    if is_valid:
        try:
            return LogContext.from_config(config)
        except (ValueError, LookupError) as e:
            error = str(e)
    logger.warning(FAULT_MAPPING["invalid_config_fallback"].format(error=error))
    return LogContext()


def get_context() -> LogContext:
    """
    The process-default context, created from environment configuration on
    first use. An invalid configuration is reported and replaced by defaults.
    """
    if _context is None:
        _install(_load_default_context())
    return _context


def _get_dispatcher() -> LogDispatcher:
    get_context()
    return _dispatcher


def configure(config_path: Optional[str] = None, **overrides) -> LogContext:
    """
    Replace the process-default context with one built from a config file,
    the environment and `overrides`. An initialized telemetry client is reset.

    Example:
        logfanout.configure("logfanout.yml", telemetry=False)
    """
    config = FanoutConfig.load(config_path, **overrides)
    is_valid, error = FanoutConfig.validate(config)
    if not is_valid:
        raise ValueError(f"Invalid logfanout configuration: {error}")
    return _install(LogContext.from_config(config))


def write_log(
    *message_parts,
    severity: Union[Severity, str] = Severity.INFORMATION,
    foreground_color: Optional[str] = None,
    background_color: Optional[str] = None,
    no_newline: bool = False,
    source_name: Optional[str] = None,
    properties: Optional[Dict[str, Any]] = None,
) -> Dict[str, bool]:
    return _get_dispatcher().write(
        *message_parts,
        severity=severity,
        foreground_color=foreground_color,
        background_color=background_color,
        no_newline=no_newline,
        source_name=source_name,
        properties=properties,
    )


def write_local_log(
    message: str,
    severity: Union[Severity, str] = Severity.INFORMATION,
    no_newline: bool = False,
    source_name: Optional[str] = None,
) -> bool:
    return _get_dispatcher().local.write(message, severity, no_newline, source_name=source_name)


def init_telemetry(connection_string: Optional[str] = None) -> bool:
    return get_context().telemetry.init(connection_string)


def send_telemetry_trace(
    message: str,
    severity: Union[Severity, str] = Severity.INFORMATION,
    properties: Optional[Dict[str, Any]] = None,
    source_name: Optional[str] = None,
) -> bool:
    return get_context().telemetry.send_trace(message, severity, properties, source_name=source_name)


def reset_telemetry():
    get_context().telemetry.reset()


def get_telemetry_status() -> TelemetryStatus:
    return get_context().get_telemetry_status()


def set_log_directory(path: Union[str, Path], create_if_missing: bool = True) -> bool:
    return get_context().set_log_directory(path, create_if_missing=create_if_missing)


def get_log_config() -> LogConfigSnapshot:
    return get_context().get_log_config()


def enable_console():
    get_context().enable_console()


def disable_console():
    get_context().disable_console()


def enable_local():
    get_context().enable_local()


def disable_local():
    get_context().disable_local()


def enable_telemetry():
    get_context().enable_telemetry()


def disable_telemetry():
    get_context().disable_telemetry()


@atexit.register
def _unload():
    if _context is not None:
        _context.telemetry.reset()
