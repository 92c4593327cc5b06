from logfanout.telemetry.client_manager import TelemetryClientManager, TelemetryState
from logfanout.telemetry.connection import ConnectionSettings, parse_connection_string, resolve_connection_string

__all__ = [
    "ConnectionSettings",
    "TelemetryClientManager",
    "TelemetryState",
    "parse_connection_string",
    "resolve_connection_string",
]
