"""
logfanout diagnostics

Where logfanout reports failures of its own sinks. Nothing logged here is a
user log entry; it is the warn-and-continue channel for rotation, file,
console and telemetry problems.

Configuration:
    export LOGFANOUT_DIAG_LEVEL=DEBUG
    export LOGFANOUT_DIAG_FORMAT=text
"""

from logfanout.diagnostics.structured_logger import LoggerFactory, LogLevel, StructuredLogger, mask_connection_string

__all__ = [
    "LoggerFactory",
    "LogLevel",
    "StructuredLogger",
    "get_logger",
    "mask_connection_string",
]


def get_logger(name: str) -> StructuredLogger:
    """Get a diagnostic logger, e.g. get_logger("logfanout.sinks.local")"""
    return LoggerFactory.get_logger(name)
