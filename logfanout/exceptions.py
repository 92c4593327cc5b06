class LogFanoutError(Exception):
    """Base class for errors raised inside logfanout sinks.

    None of these reach the caller of a logging operation; every sink catches
    them at its boundary and degrades to a no-op plus a diagnostic warning.
    """


class ConfigurationError(LogFanoutError):
    """Missing or malformed configuration, e.g. a blank connection string."""


class LogIOError(LogFanoutError):
    """Directory or file creation, rotation or append failed."""

    def __init__(self, path, reason=""):
        self.path = path
        self.reason = reason
        super().__init__(f"I/O failure on {path}. {reason}")


class NetworkError(LogFanoutError):
    """Telemetry SDK artifact could not be downloaded."""


class SdkLoadError(LogFanoutError):
    """SDK artifact is present but could not be imported or used."""


class SendError(LogFanoutError):
    """Remote dispatch failed after initialization."""
