import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from beartype.typing import Any, Dict, Optional

from logfanout.constants import FAULT_MAPPING
from logfanout.settings import LOG_LINE_TIMESTAMP_FORMAT


class Severity(enum.IntEnum):
    """Ordered severity levels shared by every sink"""

    VERBOSE = 0
    DEBUG = 1
    INFORMATION = 2
    WARNING = 3
    ERROR = 4
    CRITICAL = 5

    @property
    def label(self) -> str:
        """Name as written to log files, e.g. 'Information'"""
        return self.name.capitalize()

    def to_remote(self) -> "Severity":
        """The remote trace schema has no Debug level, it is sent as Verbose."""
        if self is Severity.DEBUG:
            return Severity.VERBOSE
        return self

    @classmethod
    def parse(cls, value) -> "Severity":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        name = str(value).strip().upper()
        # common short forms
        name = {"INFO": "INFORMATION", "WARN": "WARNING", "TRACE": "VERBOSE"}.get(name, name)
        if name not in cls.__members__:
            choices = ", ".join(level.label for level in cls)
            raise ValueError(FAULT_MAPPING["invalid_severity"].format(severity=value, choices=choices))
        return cls[name]


@dataclass
class LogEntry:
    """One log call, derived per call and never stored as a structure"""

    message: str
    severity: Severity = Severity.INFORMATION
    source_name: str = ""
    timestamp_local: datetime = field(default_factory=lambda: datetime.now().astimezone())
    timestamp_utc: Optional[datetime] = None
    extra_properties: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.timestamp_utc is None:
            self.timestamp_utc = self.timestamp_local.astimezone(timezone.utc)

    @property
    def local_timestamp_text(self) -> str:
        """Local time formatted as yyyy-MM-dd HH:mm:ss.fff"""
        millis = self.timestamp_local.microsecond // 1000
        return f"{self.timestamp_local.strftime(LOG_LINE_TIMESTAMP_FORMAT)}.{millis:03d}"

    def format_line(self, no_newline: bool = False) -> str:
        line = f"[{self.local_timestamp_text}] [{self.severity.label}] {self.message}"
        return line if no_newline else line + "\n"


@dataclass
class TraceRecord:
    """Record handed to the telemetry client, severity already in the remote schema"""

    message: str
    severity: Severity
    timestamp_utc: datetime
    properties: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LogConfigSnapshot:
    directory: Path
    file_extension: str
    encoding: str
    max_file_size_bytes: int
    console_enabled: bool
    local_enabled: bool
    telemetry_enabled: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "directory": str(self.directory),
            "file_extension": self.file_extension,
            "encoding": self.encoding,
            "max_file_size_bytes": self.max_file_size_bytes,
            "console_enabled": self.console_enabled,
            "local_enabled": self.local_enabled,
            "telemetry_enabled": self.telemetry_enabled,
        }


@dataclass(frozen=True)
class TelemetryStatus:
    """
    initialized - a usable client is cached
    sdk_loaded - the SDK module is imported into the process
    connection_string - masked form of the resolved connection string"""

    initialized: bool
    sdk_loaded: bool
    connection_string: Optional[str]
    cache_path: Optional[Path]
    sdk_artifact_path: Optional[Path]
    sdk_version: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "initialized": self.initialized,
            "sdk_loaded": self.sdk_loaded,
            "connection_string": self.connection_string,
            "cache_path": str(self.cache_path) if self.cache_path else None,
            "sdk_artifact_path": str(self.sdk_artifact_path) if self.sdk_artifact_path else None,
            "sdk_version": self.sdk_version,
        }
