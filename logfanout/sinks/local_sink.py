"""
Local Sink - appends formatted entries to one file per source and day

File layout:
    <directory>/<source>_<UTC yyyyMMdd>.<extension>

Line format:
    [2024-01-20 10:15:30.123] [Information] hello
"""

import os
import weakref
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock

from beartype.typing import Callable, Optional

from logfanout.caller import resolve_source_name
from logfanout.constants import FAULT_MAPPING
from logfanout.data_classes.configuration import LogConfig, SinkSwitches
from logfanout.data_classes.log_entry import LogEntry, Severity
from logfanout.diagnostics import get_logger
from logfanout.exceptions import LogIOError
from logfanout.settings import LOG_FILE_DATE_FORMAT, UNKNOWN_SOURCE_NAME
from logfanout.sinks.rotation import RotationManager

logger = get_logger("logfanout.sinks.local")


class LocalSink:
    # rotate-then-append must not interleave for the same file, shared by all sinks in the process.
    # An entry lives as long as some writer holds its lock.
    _path_locks: "weakref.WeakValueDictionary[Path, Lock]" = weakref.WeakValueDictionary()
    _path_locks_guard = Lock()

    def __init__(
        self,
        log_config: LogConfig,
        switches: SinkSwitches,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ):
        self.log_config = log_config
        self.switches = switches
        self._clock = clock

    @property
    def enabled(self) -> bool:
        return self.switches.local_enabled

    @staticmethod
    def safe_file_stem(source_name: str) -> str:
        """`source_name` with path separators replaced, so the file stays inside the log directory"""
        for separator in filter(None, {"/", "\\", os.sep, os.altsep}):
            source_name = source_name.replace(separator, "_")
        return source_name.strip() or UNKNOWN_SOURCE_NAME

    def resolve_path(self, source_name: str, timestamp_utc: datetime) -> Path:
        date = timestamp_utc.strftime(LOG_FILE_DATE_FORMAT)
        file_name = f"{self.safe_file_stem(source_name)}_{date}.{self.log_config.file_extension}"
        return self.log_config.directory / file_name

    @classmethod
    def _lock_for(cls, path: Path) -> Lock:
        with cls._path_locks_guard:
            lock = cls._path_locks.get(path)
            if lock is None:
                lock = cls._path_locks[path] = Lock()
            return lock

    def write(
        self,
        message: str,
        severity: Severity = Severity.INFORMATION,
        no_newline: bool = False,
        source_name: Optional[str] = None,
    ) -> bool:
        """
        Append one formatted line for `message` to today's file of the calling source.

        Returns True if the entry was written. Failures are reported as a
        warning on the diagnostic channel and never raised.
        """
        if not self.enabled:
            return False

        path = None
        try:
            timestamp_local = self._clock()
            entry = LogEntry(
                message=message,
                severity=Severity.parse(severity),
                source_name=resolve_source_name(source_name),
                timestamp_local=timestamp_local,
                timestamp_utc=timestamp_local.astimezone(timezone.utc),
            )
            path = self.resolve_path(entry.source_name, entry.timestamp_utc)
            line = entry.format_line(no_newline=no_newline)

            with self._lock_for(path):
                self._append(path, line)
            return True
        except LogIOError as e:
            logger.warning(FAULT_MAPPING["local_write_failed"].format(path=e.path, error=e.reason))
            return False
        except ValueError as e:
            # unknown severity name
            logger.warning(FAULT_MAPPING["local_write_failed"].format(path=path, error=e))
            return False

    def _append(self, path: Path, line: str):
        """Rotate if needed, then append `line`. Raises LogIOError."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            RotationManager(self.log_config.max_file_size_bytes).check_and_rotate(path)
            with open(path, "a", encoding=self.log_config.encoding) as f:
                f.write(line)
                f.flush()
        except (OSError, UnicodeError, LookupError) as e:
            raise LogIOError(path, str(e)) from e
