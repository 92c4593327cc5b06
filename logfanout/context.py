"""
LogContext - the one object holding everything a log call reads or mutates

Sink switches, the local file configuration and the telemetry client manager
live here instead of in module globals. The dispatcher receives a context by
injection; `logfanout`'s module level functions use a process-default one.
"""

from pathlib import Path

from beartype.typing import Any, Dict, Optional, TextIO, Union

from logfanout.constants import FAULT_MAPPING
from logfanout.data_classes.configuration import LogConfig, SinkSwitches, TelemetryConfig
from logfanout.data_classes.log_entry import LogConfigSnapshot, TelemetryStatus
from logfanout.diagnostics import get_logger
from logfanout.telemetry.client_manager import TelemetryClientManager

logger = get_logger("logfanout.context")


class LogContext:
    def __init__(
        self,
        log_config: Optional[LogConfig] = None,
        telemetry_config: Optional[TelemetryConfig] = None,
        switches: Optional[SinkSwitches] = None,
        console_stream: Optional[TextIO] = None,
        telemetry: Optional[TelemetryClientManager] = None,
    ):
        self.log_config = log_config or LogConfig()
        self.switches = switches or SinkSwitches()
        self.console_stream = console_stream
        self.telemetry = telemetry or TelemetryClientManager(telemetry_config or TelemetryConfig())

    @property
    def telemetry_config(self) -> TelemetryConfig:
        return self.telemetry.config

    @classmethod
    def from_config(cls, config: Dict[str, Any], console_stream: Optional[TextIO] = None) -> "LogContext":
        """Build a context from a dictionary as returned by FanoutConfig.load()"""
        log_config = LogConfig(
            directory=config["log_directory"],
            file_extension=config["file_extension"],
            encoding=config["encoding"],
            max_file_size_bytes=config["max_file_size_bytes"],
        )
        telemetry_kwargs = {}
        if config.get("cache_root"):
            telemetry_kwargs["cache_root_path"] = Path(config["cache_root"])
        if config.get("flush_delay_ms") is not None:
            telemetry_kwargs["flush_delay_ms"] = int(config["flush_delay_ms"])
        switches = SinkSwitches(
            console_enabled=bool(config.get("console", True)),
            local_enabled=bool(config.get("local", True)),
            telemetry_enabled=bool(config.get("telemetry", True)),
        )
        return cls(
            log_config=log_config,
            telemetry_config=TelemetryConfig(**telemetry_kwargs),
            switches=switches,
            console_stream=console_stream,
        )

    def enable_console(self):
        self.switches.console_enabled = True

    def disable_console(self):
        self.switches.console_enabled = False

    def enable_local(self):
        self.switches.local_enabled = True

    def disable_local(self):
        self.switches.local_enabled = False

    def enable_telemetry(self):
        self.switches.telemetry_enabled = True

    def disable_telemetry(self):
        self.switches.telemetry_enabled = False

    def set_log_directory(self, path: Union[str, Path], create_if_missing: bool = True) -> bool:
        """
        Point the local sink at another directory.

        Args:
            path: new directory, relative paths are made absolute
            create_if_missing: create missing parent and leaf directories,
                otherwise the directory must already exist

        Returns:
            True if the directory is in use afterwards
        """
        directory = Path(path).expanduser().absolute()
        if directory.exists() and not directory.is_dir():
            logger.warning(FAULT_MAPPING["directory_not_a_directory"].format(path=directory))
            return False
        if not directory.exists():
            if not create_if_missing:
                logger.warning(FAULT_MAPPING["directory_missing"].format(path=directory))
                return False
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(FAULT_MAPPING["directory_create_failed"].format(path=directory, error=e))
                return False
        self.log_config.directory = directory
        return True

    def get_log_config(self) -> LogConfigSnapshot:
        return LogConfigSnapshot(
            directory=self.log_config.directory,
            file_extension=self.log_config.file_extension,
            encoding=self.log_config.encoding,
            max_file_size_bytes=self.log_config.max_file_size_bytes,
            console_enabled=self.switches.console_enabled,
            local_enabled=self.switches.local_enabled,
            telemetry_enabled=self.switches.telemetry_enabled,
        )

    def get_telemetry_status(self) -> TelemetryStatus:
        return self.telemetry.status()
