"""
Telemetry Client Manager - lazy, cached remote trace client

Lifecycle:
    uninitialized --init()--> initialized --reset()--> uninitialized

`init` resolves the connection string, makes sure the SDK is cached and
imported, and constructs exactly one client. A second `init` is a no-op.
`send_trace` initializes implicitly when needed. No operation raises: failures
are reported on the diagnostic channel and signalled by returning False.

Usage:
    manager = TelemetryClientManager(TelemetryConfig())
    manager.init("InstrumentationKey=...;IngestionEndpoint=https://...")
    manager.send_trace("Import finished", Severity.INFORMATION, {"rows": "1200"})
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock

from beartype.typing import Any, Callable, Dict, Optional

from logfanout.caller import resolve_source_name
from logfanout.constants import FAULT_MAPPING
from logfanout.data_classes.configuration import TelemetryConfig
from logfanout.data_classes.log_entry import LogEntry, Severity, TelemetryStatus, TraceRecord
from logfanout.diagnostics import get_logger, mask_connection_string
from logfanout.exceptions import SendError
from logfanout.settings import CONNECTION_STRING_ENV_VAR
from logfanout.telemetry.connection import parse_connection_string, resolve_connection_string
from logfanout.telemetry.sdk_client import SdkTelemetryClient
from logfanout.telemetry.sdk_loader import acquire_sdk, bind_sdk, is_sdk_cached, is_sdk_installed

logger = get_logger("logfanout.telemetry")


@dataclass
class TelemetryState:
    initialized: bool = False
    sdk_loaded: bool = False
    connection_string: Optional[str] = None
    cache_path: Optional[Path] = None
    sdk_artifact_path: Optional[Path] = None
    client: Optional[Any] = None


class TelemetryClientManager:
    def __init__(
        self,
        config: Optional[TelemetryConfig] = None,
        client_factory: Callable = SdkTelemetryClient,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now().astimezone(),
    ):
        self.config = config or TelemetryConfig()
        self.client_factory = client_factory
        self.state = TelemetryState()
        self._sleep = sleep
        self._clock = clock
        self._lock = RLock()

    @property
    def initialized(self) -> bool:
        return self.state.initialized

    def init(self, connection_string: Optional[str] = None, show_progress: bool = False) -> bool:
        """
        Initialize the telemetry client once.

        Args:
            connection_string: takes priority over APPINSIGHTS_CONNECTION_STRING
            show_progress: show a progress bar while the SDK is downloaded

        Returns:
            True if a client is available afterwards
        """
        with self._lock:
            if self.state.initialized:
                return True

            resolved = resolve_connection_string(connection_string)
            if resolved is None:
                logger.warning(FAULT_MAPPING["missing_connection_string"].format(env_var=CONNECTION_STRING_ENV_VAR))
                return False

            client = None
            try:
                connection = parse_connection_string(resolved)
                if is_sdk_installed(self.config):
                    artifact_path = self.config.sdk_artifact_path if is_sdk_cached(self.config) else None
                else:
                    artifact_path = acquire_sdk(self.config, show_progress=show_progress)
                sdk = bind_sdk(self.config)
                client = self.client_factory(sdk, connection)
            except Exception as e:
                # LogFanoutError from the steps above, anything else from the SDK constructor
                self._fail(client, e)
                return False

            self.state = TelemetryState(
                initialized=True,
                sdk_loaded=True,
                connection_string=resolved,
                cache_path=self.config.cache_path,
                sdk_artifact_path=artifact_path,
                client=client,
            )
            logger.debug("Telemetry client initialized", connection_string=resolved)
            return True

    def _fail(self, client: Any, error: Exception):
        logger.warning(FAULT_MAPPING["telemetry_init_failed"].format(error=error))
        self._dispose(client)
        self.state = TelemetryState()

    @staticmethod
    def _dispose(client: Any):
        if client is None:
            return
        dispose = getattr(client, "dispose", None)
        if callable(dispose):
            try:
                dispose()
            except Exception as e:
                logger.debug("Telemetry client disposal failed", error=str(e))

    def reset(self):
        """Dispose the cached client (when supported) and clear all state."""
        with self._lock:
            self._dispose(self.state.client)
            self.state = TelemetryState()

    def build_record(
        self,
        message: str,
        severity: Severity = Severity.INFORMATION,
        properties: Optional[Dict[str, Any]] = None,
        source_name: Optional[str] = None,
    ) -> TraceRecord:
        """
        Build the outgoing trace record.

        Caller supplied properties are kept as they are; sdkVersion, sourceName
        and localTimestamp are only added when absent.
        """
        entry = LogEntry(message=message, severity=Severity.parse(severity), timestamp_local=self._clock())
        record_properties = {str(key): str(value) for key, value in (properties or {}).items()}
        record_properties.setdefault("sdkVersion", self.config.sdk_version_id)
        if "sourceName" not in record_properties:
            record_properties["sourceName"] = resolve_source_name(source_name)
        record_properties.setdefault("localTimestamp", entry.local_timestamp_text)
        return TraceRecord(
            message=entry.message,
            severity=entry.severity.to_remote(),
            timestamp_utc=entry.timestamp_local.astimezone(timezone.utc),
            properties=record_properties,
        )

    def send_trace(
        self,
        message: str,
        severity: Severity = Severity.INFORMATION,
        properties: Optional[Dict[str, Any]] = None,
        source_name: Optional[str] = None,
    ) -> bool:
        """
        Send one trace, flush it and wait `flush_delay_ms` before returning.

        The wait only makes it less likely that the process exits before the
        SDK finished sending; it is not a delivery guarantee.
        """
        if not self.state.initialized and not self.init():
            logger.warning(FAULT_MAPPING["telemetry_not_initialized"])
            return False

        try:
            record = self.build_record(message, severity, properties, source_name)
            self._deliver(self.state.client, record)
        except (SendError, ValueError) as e:
            logger.warning(FAULT_MAPPING["telemetry_send_failed"].format(error=e))
            return False

        if self.config.flush_delay_ms > 0:
            self._sleep(self.config.flush_delay_ms / 1000)
        return True

    @staticmethod
    def _deliver(client: Any, record: TraceRecord):
        try:
            client.track_trace(record)
            client.flush()
        except Exception as e:
            raise SendError(str(e) or type(e).__name__) from e

    def status(self) -> TelemetryStatus:
        state = self.state
        return TelemetryStatus(
            initialized=state.initialized,
            sdk_loaded=state.sdk_loaded,
            connection_string=mask_connection_string(state.connection_string),
            cache_path=state.cache_path,
            sdk_artifact_path=state.sdk_artifact_path,
            sdk_version=self.config.sdk_version_id,
        )
