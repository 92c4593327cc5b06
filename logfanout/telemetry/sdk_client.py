"""
Application Insights client wrapper

The SDK builds the envelopes (instrumentation key, tags, severity level); this
module owns the transport. A batch that the ingestion endpoint does not accept
is dropped and reported as SendError, never put back for another attempt, so
`flush` costs at most one request per batch.
"""

import importlib
import json
from datetime import datetime, timezone
from threading import Lock
from types import ModuleType

import requests
from beartype.typing import Any, List, Optional
from requests.exceptions import RequestException

from logfanout.constants import FAULT_MAPPING
from logfanout.data_classes.log_entry import Severity, TraceRecord
from logfanout.exceptions import SendError
from logfanout.settings import DEFAULT_SEND_TIMEOUT, SEND_BUFFER_SIZE
from logfanout.telemetry.connection import ConnectionSettings


def envelope_time(timestamp_utc: datetime) -> str:
    """Envelope time in the SDK's format, e.g. 2024-01-20T09:15:30.123456Z"""
    return timestamp_utc.astimezone(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


class TrackSender:
    """POSTs envelope batches to `<endpoint>/v2/track`"""

    def __init__(self, service_endpoint_uri: str, send_timeout: float = DEFAULT_SEND_TIMEOUT):
        self.service_endpoint_uri = service_endpoint_uri
        self.send_timeout = send_timeout
        self.send_buffer_size = SEND_BUFFER_SIZE

    def send(self, envelopes: List[Any]):
        payload = json.dumps([envelope.write() for envelope in envelopes])
        try:
            response = requests.post(
                self.service_endpoint_uri,
                data=payload.encode("utf-8"),
                headers={"Accept": "application/json", "Content-Type": "application/json; charset=utf-8"},
                timeout=self.send_timeout,
            )
        except RequestException as e:
            raise SendError(FAULT_MAPPING["telemetry_batch_dropped"].format(count=len(envelopes), error=e)) from e
        if not response.ok:
            raise SendError(
                FAULT_MAPPING["telemetry_batch_dropped"].format(
                    count=len(envelopes), error=f"HTTP {response.status_code}"
                )
            )


class TraceQueue:
    """
    Queue handed to the SDK's TelemetryChannel.

    Envelopes wait here until `flush`, which takes them all off the queue
    before sending. Raises the first SendError after every batch was tried.
    """

    def __init__(self, sender: TrackSender):
        self.sender = sender
        self._items: List[Any] = []
        self._lock = Lock()

    def put(self, item):
        if item:
            with self._lock:
                self._items.append(item)

    def stamp_last(self, time_text: str):
        """Overwrite the time of the most recently queued envelope"""
        with self._lock:
            if self._items:
                self._items[-1].time = time_text

    # no __len__: the SDK channel replaces a falsy queue with its own
    @property
    def pending(self) -> int:
        return len(self._items)

    def flush(self):
        with self._lock:
            pending, self._items = self._items, []
        size = self.sender.send_buffer_size
        first_error: Optional[SendError] = None
        for start in range(0, len(pending), size):
            try:
                self.sender.send(pending[start : start + size])
            except SendError as e:
                first_error = first_error or e
        if first_error is not None:
            raise first_error


class SdkTelemetryClient:
    """
    Thin wrapper binding the Application Insights SDK to one connection.

    `flush` sends everything tracked before it and raises SendError when the
    endpoint did not accept it.
    """

    # severity names understood by TelemetryClient.track_trace
    SDK_SEVERITY = {
        Severity.VERBOSE: "DEBUG",
        Severity.INFORMATION: "INFO",
        Severity.WARNING: "WARNING",
        Severity.ERROR: "ERROR",
        Severity.CRITICAL: "CRITICAL",
    }

    def __init__(self, sdk: ModuleType, connection: ConnectionSettings, send_timeout: float = DEFAULT_SEND_TIMEOUT):
        self.connection = connection
        self.queue = TraceQueue(TrackSender(connection.track_url, send_timeout))
        channel = importlib.import_module(f"{sdk.__name__}.channel")
        self._client = sdk.TelemetryClient(connection.instrumentation_key, channel.TelemetryChannel(None, self.queue))
        self._lock = Lock()

    def track_trace(self, record: TraceRecord):
        with self._lock:
            self._client.track_trace(
                record.message,
                properties=dict(record.properties),
                severity=self.SDK_SEVERITY.get(record.severity.to_remote(), "INFO"),
            )
            self.queue.stamp_last(envelope_time(record.timestamp_utc))

    def flush(self):
        self._client.flush()

    def dispose(self):
        """Flush once and release the SDK client. Unsent envelopes are dropped."""
        if self._client is None:
            return
        try:
            self._client.flush()
        finally:
            self._client = None
