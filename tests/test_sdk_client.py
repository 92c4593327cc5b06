import json
import sys
import time
from datetime import datetime, timezone
from types import ModuleType

import pytest
from requests.exceptions import ConnectionError, ConnectTimeout

from logfanout.data_classes.log_entry import Severity, TraceRecord
from logfanout.exceptions import SendError
from logfanout.telemetry.connection import parse_connection_string
from logfanout.telemetry.sdk_client import SdkTelemetryClient, TrackSender, TraceQueue, envelope_time
from tests.helpers.telemetry_helpers import CONNECTION_STRING, make_manager

TRACK_URL = "https://westeurope-1.in.applicationinsights.azure.com/v2/track"
REFUSED_CONNECTION_STRING = "InstrumentationKey=abc;IngestionEndpoint=http://127.0.0.1:9"
REFUSED_TRACK_URL = "http://127.0.0.1:9/v2/track"


class FakeEnvelope:
    def __init__(self, name, properties, severity):
        self.name = name
        self.properties = properties
        self.severity = severity
        self.time = "2000-01-01T00:00:00.000000Z"

    def write(self):
        return {"time": self.time, "message": self.name, "severity": self.severity, "properties": self.properties}


class FakeChannel:
    def __init__(self, context=None, queue=None):
        self.queue = queue or "default queue"

    def flush(self):
        self.queue.flush()


class FakeSdkClient:
    """Puts one envelope per trace on the channel's queue, like the SDK does"""

    def __init__(self, instrumentation_key, channel):
        self.instrumentation_key = instrumentation_key
        self.channel = channel

    def track_trace(self, name, properties=None, severity=None):
        self.channel.queue.put(FakeEnvelope(name, properties, severity))

    def flush(self):
        self.channel.flush()


@pytest.fixture
def fake_sdk(mocker):
    sdk = ModuleType("fake_appinsights")
    sdk.TelemetryClient = FakeSdkClient
    channel = ModuleType("fake_appinsights.channel")
    channel.TelemetryChannel = FakeChannel
    mocker.patch.dict(sys.modules, {"fake_appinsights": sdk, "fake_appinsights.channel": channel})
    return sdk


@pytest.fixture
def client(fake_sdk):
    return SdkTelemetryClient(fake_sdk, parse_connection_string(CONNECTION_STRING))


def record(severity=Severity.INFORMATION, properties=None):
    return TraceRecord(
        message="Import finished",
        severity=severity,
        timestamp_utc=datetime(2024, 1, 20, 9, 15, 30, 123456, tzinfo=timezone.utc),
        properties=properties or {},
    )


def sent_items(requests_mock, index=0):
    return json.loads(requests_mock.request_history[index].body)


class TestSdkTelemetryClient:
    def test_client_bound_to_connection(self, client):
        assert client._client.instrumentation_key == "00000000-1111-2222-3333-444444444444"
        assert client.queue.sender.service_endpoint_uri == TRACK_URL
        assert client._client.channel.queue is client.queue

    @pytest.mark.parametrize(
        "severity, expected",
        [
            (Severity.VERBOSE, "DEBUG"),
            (Severity.DEBUG, "DEBUG"),
            (Severity.INFORMATION, "INFO"),
            (Severity.WARNING, "WARNING"),
            (Severity.ERROR, "ERROR"),
            (Severity.CRITICAL, "CRITICAL"),
        ],
    )
    def test_severity_mapping(self, client, severity, expected):
        client.track_trace(record(severity))

        assert client.queue._items[0].severity == expected

    def test_record_timestamp_is_the_envelope_time(self, client, requests_mock):
        requests_mock.post(TRACK_URL, status_code=200)

        client.track_trace(record(properties={"sourceName": "importer"}))
        client.flush()

        assert sent_items(requests_mock) == [
            {
                "time": "2024-01-20T09:15:30.123456Z",
                "message": "Import finished",
                "severity": "INFO",
                "properties": {"sourceName": "importer"},
            }
        ]

    def test_rejected_batch_is_dropped(self, client, requests_mock):
        requests_mock.post(TRACK_URL, status_code=500)
        client.track_trace(record())

        with pytest.raises(SendError, match="HTTP 500"):
            client.flush()

        assert client.queue.pending == 0
        client.flush()
        assert requests_mock.call_count == 1

    def test_dispose_flushes_once(self, client, requests_mock):
        requests_mock.post(TRACK_URL, exc=ConnectionError)
        client.track_trace(record())

        with pytest.raises(SendError):
            client.dispose()
        client.dispose()

        assert client._client is None
        assert requests_mock.call_count == 1


class TestTraceQueue:
    def test_batches_respect_buffer_size(self, requests_mock):
        requests_mock.post(TRACK_URL, status_code=200)
        sender = TrackSender(TRACK_URL)
        sender.send_buffer_size = 2
        queue = TraceQueue(sender)
        for number in range(5):
            queue.put(FakeEnvelope(f"trace {number}", {}, "INFO"))

        queue.flush()

        assert [len(sent_items(requests_mock, index)) for index in range(3)] == [2, 2, 1]

    def test_every_batch_is_tried_once(self, requests_mock):
        requests_mock.post(TRACK_URL, [{"status_code": 503}, {"status_code": 200}])
        sender = TrackSender(TRACK_URL)
        sender.send_buffer_size = 1
        queue = TraceQueue(sender)
        queue.put(FakeEnvelope("first", {}, "INFO"))
        queue.put(FakeEnvelope("second", {}, "INFO"))

        with pytest.raises(SendError, match="HTTP 503"):
            queue.flush()

        assert requests_mock.call_count == 2
        assert queue.pending == 0

    def test_stamp_last_on_empty_queue(self):
        queue = TraceQueue(TrackSender(TRACK_URL))

        queue.stamp_last(envelope_time(datetime.now(timezone.utc)))

        assert queue.pending == 0


class TestWithApplicationInsights:
    """Real SDK envelopes and channel, transport intercepted by requests_mock"""

    @pytest.fixture
    def sdk(self):
        return pytest.importorskip("applicationinsights")

    def test_envelope_payload(self, sdk, requests_mock):
        requests_mock.post(TRACK_URL, status_code=200)
        client = SdkTelemetryClient(sdk, parse_connection_string(CONNECTION_STRING))
        assert client._client.channel.queue is client.queue

        client.track_trace(record(Severity.ERROR, {"sourceName": "importer"}))
        client.flush()

        [envelope] = sent_items(requests_mock)
        assert envelope["time"] == "2024-01-20T09:15:30.123456Z"
        assert envelope["iKey"] == "00000000-1111-2222-3333-444444444444"
        assert envelope["data"]["baseData"]["message"] == "Import finished"
        assert envelope["data"]["baseData"]["properties"] == {"sourceName": "importer"}

    @pytest.mark.parametrize("exc", [ConnectionError, ConnectTimeout], ids=["refused", "timeout"])
    def test_unreachable_endpoint_returns_false_promptly(self, sdk, requests_mock, mocker, tmp_path, exc):
        requests_mock.post(REFUSED_TRACK_URL, exc=exc)
        mocker.patch("logfanout.telemetry.client_manager.is_sdk_installed", return_value=True)
        mocker.patch("logfanout.telemetry.client_manager.bind_sdk", return_value=sdk)
        manager = make_manager(tmp_path / "cache", SdkTelemetryClient)
        assert manager.init(REFUSED_CONNECTION_STRING) is True

        started = time.monotonic()
        assert manager.send_trace("x") is False
        assert manager.send_trace("y") is False
        manager.reset()

        assert time.monotonic() - started < 5
        assert requests_mock.call_count == 2
