import pytest

from logfanout.exceptions import ConfigurationError
from logfanout.settings import CONNECTION_STRING_ENV_VAR
from logfanout.telemetry.connection import parse_connection_string, resolve_connection_string
from tests.helpers.telemetry_helpers import CONNECTION_STRING


class TestResolveConnectionString:
    def test_explicit_value_wins_over_environment(self, monkeypatch):
        monkeypatch.setenv(CONNECTION_STRING_ENV_VAR, "InstrumentationKey=from-env")

        assert resolve_connection_string("InstrumentationKey=explicit") == "InstrumentationKey=explicit"

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv(CONNECTION_STRING_ENV_VAR, "  InstrumentationKey=from-env  ")

        assert resolve_connection_string("   ") == "InstrumentationKey=from-env"

    def test_nothing_configured(self):
        assert resolve_connection_string(None) is None

    def test_blank_environment(self, monkeypatch):
        monkeypatch.setenv(CONNECTION_STRING_ENV_VAR, "   ")

        assert resolve_connection_string("") is None


class TestParseConnectionString:
    def test_full_connection_string(self):
        settings = parse_connection_string(CONNECTION_STRING)

        assert settings.instrumentation_key == "00000000-1111-2222-3333-444444444444"
        assert settings.ingestion_endpoint == "https://westeurope-1.in.applicationinsights.azure.com/"
        assert settings.track_url == "https://westeurope-1.in.applicationinsights.azure.com/v2/track"

    def test_default_endpoint_and_case_insensitive_keys(self):
        settings = parse_connection_string("instrumentationkey=abc;")

        assert settings.instrumentation_key == "abc"
        assert settings.track_url == "https://dc.services.visualstudio.com/v2/track"

    @pytest.mark.parametrize(
        "connection_string",
        ["IngestionEndpoint=https://example.com", "InstrumentationKey=", "just-a-key"],
        ids=["missing_key", "empty_key", "no_equals"],
    )
    def test_invalid(self, connection_string):
        with pytest.raises(ConfigurationError):
            parse_connection_string(connection_string)
