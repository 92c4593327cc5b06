import os
from dataclasses import dataclass

from beartype.typing import Dict, Optional

from logfanout.constants import FAULT_MAPPING
from logfanout.exceptions import ConfigurationError
from logfanout.settings import CONNECTION_STRING_ENV_VAR, DEFAULT_INGESTION_ENDPOINT


@dataclass(frozen=True)
class ConnectionSettings:
    """Parsed form of an Application Insights connection string"""

    connection_string: str
    instrumentation_key: str
    ingestion_endpoint: str

    @property
    def track_url(self) -> str:
        return self.ingestion_endpoint.rstrip("/") + "/v2/track"


def resolve_connection_string(explicit: Optional[str] = None) -> Optional[str]:
    """An explicit non-blank value wins over APPINSIGHTS_CONNECTION_STRING. None if both are blank."""
    if explicit is not None and explicit.strip():
        return explicit.strip()
    from_env = os.environ.get(CONNECTION_STRING_ENV_VAR, "")
    if from_env.strip():
        return from_env.strip()
    return None


def parse_connection_string(connection_string: str) -> ConnectionSettings:
    """
    Parse `InstrumentationKey=...;IngestionEndpoint=...` into ConnectionSettings.

    Keys are matched case-insensitively, empty segments are ignored.
    Raises ConfigurationError when no instrumentation key is present.
    """
    values: Dict[str, str] = {}
    for segment in connection_string.split(";"):
        segment = segment.strip()
        if not segment:
            continue
        if "=" not in segment:
            raise ConfigurationError(
                FAULT_MAPPING["invalid_connection_string"].format(reason=f"segment without '=': {segment[:2]}***")
            )
        key, value = segment.split("=", 1)
        values[key.strip().lower()] = value.strip()

    instrumentation_key = values.get("instrumentationkey")
    if not instrumentation_key:
        raise ConfigurationError(
            FAULT_MAPPING["invalid_connection_string"].format(reason="InstrumentationKey is missing")
        )
    return ConnectionSettings(
        connection_string=connection_string,
        instrumentation_key=instrumentation_key,
        ingestion_endpoint=values.get("ingestionendpoint") or DEFAULT_INGESTION_ENDPOINT,
    )
