from pathlib import Path

DEFAULT_LOG_DIRECTORY = Path.cwd() / "logs"
DEFAULT_FILE_EXTENSION = "log"
DEFAULT_ENCODING = "utf-8"
DEFAULT_MAX_FILE_SIZE_BYTES = 10485760  # 10MB
UNKNOWN_SOURCE_NAME = "UnknownScript"

LOG_FILE_DATE_FORMAT = "%Y%m%d"
LOG_LINE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
ROTATION_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

CONNECTION_STRING_ENV_VAR = "APPINSIGHTS_CONNECTION_STRING"
SDK_PACKAGE_NAME = "applicationinsights"
SDK_VERSION_ID = "0.11.10"
SDK_CACHE_FOLDER_NAME = f"{SDK_PACKAGE_NAME}-{SDK_VERSION_ID}"
SDK_ARTIFACT_RELATIVE_PATH = "applicationinsights/__init__.py"
SDK_CACHE_ROOT = Path.home() / ".logfanout" / "cache"
PACKAGE_INDEX_URL = "https://pypi.org/pypi"
DEFAULT_FLUSH_DELAY_MS = 1000
DEFAULT_DOWNLOAD_TIMEOUT = 30  # seconds
DOWNLOAD_CHUNK_SIZE = 65536
DEFAULT_SEND_TIMEOUT = 10  # seconds per ingestion request
SEND_BUFFER_SIZE = 100
DEFAULT_INGESTION_ENDPOINT = "https://dc.services.visualstudio.com"
