import codecs
from dataclasses import dataclass, field
from pathlib import Path

from logfanout import settings


@dataclass
class LogConfig:
    """Process-wide settings of the local file sink"""

    directory: Path = field(default_factory=lambda: settings.DEFAULT_LOG_DIRECTORY)
    file_extension: str = settings.DEFAULT_FILE_EXTENSION
    encoding: str = settings.DEFAULT_ENCODING
    max_file_size_bytes: int = settings.DEFAULT_MAX_FILE_SIZE_BYTES

    def __post_init__(self):
        self.directory = Path(self.directory).expanduser().absolute()
        self.file_extension = str(self.file_extension).lstrip(".")
        if not self.file_extension:
            raise ValueError("file_extension must not be empty")
        if int(self.max_file_size_bytes) <= 0:
            raise ValueError(f"max_file_size_bytes must be greater than 0, got {self.max_file_size_bytes}")
        self.max_file_size_bytes = int(self.max_file_size_bytes)
        # raises LookupError for unknown encodings
        codecs.lookup(self.encoding)


@dataclass(frozen=True)
class TelemetryConfig:
    """Where the telemetry SDK comes from and how long to wait after each send"""

    sdk_package: str = settings.SDK_PACKAGE_NAME
    sdk_version_id: str = settings.SDK_VERSION_ID
    cache_folder_name: str = settings.SDK_CACHE_FOLDER_NAME
    sdk_artifact_relative_path: str = settings.SDK_ARTIFACT_RELATIVE_PATH
    flush_delay_ms: int = settings.DEFAULT_FLUSH_DELAY_MS
    cache_root_path: Path = settings.SDK_CACHE_ROOT
    package_index_url: str = settings.PACKAGE_INDEX_URL
    download_timeout: float = settings.DEFAULT_DOWNLOAD_TIMEOUT

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_root_path).expanduser() / self.cache_folder_name

    @property
    def sdk_artifact_path(self) -> Path:
        return self.cache_path / self.sdk_artifact_relative_path


@dataclass
class SinkSwitches:
    console_enabled: bool = True
    local_enabled: bool = True
    telemetry_enabled: bool = True
