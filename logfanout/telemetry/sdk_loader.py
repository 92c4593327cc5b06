"""
Telemetry SDK acquisition.

The Application Insights SDK is not a hard dependency of logfanout. The first
time telemetry is initialized, a pinned wheel is fetched from the package
index into a per-version cache directory, unpacked and imported from there.
Later runs find the unpacked artifact and skip the download.

Cache layout:
    ~/.logfanout/cache/applicationinsights-0.11.10/applicationinsights/__init__.py
"""

import hashlib
import importlib
import importlib.util
import sys
import zipfile
from json import JSONDecodeError
from pathlib import Path
from types import ModuleType

import requests
from beartype.typing import Any, Dict
from requests.exceptions import ConnectionError, HTTPError, RequestException, Timeout
from tqdm import tqdm

from logfanout.constants import FAULT_MAPPING
from logfanout.data_classes.configuration import TelemetryConfig
from logfanout.diagnostics import get_logger
from logfanout.exceptions import NetworkError, SdkLoadError
from logfanout.settings import DOWNLOAD_CHUNK_SIZE

logger = get_logger("logfanout.telemetry.sdk")


def release_url(config: TelemetryConfig) -> str:
    return f"{config.package_index_url.rstrip('/')}/{config.sdk_package}/{config.sdk_version_id}/json"


def is_sdk_bound(config: TelemetryConfig) -> bool:
    return config.sdk_package in sys.modules


def is_sdk_installed(config: TelemetryConfig) -> bool:
    """True if the SDK is imported already or importable without the cache"""
    if is_sdk_bound(config):
        return True
    try:
        return importlib.util.find_spec(config.sdk_package) is not None
    except (ImportError, ValueError):
        return False


def is_sdk_cached(config: TelemetryConfig) -> bool:
    return config.sdk_artifact_path.is_file()


def _network_error(config: TelemetryConfig, error: Any) -> NetworkError:
    return NetworkError(
        FAULT_MAPPING["sdk_download_failed"].format(
            package=config.sdk_package, version=config.sdk_version_id, error=error
        )
    )


def _query_package_index(config: TelemetryConfig) -> Dict[str, Any]:
    """
    Find the wheel of the pinned SDK release on the package index.

    Returns:
        The release file entry ("url", "filename", "digests", ...)
    """
    url = release_url(config)
    logger.debug("Querying package index", url=url)
    try:
        response = requests.get(url, timeout=config.download_timeout)
        response.raise_for_status()
        data = response.json()
    except Timeout:
        raise _network_error(config, "request timed out")
    except ConnectionError:
        raise _network_error(config, "could not connect to the package index")
    except HTTPError as e:
        raise _network_error(config, e)
    except (RequestException, JSONDecodeError, ValueError) as e:
        raise _network_error(config, e)

    for release_file in data.get("urls", []):
        if release_file.get("packagetype") == "bdist_wheel" and release_file.get("url"):
            return release_file
    raise NetworkError(FAULT_MAPPING["sdk_no_wheel"].format(package=config.sdk_package, version=config.sdk_version_id))


def _download(config: TelemetryConfig, release_file: Dict[str, Any], target: Path, show_progress: bool = False):
    """Stream the wheel to `target`, checking its sha256 digest when the index provides one."""
    digest = hashlib.sha256()
    try:
        with requests.get(release_file["url"], stream=True, timeout=config.download_timeout) as response:
            response.raise_for_status()
            total = int(response.headers.get("content-length", 0)) or release_file.get("size")
            with open(target, "wb") as f, tqdm(
                total=total,
                unit="B",
                unit_scale=True,
                desc=release_file.get("filename", config.sdk_package),
                disable=not show_progress,
            ) as progress:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    digest.update(chunk)
                    progress.update(len(chunk))
    except RequestException as e:
        raise _network_error(config, e)

    expected = release_file.get("digests", {}).get("sha256")
    if expected and digest.hexdigest() != expected:
        raise _network_error(config, "sha256 digest mismatch")


def acquire_sdk(config: TelemetryConfig, show_progress: bool = False) -> Path:
    """
    Make sure the SDK artifact is unpacked in the cache directory.

    Downloads at most once per cache directory; the transient wheel is
    removed after unpacking, also when unpacking fails.

    Returns:
        Path of the SDK artifact inside the cache

    Raises:
        NetworkError: the wheel could not be fetched
        SdkLoadError: the wheel could not be unpacked or lacks the artifact
    """
    cache_path = config.cache_path
    artifact_path = config.sdk_artifact_path
    if artifact_path.is_file():
        logger.debug("Telemetry SDK found in cache", path=str(artifact_path))
        return artifact_path

    try:
        cache_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SdkLoadError(FAULT_MAPPING["sdk_load_failed"].format(path=cache_path, error=e))

    release_file = _query_package_index(config)
    archive = cache_path / release_file.get("filename", f"{config.sdk_package}-{config.sdk_version_id}.whl")
    try:
        _download(config, release_file, archive, show_progress=show_progress)
        with zipfile.ZipFile(archive) as wheel:
            wheel.extractall(cache_path)
    except (zipfile.BadZipFile, OSError) as e:
        raise SdkLoadError(FAULT_MAPPING["sdk_load_failed"].format(path=archive, error=e))
    finally:
        if archive.exists():
            try:
                archive.unlink()
            except OSError as e:
                logger.debug("Could not remove downloaded archive", path=str(archive), error=str(e))

    if not artifact_path.is_file():
        raise SdkLoadError(
            FAULT_MAPPING["sdk_load_failed"].format(path=artifact_path, error="artifact missing from package")
        )
    logger.info("Telemetry SDK downloaded", package=config.sdk_package, version=config.sdk_version_id)
    return artifact_path


def bind_sdk(config: TelemetryConfig) -> ModuleType:
    """
    Import the SDK into the running process, preferring an already imported copy.

    Raises:
        SdkLoadError: the artifact cannot be imported
    """
    if is_sdk_bound(config):
        return sys.modules[config.sdk_package]

    cache_entry = str(config.cache_path)
    if not is_sdk_installed(config) and cache_entry not in sys.path:
        sys.path.insert(0, cache_entry)
    importlib.invalidate_caches()
    try:
        return importlib.import_module(config.sdk_package)
    except Exception as e:
        raise SdkLoadError(FAULT_MAPPING["sdk_load_failed"].format(path=config.cache_path, error=e))
