"""
Rotation Manager - keeps local log files bounded in size

Before every write the local sink asks the rotation manager to look at the
target file. Once the file is larger than the configured threshold it is
archived under a timestamped name and the original path is free again.

Rotation pattern:
    app_20240120.log -> app_20240120.log.20240120_101530
    app_20240120.log -> app_20240120.log.20240120_101530.1  (same second, archive already taken)

Usage:
    from logfanout.sinks.rotation import RotationManager

    rotation = RotationManager(max_file_size_bytes=10485760)
    rotation.check_and_rotate(Path("/var/log/app/app_20240120.log"))
"""

from datetime import datetime
from pathlib import Path

from beartype.typing import Callable, Optional, Union

from logfanout.constants import FAULT_MAPPING
from logfanout.diagnostics import get_logger
from logfanout.settings import ROTATION_TIMESTAMP_FORMAT

logger = get_logger("logfanout.sinks.rotation")


class RotationManager:
    """
    Size based rotation of a single log file.

    Rotation never raises: any OS error is reported at DEBUG level on the
    diagnostic channel and the following write goes ahead on the original path.
    """

    def __init__(self, max_file_size_bytes: int, clock: Callable[[], datetime] = datetime.now):
        if max_file_size_bytes <= 0:
            raise ValueError(f"max_file_size_bytes must be greater than 0, got {max_file_size_bytes}")
        self.max_file_size_bytes = max_file_size_bytes
        self._clock = clock

    def should_rotate(self, path: Path) -> bool:
        """True if `path` is a regular file strictly larger than the threshold"""
        if not path.is_file():
            return False
        try:
            return path.stat().st_size > self.max_file_size_bytes
        except OSError:
            return False

    def rotated_name(self, path: Path) -> Path:
        """
        Archive name for `path`: `<path>.<yyyyMMdd_HHmmss>`, with `.1`, `.2`, ...
        appended when an archive from the same second already exists.
        """
        stamp = self._clock().strftime(ROTATION_TIMESTAMP_FORMAT)
        candidate = Path(f"{path}.{stamp}")
        counter = 1
        while candidate.exists():
            candidate = Path(f"{path}.{stamp}.{counter}")
            counter += 1
        return candidate

    def check_and_rotate(self, path: Union[str, Path]) -> Optional[Path]:
        """
        Archive `path` if it exceeds the size threshold.

        Returns:
            Path of the archive, or None when no rotation happened
        """
        path = Path(path)
        try:
            if not self.should_rotate(path):
                return None
            target = self.rotated_name(path)
            path.replace(target)
            logger.debug("Rotated log file", path=str(path), archive=str(target))
            return target
        except OSError as e:
            logger.debug(FAULT_MAPPING["rotation_failed"].format(path=path, error=e))
            return None
