"""
Resolves the logical source name a log entry is tagged with.

The source name decides the local log file (`<source>_<yyyyMMdd>.log`) and is
sent as the `sourceName` telemetry property. In order of precedence it is:

1. an explicit name passed to the log call,
2. the context-local name set with `set_source_name` / `source_name(...)`,
3. the file stem of the outermost calling script found on the stack,
4. "UnknownScript".
"""

import sys
import sysconfig
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path

from beartype.typing import Iterator, Optional, Tuple

from logfanout.settings import UNKNOWN_SOURCE_NAME

_current_source_name: ContextVar[Optional[str]] = ContextVar("logfanout_source_name", default=None)

_PACKAGE_DIR = Path(__file__).resolve().parent


def set_source_name(name: Optional[str]):
    """Set the source name for the current context. Returns a token for `reset_source_name`."""
    return _current_source_name.set(name)


def reset_source_name(token):
    _current_source_name.reset(token)


@contextmanager
def source_name(name: str) -> Iterator[str]:
    """
    Tag every log call made inside the block with `name`.

    Example:
        with source_name("nightly_import"):
            write_log("started")  # goes to nightly_import_<date>.log
    """
    token = _current_source_name.set(name)
    try:
        yield name
    finally:
        _current_source_name.reset(token)


def resolve_source_name(explicit: Optional[str] = None) -> str:
    """Return the source name for a log call. Never raises."""
    try:
        if explicit and explicit.strip():
            return explicit.strip()
        current = _current_source_name.get()
        if current and current.strip():
            return current.strip()
        return _outermost_caller() or UNKNOWN_SOURCE_NAME
    except Exception:
        return UNKNOWN_SOURCE_NAME


def _library_roots() -> Tuple[Path, ...]:
    roots = {_PACKAGE_DIR}
    paths = sysconfig.get_paths()
    for key in ("stdlib", "platstdlib", "purelib", "platlib", "scripts"):
        if paths.get(key):
            roots.add(Path(paths[key]).resolve())
    return tuple(roots)


def _is_library_file(filename: str, roots: Tuple[Path, ...]) -> bool:
    if filename.startswith("<"):
        return True
    path = Path(filename).resolve()
    if "site-packages" in path.parts or "dist-packages" in path.parts:
        return True
    for root in roots:
        if path == root or root in path.parents:
            return True
    return False


def _outermost_caller() -> Optional[str]:
    """Walk the stack outwards and keep the last frame that belongs to user code."""
    roots = _library_roots()
    frame = sys._getframe(1)
    outermost = None
    while frame is not None:
        filename = frame.f_code.co_filename
        if not _is_library_file(filename, roots):
            outermost = filename
        frame = frame.f_back
    if outermost is None:
        return None
    return Path(outermost).stem
