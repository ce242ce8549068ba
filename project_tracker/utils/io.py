"""
JSON document storage for the workbook and its snapshots.

Readers take a shared lock and writers an exclusive one on a ``<name>.lock``
file next to the document. Writes go to a temp file in the same directory
and are moved into place with ``os.replace``.
"""

import contextlib
import errno
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Union

try:
    import fcntl  # type: ignore
except ImportError:  # pragma: no cover - no advisory locks on Windows
    fcntl = None  # type: ignore


LOCK_TIMEOUT = 8.0
LOCK_POLL = 0.05

PathLike = Union[str, Path]

logger = logging.getLogger(__name__)


def lock_path_for(document: Path) -> Path:
    return document.with_name(document.name + ".lock")


@contextlib.contextmanager
def document_lock(document: Path, exclusive: bool, timeout: float = LOCK_TIMEOUT) -> Iterator[None]:
    """Hold an advisory lock on ``document`` for the duration of the block."""
    if fcntl is None:
        yield
        return

    lock_file_path = lock_path_for(document)
    lock_file_path.parent.mkdir(parents=True, exist_ok=True)
    mode = (fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH) | fcntl.LOCK_NB
    give_up_at = time.monotonic() + timeout

    with open(lock_file_path, "a") as handle:
        while True:
            try:
                fcntl.flock(handle.fileno(), mode)
                break
            except OSError as exc:  # pragma: no cover - timing dependent
                if exc.errno not in (errno.EACCES, errno.EAGAIN):
                    raise
                if time.monotonic() >= give_up_at:
                    raise TimeoutError(f"Lock on {document} not acquired within {timeout}s") from exc
                time.sleep(LOCK_POLL)
        try:
            yield
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def read_json(file_path: PathLike, *,
              object_hook: Optional[Callable[[Dict[str, Any]], Any]] = None,
              lock_timeout: float = LOCK_TIMEOUT) -> Optional[Dict[str, Any]]:
    """
    Read a JSON document under a shared lock.

    Returns None when the file does not exist. A file that exists but cannot
    be read or parsed raises (``OSError``, ``TimeoutError`` or
    ``json.JSONDecodeError``) so callers never mistake it for an empty one.
    """
    document = Path(os.path.expanduser(str(file_path)))
    if not document.exists():
        return None
    with document_lock(document, exclusive=False, timeout=lock_timeout):
        with document.open("r", encoding="utf-8") as handle:
            return json.load(handle, object_hook=object_hook)


def safe_read_json(file_path: PathLike, default: Optional[Dict] = None, *,
                   object_hook: Optional[Callable[[Dict[str, Any]], Any]] = None,
                   lock_timeout: float = LOCK_TIMEOUT) -> Dict[str, Any]:
    """
    Read a JSON document, returning ``default`` when it is absent or unreadable.

    ``object_hook`` revives tagged values such as the workbook's dates.
    """
    fallback = {} if default is None else default
    try:
        data = read_json(file_path, object_hook=object_hook, lock_timeout=lock_timeout)
    except (TimeoutError, OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read %s: %s", file_path, exc)
        return fallback
    return fallback if data is None else data


def safe_write_json(file_path: PathLike, data: Dict[str, Any], *,
                    encoder: Optional[Callable[[Any], Any]] = None,
                    lock_timeout: float = LOCK_TIMEOUT) -> bool:
    """Atomically replace a JSON document. Returns False if nothing was written."""
    document = Path(os.path.expanduser(str(file_path)))
    document.parent.mkdir(parents=True, exist_ok=True)

    staged: Optional[Path] = None
    try:
        with document_lock(document, exclusive=True, timeout=lock_timeout):
            with tempfile.NamedTemporaryFile("w", dir=str(document.parent), prefix=".staged_",
                                             suffix=".json", delete=False,
                                             encoding="utf-8") as handle:
                staged = Path(handle.name)
                json.dump(data, handle, indent=2, ensure_ascii=False, default=encoder)
            os.replace(staged, document)
            staged = None
        return True
    except (TimeoutError, OSError, TypeError, ValueError) as exc:
        logger.error("Could not write %s: %s", document, exc)
        return False
    finally:
        if staged is not None:
            with contextlib.suppress(OSError):
                staged.unlink()
