from __future__ import annotations

import logging
import os
from pathlib import Path
import shutil
import stat
import sys
import time

from .config import load_settings


logger = logging.getLogger(__name__)


class DeleteError(OSError):
    pass


def _clear_readonly(func, path, _exc) -> None:
    # Read-only entries (and read-only parents on POSIX) block unlink/rmdir.
    # A symlink only needs a writable parent; chmod would reach its target.
    parent = os.path.dirname(path)
    if parent:
        os.chmod(parent, os.stat(parent).st_mode | stat.S_IWRITE | stat.S_IEXEC)
    if not os.path.islink(path):
        os.chmod(path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
    if func in (os.unlink, os.remove, os.rmdir):
        func(path)


def _rmtree(path: Path) -> None:
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_clear_readonly)
    else:
        shutil.rmtree(path, onerror=_clear_readonly)


def _delete_once(target: Path) -> None:
    if target.is_dir() and not target.is_symlink():
        _rmtree(target)
        return
    try:
        os.unlink(target)
    except PermissionError as exc:
        _clear_readonly(os.unlink, str(target), exc)


class RobustDeleter:
    """Recursive delete tolerant of read-only entries and transient locks.

    A failed pass is retried after ``delay_s * 2**attempt`` seconds, up to
    ``retries`` extra passes. ``DeleteError`` is raised only when the path
    still exists after the last pass.
    """

    def __init__(self, retries: int = 3, delay_s: float = 0.1) -> None:
        self.retries = retries
        self.delay_s = delay_s

    def __call__(self, path: str | os.PathLike[str]) -> None:
        self.delete_recursively(path)

    def delete_recursively(self, path: str | os.PathLike[str]) -> None:
        target = Path(path)
        last_error: OSError | None = None
        for attempt in range(self.retries + 1):
            if attempt:
                time.sleep(self.delay_s * (2 ** (attempt - 1)))
            if not os.path.lexists(target):
                return
            try:
                _delete_once(target)
            except OSError as exc:
                last_error = exc
                logger.debug(
                    "delete of %s failed on attempt %d: %s", target, attempt + 1, exc
                )
                continue
            return

        if not os.path.lexists(target):
            return
        raise DeleteError(
            getattr(last_error, "errno", None),
            f"could not delete {target} after {self.retries + 1} attempt(s)",
            str(target),
        ) from last_error


def delete_recursively(path: str | os.PathLike[str]) -> None:
    settings = load_settings()
    RobustDeleter(
        retries=settings.delete_retries,
        delay_s=settings.delete_delay_s,
    ).delete_recursively(path)
