from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Union


logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]
Candidate = Union[PathLike, Callable[[], PathLike]]


class AlreadyExistsError(FileExistsError):
    pass


class NameCollisionExhaustedError(RuntimeError):
    def __init__(self, attempts: int, last_candidate: Path) -> None:
        super().__init__(
            f"no free name after {attempts} attempt(s); last candidate: {last_candidate}"
        )
        self.attempts = attempts
        self.last_candidate = last_candidate


def _create_file(path: Path) -> None:
    fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o666)
    os.close(fd)


def _create_directory(path: Path) -> None:
    os.mkdir(path)


def create_new(
    candidate: Candidate,
    create_entry: Callable[[Path], None],
    *,
    max_attempts: int | None = None,
) -> Path:
    """Create a filesystem entry with an exclusive create primitive.

    ``candidate`` is either a fixed path, tried exactly once (an existing
    entry raises ``AlreadyExistsError``), or a callable proposing a new
    candidate path on every call. For callables, "already exists" failures
    move on to the next candidate; any other ``OSError`` propagates
    immediately. ``max_attempts`` bounds the number of candidates tried
    (``None`` means no limit).
    """
    if max_attempts is not None and max_attempts < 1:
        raise ValueError(f"max_attempts must be positive: {max_attempts!r}")

    if not callable(candidate):
        path = Path(candidate)
        try:
            create_entry(path)
        except FileExistsError as exc:
            raise AlreadyExistsError(
                exc.errno, f"entry already exists: {path}", str(path)
            ) from exc
        return path

    attempts = 0
    while True:
        path = Path(candidate())
        attempts += 1
        try:
            create_entry(path)
        except FileExistsError:
            logger.debug("name collision on %s (attempt %d)", path, attempts)
            if max_attempts is not None and attempts >= max_attempts:
                raise NameCollisionExhaustedError(attempts, path) from None
            continue
        return path


def create_new_file(candidate: Candidate, *, max_attempts: int | None = None) -> Path:
    path = create_new(candidate, _create_file, max_attempts=max_attempts)
    logger.debug("created file %s", path)
    return path


def create_new_directory(
    candidate: Candidate,
    *,
    max_attempts: int | None = None,
) -> Path:
    path = create_new(candidate, _create_directory, max_attempts=max_attempts)
    logger.debug("created directory %s", path)
    return path
