from __future__ import annotations

import asyncio
from dataclasses import dataclass
import locale
import logging
import os
from pathlib import Path
import shutil
import tempfile
import threading
from typing import BinaryIO, Callable, TextIO, Union

from .config import load_settings
from .creation import create_new_directory, create_new_file
from .deleter import delete_recursively
from .names import (
    generate_random_name_with_extension,
    generate_random_path,
    generate_random_string,
)


logger = logging.getLogger(__name__)

DEFAULT_FILE_EXTENSION = ".tmp"
DEFAULT_SUBDIRECTORY_PREFIX = "dir."
_STREAM_CHUNK = 64 * 1024

Content = Union[bytes, bytearray, memoryview, str, BinaryIO, TextIO]
Deleter = Callable[[Path], None]


class PathError(ValueError):
    pass


class UseAfterDisposeError(RuntimeError):
    pass


def _normalize_path(path: str | os.PathLike[str]) -> Path:
    try:
        text = os.fspath(path) if path is not None else ""
    except TypeError as exc:
        raise PathError(f"invalid path: {path!r}") from exc
    if isinstance(text, bytes):
        text = os.fsdecode(text)
    if not text.strip():
        raise PathError("empty path")
    if "\0" in text:
        raise PathError(f"invalid path: {text!r}")
    return Path(os.path.abspath(os.path.expanduser(text)))


@dataclass(frozen=True)
class NameOptions:
    """How to name a new entry.

    ``name`` picks an exact name and excludes every other option; otherwise a
    random name is built from ``prefix``, and either ``suffix`` or
    ``extension`` (a leading dot is added to the extension when missing).
    """

    name: str | None = None
    prefix: str | None = None
    suffix: str | None = None
    extension: str | None = None

    def __post_init__(self) -> None:
        if self.name is not None:
            if not self.name.strip():
                raise PathError("empty name")
            if any(
                value is not None for value in (self.prefix, self.suffix, self.extension)
            ):
                raise PathError("name cannot be combined with prefix, suffix or extension")
        if self.suffix is not None and self.extension is not None:
            raise PathError("suffix and extension are mutually exclusive")

    @property
    def is_random(self) -> bool:
        return self.name is None

    @property
    def is_default(self) -> bool:
        return self == NameOptions()

    def random_name(self) -> str:
        if self.extension is not None:
            return generate_random_name_with_extension(self.extension, self.prefix)
        return generate_random_string(self.prefix, self.suffix)


class DisappearingDirectory:
    """A directory removed, with everything inside it, when disposed.

    Use it as a context manager so the directory goes away on every exit
    path::

        with DisappearingDirectory.create_in_temp_path("job.") as scratch:
            out = scratch.write_to_new_file(b"...", "out.bin")

    Disposal is best-effort: delete failures are logged and discarded so
    they never replace an exception already propagating.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        deleter: Deleter | None = None,
        max_attempts: int | None = None,
    ) -> None:
        self._path = _normalize_path(path)
        self._deleter = deleter or delete_recursively
        self._max_attempts = (
            max_attempts if max_attempts is not None else load_settings().max_attempts
        )
        self._disposed = False
        self._dispose_lock = threading.Lock()

    @classmethod
    def create_in(
        cls,
        base_path: str | os.PathLike[str],
        prefix: str | None = None,
        *,
        deleter: Deleter | None = None,
        max_attempts: int | None = None,
    ) -> DisappearingDirectory:
        base = _normalize_path(base_path)
        if max_attempts is None:
            max_attempts = load_settings().max_attempts
        created = create_new_directory(
            lambda: generate_random_path(base, prefix),
            max_attempts=max_attempts,
        )
        logger.debug("disappearing directory created at %s", created)
        return cls(created, deleter=deleter, max_attempts=max_attempts)

    @classmethod
    def create_in_temp_path(
        cls,
        prefix: str | None = None,
        *,
        deleter: Deleter | None = None,
        max_attempts: int | None = None,
    ) -> DisappearingDirectory:
        base = load_settings().temp_dir or tempfile.gettempdir()
        return cls.create_in(base, prefix, deleter=deleter, max_attempts=max_attempts)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        return f"{type(self).__name__}({str(self._path)!r}, {state})"

    def __fspath__(self) -> str:
        return str(self._path)

    def __enter__(self) -> DisappearingDirectory:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def _ensure_active(self) -> None:
        if self._disposed:
            raise UseAfterDisposeError(f"directory already disposed: {self._path}")

    def get_full_path(self, relative_name: str | os.PathLike[str]) -> Path:
        text = os.fspath(relative_name)
        for separator in ("/", "\\"):
            text = text.replace(separator, os.sep)
        return Path(os.path.normpath(os.path.join(self._path, text)))

    def generate_random_name(
        self,
        prefix: str | None = None,
        suffix: str | None = None,
    ) -> Path:
        return self.get_full_path(generate_random_string(prefix, suffix))

    def generate_random_name_with_extension(self, extension: str) -> Path:
        return self.get_full_path(generate_random_name_with_extension(extension))

    def _child_path(self, name: str) -> Path:
        full_path = self.get_full_path(name)
        if self._path not in full_path.parents:
            raise PathError(f"name escapes {self._path}: {name!r}")
        return full_path

    def _candidate(self, options: NameOptions):
        if options.is_random:
            return lambda: self._child_path(options.random_name())
        return self._child_path(options.name)

    def create_new_file(
        self,
        name: str | None = None,
        *,
        prefix: str | None = None,
        suffix: str | None = None,
        extension: str | None = None,
    ) -> Path:
        options = NameOptions(name, prefix, suffix, extension)
        return self._create_file(options)

    def create_new_file_with_extension(self, extension: str) -> Path:
        return self.create_new_file(extension=extension)

    def _create_file(self, options: NameOptions) -> Path:
        self._ensure_active()
        if options.is_default:
            options = NameOptions(extension=DEFAULT_FILE_EXTENSION)
        return create_new_file(
            self._candidate(options), max_attempts=self._max_attempts
        )

    def create_new_subdirectory(
        self,
        name: str | None = None,
        *,
        prefix: str | None = None,
        suffix: str | None = None,
    ) -> Path:
        self._ensure_active()
        options = NameOptions(name, prefix, suffix)
        if options.is_default:
            options = NameOptions(prefix=DEFAULT_SUBDIRECTORY_PREFIX)
        return create_new_directory(
            self._candidate(options), max_attempts=self._max_attempts
        )

    def create_subdirectory_with_prefix(self, prefix: str) -> Path:
        return self.create_new_subdirectory(prefix=prefix)

    def write_to_new_file(
        self,
        content: Content,
        name: str | None = None,
        *,
        prefix: str | None = None,
        suffix: str | None = None,
        extension: str | None = None,
        encoding: str | None = None,
    ) -> Path:
        """Create a new file and write ``content`` into it.

        ``content`` may be bytes, a string (written with ``encoding`` or the
        platform's preferred encoding) or a readable stream, which is drained
        and then closed even if the write fails. A failed write leaves the
        partially written file in place.
        """
        is_stream = not isinstance(content, (bytes, bytearray, memoryview, str))
        if is_stream and not callable(getattr(content, "read", None)):
            raise TypeError(f"unsupported content type: {type(content).__name__}")

        try:
            new_file = self._create_file(NameOptions(name, prefix, suffix, extension))
            if is_stream:
                _copy_stream(content, new_file, encoding)
            elif isinstance(content, str):
                with open(
                    new_file,
                    "w",
                    encoding=encoding or locale.getpreferredencoding(False),
                    newline="",
                ) as handle:
                    handle.write(content)
            else:
                with open(new_file, "wb") as handle:
                    handle.write(content)
        finally:
            if is_stream:
                content.close()
        return new_file

    async def write_to_new_file_async(
        self,
        content: Content,
        name: str | None = None,
        *,
        prefix: str | None = None,
        suffix: str | None = None,
        extension: str | None = None,
        encoding: str | None = None,
    ) -> Path:
        return await asyncio.to_thread(
            self.write_to_new_file,
            content,
            name,
            prefix=prefix,
            suffix=suffix,
            extension=extension,
            encoding=encoding,
        )

    def get_files(self, pattern: str = "*", *, recursive: bool = False) -> list[Path]:
        return self._list(pattern, recursive, Path.is_file)

    def get_directories(
        self,
        pattern: str = "*",
        *,
        recursive: bool = False,
    ) -> list[Path]:
        return self._list(pattern, recursive, Path.is_dir)

    def _list(
        self,
        pattern: str,
        recursive: bool,
        keep: Callable[[Path], bool],
    ) -> list[Path]:
        matches = self._path.rglob(pattern) if recursive else self._path.glob(pattern)
        return sorted(entry for entry in matches if keep(entry))

    def dispose(self) -> None:
        with self._dispose_lock:
            if self._disposed:
                return
            self._disposed = True

        try:
            self._deleter(self._path)
        except Exception as exc:
            logger.warning(
                "could not delete disappearing directory %s: %s", self._path, exc
            )
        else:
            logger.debug("disappearing directory deleted: %s", self._path)


def _copy_stream(stream, target: Path, encoding: str | None) -> None:
    # The first chunk decides between text and binary mode.
    first = stream.read(_STREAM_CHUNK)
    if isinstance(first, str):
        with open(
            target,
            "w",
            encoding=encoding or locale.getpreferredencoding(False),
            newline="",
        ) as handle:
            handle.write(first)
            shutil.copyfileobj(stream, handle)
        return
    with open(target, "wb") as handle:
        handle.write(first)
        shutil.copyfileobj(stream, handle)
