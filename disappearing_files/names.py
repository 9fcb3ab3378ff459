from __future__ import annotations

import os
from pathlib import Path
import uuid


def generate_random_string(prefix: str | None = None, suffix: str | None = None) -> str:
    """Return ``prefix + token + suffix`` with a fresh 128-bit hex token."""
    return f"{prefix or ''}{uuid.uuid4().hex}{suffix or ''}"


def normalize_extension(extension: str | None) -> str:
    if not extension:
        return ""
    if extension.startswith("."):
        return extension
    return f".{extension}"


def generate_random_name_with_extension(
    extension: str | None,
    prefix: str | None = None,
) -> str:
    return generate_random_string(prefix, normalize_extension(extension))


def generate_random_path(
    base_path: str | os.PathLike[str],
    prefix: str | None = None,
    suffix: str | None = None,
) -> Path:
    return Path(base_path) / generate_random_string(prefix, suffix)
