from __future__ import annotations

import os
from pathlib import Path
import shutil
import uuid

import pytest


@pytest.fixture
def base_dir() -> Path:
    """
    Per-test parent directory for disappearing directories.

    Created with a plain os.mkdir() under the working directory instead of
    pytest's tmp_path, so leftovers are easy to spot when a dispose fails.
    """

    root = Path.cwd() / ".pytest-tmp"
    if not root.exists():
        os.mkdir(root)

    path = root / f"base-{uuid.uuid4().hex}"
    os.mkdir(path)
    try:
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


@pytest.fixture(autouse=True)
def _clean_settings_env(monkeypatch) -> None:
    for key in list(os.environ):
        if key.startswith("DISAPPEARING_FILES_"):
            monkeypatch.delenv(key, raising=False)
