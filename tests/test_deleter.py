from __future__ import annotations

import errno
import os
from pathlib import Path
import stat

import pytest

from disappearing_files import deleter
from disappearing_files.deleter import DeleteError, RobustDeleter, delete_recursively


def _make_tree(root: Path) -> Path:
    tree = root / "tree"
    (tree / "a" / "b").mkdir(parents=True)
    (tree / "top.txt").write_text("top")
    (tree / "a" / "b" / "deep.bin").write_bytes(b"\x00\x01")
    return tree


def test_delete_recursively_removes_tree(base_dir: Path) -> None:
    tree = _make_tree(base_dir)

    RobustDeleter(retries=0).delete_recursively(tree)

    assert not tree.exists()


def _count_handler_calls(monkeypatch) -> list[str]:
    calls: list[str] = []
    real_handler = deleter._clear_readonly

    def counting_handler(func, path, exc) -> None:
        calls.append(path)
        real_handler(func, path, exc)

    monkeypatch.setattr(deleter, "_clear_readonly", counting_handler)
    return calls


def test_handler_retries_unlink_refused_with_permission_error(
    base_dir: Path, monkeypatch
) -> None:
    tree = _make_tree(base_dir)
    handler_calls = _count_handler_calls(monkeypatch)
    real_unlink = os.unlink
    refused: list[object] = []

    def refuse_first_unlink(path, *args, **kwargs) -> None:
        if not refused:
            refused.append(path)
            raise PermissionError(errno.EACCES, "read-only", str(path))
        real_unlink(path, *args, **kwargs)

    monkeypatch.setattr(deleter.os, "unlink", refuse_first_unlink)

    RobustDeleter(retries=0).delete_recursively(tree)

    assert len(refused) == 1
    assert len(handler_calls) == 1
    assert not tree.exists()


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="needs POSIX permissions enforced for the current user",
)
def test_delete_recursively_removes_readonly_directories(
    base_dir: Path, monkeypatch
) -> None:
    tree = _make_tree(base_dir)
    locked = tree / "a" / "b"
    os.chmod(locked, stat.S_IREAD | stat.S_IEXEC)
    handler_calls = _count_handler_calls(monkeypatch)

    RobustDeleter(retries=0).delete_recursively(tree)

    assert handler_calls
    assert not tree.exists()


def test_handler_leaves_symlink_target_permissions_alone(base_dir: Path) -> None:
    outside = base_dir / "outside.txt"
    outside.write_text("keep")
    os.chmod(outside, 0o644)
    tree = base_dir / "tree"
    tree.mkdir()
    link = tree / "link"
    try:
        link.symlink_to(outside)
    except (OSError, NotImplementedError):
        pytest.skip("symlinks not available")

    deleter._clear_readonly(os.unlink, str(link), None)

    assert not os.path.lexists(link)
    assert stat.S_IMODE(outside.stat().st_mode) == 0o644


def test_delete_recursively_missing_path_is_noop(base_dir: Path) -> None:
    RobustDeleter(retries=0)(base_dir / "missing")


def test_delete_recursively_single_file(base_dir: Path) -> None:
    target = base_dir / "single.txt"
    target.write_text("x")

    RobustDeleter(retries=0)(target)

    assert not target.exists()


def test_retries_with_backoff_then_raises(base_dir: Path, monkeypatch) -> None:
    tree = _make_tree(base_dir)
    sleeps: list[float] = []

    def failing_delete(_target: Path) -> None:
        raise PermissionError(13, "locked")

    monkeypatch.setattr(deleter, "_delete_once", failing_delete)
    monkeypatch.setattr(deleter.time, "sleep", sleeps.append)

    with pytest.raises(DeleteError) as exc_info:
        RobustDeleter(retries=2, delay_s=0.5).delete_recursively(tree)

    assert sleeps == [0.5, 1.0]
    assert isinstance(exc_info.value.__cause__, PermissionError)
    assert tree.exists()


def test_transient_failure_recovers(base_dir: Path, monkeypatch) -> None:
    tree = _make_tree(base_dir)
    real_delete = deleter._delete_once
    attempts: list[Path] = []

    def flaky_delete(target: Path) -> None:
        attempts.append(target)
        if len(attempts) == 1:
            raise PermissionError(13, "busy")
        real_delete(target)

    monkeypatch.setattr(deleter, "_delete_once", flaky_delete)
    monkeypatch.setattr(deleter.time, "sleep", lambda _s: None)

    RobustDeleter(retries=3, delay_s=0.1).delete_recursively(tree)

    assert len(attempts) == 2
    assert not tree.exists()


def test_module_level_delete_uses_settings(base_dir: Path, monkeypatch) -> None:
    tree = _make_tree(base_dir)
    sleeps: list[float] = []
    monkeypatch.setenv("DISAPPEARING_FILES_DELETE_RETRIES", "1")
    monkeypatch.setenv("DISAPPEARING_FILES_DELETE_DELAY", "0.25")

    def failing_delete(_target: Path) -> None:
        raise OSError("nope")

    monkeypatch.setattr(deleter, "_delete_once", failing_delete)
    monkeypatch.setattr(deleter.time, "sleep", sleeps.append)

    with pytest.raises(DeleteError):
        delete_recursively(tree)

    assert sleeps == [0.25]
