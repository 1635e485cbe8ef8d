"""Tests for filesystem placement operations."""

import errno
from pathlib import Path

import pytest

from sortify.errors import PlacementError
from sortify.organization.executor import OperationExecutor


def _source(tmp_path: Path, content: bytes = b"image-bytes") -> Path:
    path = tmp_path / "inbox" / "IMG_0001.JPG"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def test_move_creates_parents_and_removes_source(tmp_path: Path) -> None:
    source = _source(tmp_path)
    destination = tmp_path / "out" / "2025" / "09-Sep" / "20250924_082049.000.jpg"

    OperationExecutor().apply(source, destination, "move")

    assert destination.read_bytes() == b"image-bytes"
    assert not source.exists()


def test_copy_preserves_source(tmp_path: Path) -> None:
    source = _source(tmp_path)
    destination = tmp_path / "out" / "copy.jpg"

    OperationExecutor().apply(source, destination, "copy")

    assert destination.read_bytes() == source.read_bytes()
    assert source.exists()


def test_symlink_points_to_resolved_source(tmp_path: Path) -> None:
    source = _source(tmp_path)
    destination = tmp_path / "out" / "link.jpg"

    OperationExecutor().apply(source, destination, "symlink")

    assert destination.is_symlink()
    assert destination.resolve() == source.resolve()


def test_existing_destination_is_refused_without_replace(tmp_path: Path) -> None:
    source = _source(tmp_path)
    destination = tmp_path / "out" / "taken.jpg"
    destination.parent.mkdir(parents=True)
    destination.write_bytes(b"other")

    with pytest.raises(FileExistsError):
        OperationExecutor().apply(source, destination, "copy")
    assert destination.read_bytes() == b"other"


@pytest.mark.parametrize("mode", ["move", "copy", "symlink"])
def test_replace_overwrites_existing_destination(tmp_path: Path, mode: str) -> None:
    source = _source(tmp_path, b"new")
    destination = tmp_path / "out" / "taken.jpg"
    destination.parent.mkdir(parents=True)
    destination.write_bytes(b"old")

    OperationExecutor().apply(source, destination, mode, replace=True)

    assert destination.read_bytes() == b"new"


def test_invalid_mode_is_rejected(tmp_path: Path) -> None:
    source = _source(tmp_path)

    with pytest.raises(ValueError, match="Invalid mode"):
        OperationExecutor().apply(source, tmp_path / "out.jpg", "hardlink")


def test_missing_source_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        OperationExecutor().apply(tmp_path / "missing.jpg", tmp_path / "out.jpg", "copy")


def test_cross_device_move_falls_back_to_copy(tmp_path: Path, monkeypatch) -> None:
    source = _source(tmp_path)
    destination = tmp_path / "other-volume" / "moved.jpg"

    def _cross_device(self: Path, target: Path) -> Path:
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    monkeypatch.setattr(Path, "replace", _cross_device)

    OperationExecutor().apply(source, destination, "move")

    assert destination.read_bytes() == b"image-bytes"
    assert not source.exists()


def test_cross_device_move_reports_leftover_original(tmp_path: Path, monkeypatch) -> None:
    source = _source(tmp_path)
    destination = tmp_path / "other-volume" / "moved.jpg"
    original_unlink = Path.unlink

    def _cross_device(self: Path, target: Path) -> Path:
        raise OSError(errno.EXDEV, "Invalid cross-device link")

    def _locked_source(self: Path, missing_ok: bool = False) -> None:
        if self == source:
            raise PermissionError(errno.EACCES, "Permission denied", str(self))
        original_unlink(self, missing_ok=missing_ok)

    monkeypatch.setattr(Path, "replace", _cross_device)
    monkeypatch.setattr(Path, "unlink", _locked_source)

    with pytest.raises(PlacementError, match="failed to remove original"):
        OperationExecutor().apply(source, destination, "move")

    assert destination.read_bytes() == b"image-bytes"
    assert source.exists()


def test_copy_replace_does_not_write_through_symlink(tmp_path: Path) -> None:
    source = _source(tmp_path, b"new")
    elsewhere = tmp_path / "library" / "keep.jpg"
    elsewhere.parent.mkdir(parents=True)
    elsewhere.write_bytes(b"precious")
    destination = tmp_path / "out" / "taken.jpg"
    destination.parent.mkdir(parents=True)
    destination.symlink_to(elsewhere)

    OperationExecutor().apply(source, destination, "copy", replace=True)

    assert not destination.is_symlink()
    assert destination.read_bytes() == b"new"
    assert elsewhere.read_bytes() == b"precious"
