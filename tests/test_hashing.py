"""Tests for content hashing."""

from pathlib import Path

import pytest

from sortify.errors import HashFailure
from sortify.ingestion.hashing import ContentHasher


def test_hash_is_stable_and_path_independent(tmp_path: Path) -> None:
    first = tmp_path / "a.jpg"
    second = tmp_path / "nested" / "b.jpg"
    second.parent.mkdir()
    payload = b"\xff\xd8" + bytes(range(256)) * 1000
    first.write_bytes(payload)
    second.write_bytes(payload)

    hasher = ContentHasher()

    digest = hasher.hash(first)
    assert digest == hasher.hash(first)
    assert digest == hasher.hash(second)
    assert len(digest) == 16
    assert digest == digest.lower()


def test_chunk_size_does_not_change_digest(tmp_path: Path) -> None:
    path = tmp_path / "clip.mov"
    path.write_bytes(b"0123456789" * 10_000)

    assert ContentHasher(chunk_size=7).hash(path) == ContentHasher().hash(path)


def test_different_content_hashes_differ(tmp_path: Path) -> None:
    first = tmp_path / "a.jpg"
    second = tmp_path / "b.jpg"
    first.write_bytes(b"one")
    second.write_bytes(b"two")

    hasher = ContentHasher()

    assert hasher.hash(first) != hasher.hash(second)


def test_missing_file_raises_hash_failure(tmp_path: Path) -> None:
    with pytest.raises(HashFailure, match="Failed to hash"):
        ContentHasher().hash(tmp_path / "missing.jpg")


def test_hash_many_omits_unreadable_files(tmp_path: Path) -> None:
    present = tmp_path / "present.jpg"
    present.write_bytes(b"data")
    missing = tmp_path / "missing.jpg"

    index = ContentHasher().hash_many([present, missing])

    assert list(index) == [present]


def test_chunk_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ContentHasher(chunk_size=0)
