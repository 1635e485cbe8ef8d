"""Streaming content hashes for duplicate detection."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable

import xxhash

from sortify.errors import HashFailure

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


class ContentHasher:
    """Compute fast, non-cryptographic content fingerprints.

    Files are streamed in fixed-size chunks through XXH3-64, so large videos
    are never held in memory. Instances carry no mutable state and may be
    shared between threads.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size

    def hash(self, path: Path) -> str:
        """Return the 16-character lowercase hex digest of ``path``.

        Raises:
            HashFailure: If the file cannot be opened or read.
        """
        digest = xxhash.xxh3_64()
        try:
            with Path(path).open("rb") as fh:
                for chunk in iter(lambda: fh.read(self.chunk_size), b""):
                    digest.update(chunk)
        except OSError as exc:
            raise HashFailure(f"Failed to hash {path}: {exc}") from exc
        return digest.hexdigest()

    def hash_many(self, paths: Iterable[Path]) -> Dict[Path, str]:
        """Hash each path, omitting (and logging) those that cannot be read."""
        index: Dict[Path, str] = {}
        for path in paths:
            try:
                index[path] = self.hash(path)
            except HashFailure as exc:
                LOGGER.warning("%s", exc)
        return index


__all__ = ["ContentHasher", "DEFAULT_CHUNK_SIZE"]
