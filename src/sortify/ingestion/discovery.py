"""Media file discovery."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, List

LOGGER = logging.getLogger(__name__)


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


class MediaScanner:
    """Discover media files within directory trees subject to configuration filters."""

    def __init__(
        self,
        *,
        recursive: bool,
        include_hidden: bool,
        extensions: Iterable[str],
        limit: int = 0,
    ) -> None:
        self.recursive = recursive
        self.include_hidden = include_hidden
        self.extensions = {ext.lower().lstrip(".") for ext in extensions}
        self.limit = limit

    def scan(self, roots: Iterable[Path]) -> List[Path]:
        """Return sorted, de-duplicated media paths found under ``roots``.

        Symbolic links are kept so the pipeline can report them as skipped.
        """
        found = set()
        for root in roots:
            root = root.expanduser()
            LOGGER.info("Scanning directory: %s", root)
            before = len(found)
            found.update(self._iter_media(root))
            LOGGER.info("Found %d files in %s", len(found) - before, root)

        files = sorted(found)
        if self.limit > 0 and self.limit < len(files):
            LOGGER.info("Limiting to %d files (found %d)", self.limit, len(files))
            files = files[: self.limit]
        return files

    def _iter_media(self, root: Path) -> Iterator[Path]:
        for path in self._iter_paths(root):
            if not (path.is_file() or path.is_symlink()):
                continue
            if path.suffix.lower().lstrip(".") not in self.extensions:
                continue
            try:
                relative = path.relative_to(root)
            except ValueError:
                relative = Path(path.name)
            if not self.include_hidden and _is_hidden(relative):
                continue
            yield path

    def _iter_paths(self, root: Path) -> Iterable[Path]:
        if not root.exists() and not root.is_symlink():
            return
        if not root.is_dir():
            yield root
            return

        if self.recursive:
            yield from root.rglob("*")
        else:
            yield from root.iterdir()


__all__ = ["MediaScanner"]
