"""Filesystem mutations applied when placing organized files."""

from __future__ import annotations

import errno
import logging
import shutil
from pathlib import Path

from sortify.errors import PlacementError

LOGGER = logging.getLogger(__name__)

PLACEMENT_MODES = ("move", "copy", "symlink")


class OperationExecutor:
    """Move, copy, or link a single file into its destination."""

    def apply(
        self,
        source: Path,
        destination: Path,
        mode: str,
        *,
        replace: bool = False,
    ) -> None:
        """Place ``source`` at ``destination`` according to ``mode``.

        Args:
            source: Existing input file.
            destination: Absolute target path; missing parents are created.
            mode: One of ``move``, ``copy``, or ``symlink``.
            replace: Replace an existing destination instead of failing.

        Raises:
            ValueError: If ``mode`` is not a supported placement mode.
            FileNotFoundError: If ``source`` is missing.
            FileExistsError: If ``destination`` exists and ``replace`` is false.
            PlacementError: If a cross-device move copied the file but could
                not remove the original.
            OSError: For any other filesystem failure.
        """

        if mode not in PLACEMENT_MODES:
            raise ValueError(f"Invalid mode: {mode}. Must be 'move', 'copy', or 'symlink'")
        if not source.exists():
            raise FileNotFoundError(f"Source file does not exist: {source}")

        LOGGER.debug("Attempting %s operation: '%s' -> '%s'", mode, source, destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        if destination.exists() or destination.is_symlink():
            if not replace:
                raise FileExistsError(f"Destination already exists: {destination}")
            # Replace the link entry, never the file it points to.
            if mode == "symlink" or destination.is_symlink():
                destination.unlink()

        if mode == "move":
            self._move(source, destination)
        elif mode == "copy":
            self._copy(source, destination)
        else:
            destination.symlink_to(source.resolve())

    def _move(self, source: Path, destination: Path) -> None:
        try:
            source.replace(destination)
            return
        except OSError as exc:
            if exc.errno != errno.EXDEV:
                raise

        LOGGER.debug("Cross-device move detected, using copy+delete for %s", source)
        self._copy(source, destination)
        try:
            source.unlink()
        except OSError as exc:
            raise PlacementError(
                f"Copied to {destination} but failed to remove original {source}: {exc}"
            ) from exc

    def _copy(self, source: Path, destination: Path) -> None:
        existed = destination.exists()
        try:
            shutil.copy2(source, destination)
        except OSError:
            if not existed:
                destination.unlink(missing_ok=True)
            raise


__all__ = ["OperationExecutor", "PLACEMENT_MODES"]
