"""Canonical, date-partitioned file naming with deterministic tie-breaks."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from sortify.ingestion.models import CaptureTimestamp

MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def bucket_for(timestamp: CaptureTimestamp) -> str:
    """Return the ``YYYY/MM-Mon`` directory bucket for ``timestamp``."""
    instant = timestamp.instant
    return f"{instant.year:04d}/{instant.month:02d}-{MONTH_ABBREVIATIONS[instant.month - 1]}"


class FilenameGenerator:
    """Build relative output paths such as ``2025/09-Sep/20250924_082049.680.jpg``."""

    def name(
        self,
        timestamp: CaptureTimestamp,
        extension: str,
        claimed: Sequence[str] = (),
    ) -> str:
        """Return the first canonical path not present in ``claimed``.

        The unsuffixed name is tried first, then ``-2``, ``-3``, ... inserted
        after the millisecond field. ``claimed`` is never modified; callers
        record the winning name once the file has actually been placed.

        Args:
            timestamp: Capture timestamp of the file.
            extension: Lowercase extension without the leading dot.
            claimed: Relative paths already assigned in the same bucket.

        Returns:
            str: Relative POSIX path for the file.
        """

        taken = set(claimed)
        candidate = self._render(timestamp, extension, None)
        counter = 2
        while candidate in taken:
            candidate = self._render(timestamp, extension, counter)
            counter += 1
        return candidate

    def _render(self, timestamp: CaptureTimestamp, extension: str, counter: int | None) -> str:
        instant = timestamp.instant
        stem = (
            f"{instant.year:04d}{instant.month:02d}{instant.day:02d}_"
            f"{instant.hour:02d}{instant.minute:02d}{instant.second:02d}"
            f".{timestamp.millisecond:03d}"
        )
        if counter is not None:
            stem = f"{stem}-{counter}"
        filename = f"{stem}.{extension}" if extension else stem
        return f"{bucket_for(timestamp)}/{filename}"


_DEFAULT_GENERATOR = FilenameGenerator()


def generate_filename(
    timestamp: CaptureTimestamp, extension: str, claimed: Sequence[str] = ()
) -> str:
    """Return the canonical relative path using a shared generator."""
    return _DEFAULT_GENERATOR.name(timestamp, extension, claimed)


__all__ = ["MONTH_ABBREVIATIONS", "FilenameGenerator", "bucket_for", "generate_filename"]
