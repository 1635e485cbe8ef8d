"""Capture timestamp resolution from flat metadata bags.

Metadata backends report dates under ExifTool-style tag names. Photos and
videos carry different tags, so a bag is first classified and then the
matching priority list is walked until one field parses. A field that fails
to parse is never fatal; the resolver only gives up once every candidate has
been tried.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional, Tuple

from sortify.errors import NoTimestampFound

from .models import CaptureTimestamp, MetadataBag

LOGGER = logging.getLogger(__name__)

VIDEO_MARKER_FIELDS = ("MediaCreateDate", "MediaModifyDate")

PRECOMBINED_SUBSECOND_FIELDS = (
    "SubSecCreateDate",
    "SubSecDateTimeOriginal",
    "SubSecModifyDate",
)
SUBSECOND_PAIRS = (
    ("DateTimeOriginal", "SubSecTimeOriginal"),
    ("ModifyDate", "SubSecTime"),
    ("DateTimeDigitized", "SubSecTimeDigitized"),
)
PHOTO_BASE_FIELDS = (
    "DateTimeOriginal",
    "ModifyDate",
    "DateTimeDigitized",
    "FileModifyDate",
)
LAST_RESORT_FIELD = "CreateDate"

VIDEO_FIELDS = (
    "DateTimeOriginal",
    "CreationDate",
    "MediaCreateDate",
    "TrackCreateDate",
    "CreateDate",
    "MakerNoteCreateDate",
    "MediaModifyDate",
    "TrackModifyDate",
    "ModifyDate",
    "MakerNoteModifyDate",
    "NikonDateTime",
    "FileModifyDate",
)

DEFAULT_RECENT_YEAR_CUTOFF = 2024

# Video fields held to the recency cutoff in addition to File* fields.
VIDEO_RECENCY_CHECKED_FIELDS = ("DateTimeOriginal",)

_DATE_FORMATS = ("%Y:%m:%d %H:%M:%S", "%Y-%m-%d %H:%M:%S")
_OFFSET_LENGTH = 6
_QUOTES = "\"'"
_ZERO_PUNCTUATION = str.maketrans("", "", ":-. ")


class TimestampParseError(ValueError):
    """Raised when a single metadata value is not a usable timestamp."""


def parse_timestamp(raw: str) -> CaptureTimestamp:
    """Parse an EXIF or ISO style timestamp string.

    Accepts ``YYYY:MM:DD`` or ``YYYY-MM-DD`` dates, a space or ``T`` between
    date and time, an optional fractional-seconds suffix, and an optional
    ``+HH:MM``/``-HH:MM`` offset which is discarded. The wall-clock value is
    taken as UTC.

    Args:
        raw: Value as reported by a metadata backend.

    Returns:
        CaptureTimestamp: Parsed instant and millisecond fraction.

    Raises:
        TimestampParseError: If the date, time, or fraction is malformed.
    """

    text = raw.strip()
    main, fraction = text, ""
    if "." in text:
        main, fraction = text.rsplit(".", 1)
        sign_positions = [pos for pos in (fraction.find("+"), fraction.find("-")) if pos >= 0]
        if sign_positions:
            fraction = fraction[: min(sign_positions)]

    main = _strip_offset(main.strip())
    if main.count("T") > 1:
        raise TimestampParseError(f"Invalid ISO timestamp format: {raw!r}")
    main = main.replace("T", " ")

    naive: Optional[datetime] = None
    for fmt in _DATE_FORMATS:
        try:
            naive = datetime.strptime(main, fmt)
            break
        except ValueError:
            continue
    if naive is None:
        raise TimestampParseError(f"Failed to parse timestamp: {raw!r}")

    return CaptureTimestamp(instant=naive, millisecond=parse_milliseconds(fraction))


def parse_milliseconds(fraction: str) -> int:
    """Convert a fractional-seconds string into whole milliseconds.

    Quotes are stripped, digits past the third are truncated, and shorter
    values are right-padded with zeros, so ``"68"`` becomes 680.
    """

    digits = fraction.strip().strip(_QUOTES)[:3]
    if digits and not digits.isdigit():
        raise TimestampParseError(f"Failed to parse subseconds: {fraction!r}")
    return int(digits.ljust(3, "0"))


def is_zero_timestamp(raw: str) -> bool:
    """Return True for placeholder values such as ``0000:00:00 00:00:00``."""
    return not raw.translate(_ZERO_PUNCTUATION).strip().replace("0", "")


def is_video_metadata(metadata: MetadataBag) -> bool:
    """Return True when the bag carries video-only date fields."""
    return any(field in metadata for field in VIDEO_MARKER_FIELDS)


def _strip_offset(value: str) -> str:
    if len(value) > _OFFSET_LENGTH and value[-_OFFSET_LENGTH] in "+-":
        return value[:-_OFFSET_LENGTH].rstrip()
    return value


def _is_filesystem_field(name: str) -> bool:
    return name.startswith("File")


class TimestampResolver:
    """Pick the best capture timestamp from a metadata bag."""

    def __init__(self, *, recent_year_cutoff: int = DEFAULT_RECENT_YEAR_CUTOFF) -> None:
        self.recent_year_cutoff = recent_year_cutoff

    def resolve(self, metadata: MetadataBag) -> CaptureTimestamp:
        """Return the capture timestamp for ``metadata``.

        Raises:
            NoTimestampFound: If no candidate field is present and parseable.
        """

        if is_video_metadata(metadata):
            found = self._first_parsed(
                metadata, VIDEO_FIELDS, recency_checked=VIDEO_RECENCY_CHECKED_FIELDS
            )
            kind = "video"
        else:
            found = self._resolve_photo(metadata)
            kind = "photo"

        if found is None:
            raise NoTimestampFound(f"No valid timestamp found in {kind} metadata")
        field, timestamp = found
        LOGGER.debug("Resolved %s timestamp from %s: %s", kind, field, timestamp.isoformat())
        return timestamp

    def _resolve_photo(self, metadata: MetadataBag) -> Optional[Tuple[str, CaptureTimestamp]]:
        found = self._first_parsed(metadata, PRECOMBINED_SUBSECOND_FIELDS)
        if found is not None:
            return found

        for base_field, fraction_field in SUBSECOND_PAIRS:
            base = metadata.get(base_field)
            fraction = metadata.get(fraction_field)
            if base is None or fraction is None:
                continue
            combined = f"{base.strip()}.{fraction.strip().ljust(3, '0')}"
            try:
                return f"{base_field}+{fraction_field}", parse_timestamp(combined)
            except TimestampParseError as exc:
                LOGGER.debug("Skipping %s/%s: %s", base_field, fraction_field, exc)

        found = self._first_parsed(metadata, PHOTO_BASE_FIELDS)
        if found is not None:
            return found

        return self._first_parsed(metadata, (LAST_RESORT_FIELD,))

    def _first_parsed(
        self,
        metadata: MetadataBag,
        fields: Iterable[str],
        *,
        recency_checked: Tuple[str, ...] = (),
    ) -> Optional[Tuple[str, CaptureTimestamp]]:
        for field in fields:
            raw = metadata.get(field)
            if raw is None:
                continue
            if field == LAST_RESORT_FIELD and is_zero_timestamp(raw):
                LOGGER.debug("Skipping zero-valued %s", field)
                continue
            try:
                timestamp = parse_timestamp(raw)
            except TimestampParseError as exc:
                LOGGER.debug("Skipping %s: %s", field, exc)
                continue
            suspect = _is_filesystem_field(field) or field in recency_checked
            if suspect and timestamp.instant.year > self.recent_year_cutoff:
                LOGGER.debug("Skipping %s: %s is newer than the recency cutoff", field, raw)
                continue
            return field, timestamp
        return None


_DEFAULT_RESOLVER = TimestampResolver()


def resolve_capture_timestamp(metadata: MetadataBag) -> CaptureTimestamp:
    """Resolve ``metadata`` with the default recency cutoff."""
    return _DEFAULT_RESOLVER.resolve(metadata)


__all__ = [
    "TimestampParseError",
    "TimestampResolver",
    "parse_timestamp",
    "parse_milliseconds",
    "is_zero_timestamp",
    "is_video_metadata",
    "resolve_capture_timestamp",
]
