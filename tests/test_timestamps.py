"""Tests for capture timestamp parsing and resolution."""

from datetime import datetime, timezone

import pytest

from sortify.errors import NoTimestampFound
from sortify.ingestion.models import CaptureTimestamp
from sortify.ingestion.timestamps import (
    TimestampParseError,
    TimestampResolver,
    is_video_metadata,
    is_zero_timestamp,
    parse_milliseconds,
    parse_timestamp,
    resolve_capture_timestamp,
)


def _utc(*parts: int) -> datetime:
    return datetime(*parts, tzinfo=timezone.utc)


def test_precombined_subsecond_field_beats_base_and_fraction() -> None:
    metadata = {
        "SubSecDateTimeOriginal": "2025:09:24 08:20:49.123",
        "DateTimeOriginal": "2025:01:01 00:00:00",
        "SubSecTimeOriginal": "999",
    }

    timestamp = resolve_capture_timestamp(metadata)

    assert timestamp.instant == _utc(2025, 9, 24, 8, 20, 49)
    assert timestamp.millisecond == 123


@pytest.mark.parametrize(
    ("fraction", "expected"),
    [("68", 680), ("5", 500), ("123456", 123), ('"7"', 700)],
)
def test_base_plus_fraction_pads_and_truncates(fraction: str, expected: int) -> None:
    metadata = {"DateTimeOriginal": "2025:09:24 08:20:49", "SubSecTimeOriginal": fraction}

    assert resolve_capture_timestamp(metadata).millisecond == expected


def test_modify_date_alone_has_zero_milliseconds() -> None:
    timestamp = resolve_capture_timestamp({"ModifyDate": "2025:09:24 08:20:49"})

    assert timestamp.instant == _utc(2025, 9, 24, 8, 20, 49)
    assert timestamp.millisecond == 0


def test_unparseable_field_falls_through_to_next_candidate() -> None:
    metadata = {"DateTimeOriginal": "not a date", "ModifyDate": "2021:03:04 05:06:07"}

    assert resolve_capture_timestamp(metadata).instant == _utc(2021, 3, 4, 5, 6, 7)


def test_zero_create_date_is_ignored() -> None:
    with pytest.raises(NoTimestampFound):
        resolve_capture_timestamp({"CreateDate": "0000:00:00 00:00:00"})


def test_create_date_is_last_resort_for_photos() -> None:
    metadata = {"CreateDate": "2019:07:08 09:10:11", "DateTimeDigitized": "2018:01:01 00:00:00"}

    assert resolve_capture_timestamp(metadata).instant.year == 2018


def test_recent_filesystem_dates_are_skipped() -> None:
    resolver = TimestampResolver(recent_year_cutoff=2024)

    with pytest.raises(NoTimestampFound):
        resolver.resolve({"FileModifyDate": "2025:10:01 12:00:00+02:00"})

    older = resolver.resolve({"FileModifyDate": "2019:10:01 12:00:00+02:00"})
    assert older.instant == _utc(2019, 10, 1, 12, 0, 0)


def test_media_dates_classify_bag_as_video() -> None:
    metadata = {
        "MediaCreateDate": "2023:05:01 10:00:00",
        "CreationDate": "2023:05:01 12:00:00+02:00",
    }

    assert is_video_metadata(metadata)
    # CreationDate outranks MediaCreateDate for videos; the offset is discarded.
    assert resolve_capture_timestamp(metadata).instant == _utc(2023, 5, 1, 12, 0, 0)


def test_recent_original_date_on_video_falls_back_to_media_date() -> None:
    resolver = TimestampResolver(recent_year_cutoff=2024)
    metadata = {
        "DateTimeOriginal": "2026:01:01 00:00:00",
        "MediaCreateDate": "2023:05:01 10:00:00",
    }

    assert resolver.resolve(metadata).instant == _utc(2023, 5, 1, 10, 0, 0)


def test_older_original_date_on_video_wins() -> None:
    resolver = TimestampResolver(recent_year_cutoff=2024)
    metadata = {
        "DateTimeOriginal": "2022:02:03 04:05:06",
        "MediaCreateDate": "2023:05:01 10:00:00",
    }

    assert resolver.resolve(metadata).instant == _utc(2022, 2, 3, 4, 5, 6)


def test_video_without_usable_dates_raises() -> None:
    with pytest.raises(NoTimestampFound, match="video"):
        resolve_capture_timestamp({"MediaModifyDate": "0000:00:00 00:00:00 garbage"})


def test_photo_bag_is_not_video() -> None:
    assert not is_video_metadata({"DateTimeOriginal": "2025:09:24 08:20:49"})


def test_parse_timestamp_accepts_iso_with_offset_and_fraction() -> None:
    timestamp = parse_timestamp("2025-09-24T08:20:49.68+02:00")

    assert timestamp.instant == _utc(2025, 9, 24, 8, 20, 49)
    assert timestamp.millisecond == 680


def test_parse_timestamp_strips_offset_without_fraction() -> None:
    timestamp = parse_timestamp("2025:09:24 08:20:49-07:00")

    assert timestamp.instant == _utc(2025, 9, 24, 8, 20, 49)


@pytest.mark.parametrize("raw", ["", "yesterday", "2025:13:40 25:00:00", "2025-09-24T08T20:49"])
def test_parse_timestamp_rejects_malformed_values(raw: str) -> None:
    with pytest.raises(TimestampParseError):
        parse_timestamp(raw)


def test_parse_milliseconds_rejects_non_digits() -> None:
    with pytest.raises(TimestampParseError):
        parse_milliseconds("1a")
    assert parse_milliseconds("") == 0


def test_is_zero_timestamp() -> None:
    assert is_zero_timestamp("0000:00:00 00:00:00")
    assert not is_zero_timestamp("2000:00:00 00:00:00")


def test_capture_timestamp_normalizes_to_utc() -> None:
    aware = datetime(2025, 1, 1, 12, 0, 0).astimezone()
    timestamp = CaptureTimestamp(instant=aware, millisecond=7)

    assert timestamp.instant.tzinfo == timezone.utc
    assert timestamp.isoformat().endswith(".007Z")
