"""Metadata backends producing flat tag/value bags for timestamp resolution."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

import exiftool
from exiftool.exceptions import ExifToolException
from PIL import ExifTags, Image

from sortify.config.exceptions import ConfigError
from sortify.errors import MetadataExtractionError

LOGGER = logging.getLogger(__name__)

# Pillow names that differ from the ExifTool names the resolver expects.
PILLOW_TAG_ALIASES = {
    "DateTime": "ModifyDate",
    "SubsecTime": "SubSecTime",
    "SubsecTimeOriginal": "SubSecTimeOriginal",
    "SubsecTimeDigitized": "SubSecTimeDigitized",
}

_EXIFTOOL_SKIPPED_KEYS = {"SourceFile"}


class MetadataSource:
    """Interface for metadata backends.

    Subclasses return a mapping of tag name to string value, or raise
    :class:`MetadataExtractionError` when the file cannot be read by them.
    """

    name = "base"

    def extract(self, path: Path) -> Dict[str, str]:
        """Return metadata key/value pairs for the file."""
        raise NotImplementedError


class PillowExifSource(MetadataSource):
    """Read EXIF tags from still images using Pillow."""

    name = "pillow"

    def extract(self, path: Path) -> Dict[str, str]:
        try:
            with Image.open(path) as img:
                exif = img.getexif()
                tags: Dict[int, Any] = dict(exif.items())
                tags.update(exif.get_ifd(ExifTags.IFD.Exif).items())
        except Exception as exc:  # corrupt or oversized images raise assorted Pillow errors
            raise MetadataExtractionError(f"Pillow could not read {path}: {exc}") from exc

        if not tags:
            raise MetadataExtractionError(f"No EXIF data found in {path}")

        metadata: Dict[str, str] = {}
        for tag_id, value in tags.items():
            tag_name = ExifTags.TAGS.get(tag_id)
            if tag_name is None:
                continue
            metadata[PILLOW_TAG_ALIASES.get(tag_name, tag_name)] = _stringify(value)
        return metadata


class ExifToolSource(MetadataSource):
    """Read photo and video metadata through the ExifTool executable.

    ExifTool reports keys as ``Group:Tag``. Keys are flattened to bare tag
    names (first group wins) except maker-note tags, which become
    ``MakerNote<Tag>`` so they cannot shadow the standard EXIF fields.
    """

    name = "exiftool"

    def __init__(self, executable: str = "exiftool") -> None:
        self.executable = executable

    def extract(self, path: Path) -> Dict[str, str]:
        try:
            with exiftool.ExifToolHelper(executable=self.executable, common_args=["-G"]) as et:
                records = et.get_metadata(str(path))
        except (ExifToolException, OSError) as exc:
            raise MetadataExtractionError(f"ExifTool could not read {path}: {exc}") from exc

        if not records:
            raise MetadataExtractionError(f"ExifTool returned no metadata for {path}")
        return flatten_exiftool_record(records[0])


def flatten_exiftool_record(record: Mapping[str, Any]) -> Dict[str, str]:
    """Flatten a ``Group:Tag`` keyed ExifTool record into bare tag names."""
    metadata: Dict[str, str] = {}
    for key, value in record.items():
        group, _, tag = key.rpartition(":")
        if tag in _EXIFTOOL_SKIPPED_KEYS:
            continue
        if group == "MakerNotes":
            tag = f"MakerNote{tag}"
        metadata.setdefault(tag, _stringify(value))
    return metadata


def _stringify(value: Any) -> str:
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return str(value).strip().rstrip("\x00")


SOURCE_REGISTRY = {
    PillowExifSource.name: PillowExifSource,
    ExifToolSource.name: ExifToolSource,
}


def build_sources(names: Iterable[str], *, exiftool_path: str = "exiftool") -> List[MetadataSource]:
    """Instantiate metadata backends in the given priority order.

    Raises:
        ConfigError: If a name is unknown or no backend is configured.
    """
    sources: List[MetadataSource] = []
    for name in names:
        if name == ExifToolSource.name:
            sources.append(ExifToolSource(executable=exiftool_path))
        elif name in SOURCE_REGISTRY:
            sources.append(SOURCE_REGISTRY[name]())
        else:
            known = ", ".join(sorted(SOURCE_REGISTRY))
            raise ConfigError(f"Unknown metadata source '{name}'. Expected one of: {known}.")
    if not sources:
        raise ConfigError("At least one metadata source must be configured.")
    LOGGER.debug("Metadata sources in priority order: %s", [source.name for source in sources])
    return sources


__all__ = [
    "MetadataSource",
    "PillowExifSource",
    "ExifToolSource",
    "PILLOW_TAG_ALIASES",
    "SOURCE_REGISTRY",
    "build_sources",
    "flatten_exiftool_record",
]
