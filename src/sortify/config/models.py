"""Configuration models describing Sortify settings."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PlacementMode = Literal["move", "copy", "symlink"]
ConflictPolicy = Literal["suffix", "skip", "overwrite"]
MetadataBackend = Literal["pillow", "exiftool"]

DEFAULT_MEDIA_EXTENSIONS = [
    "jpg",
    "jpeg",
    "png",
    "tiff",
    "tif",
    "hif",
    "heic",
    "cr2",
    "mov",
    "mp4",
    "avi",
    "3gp",
    "dng",
    "m4v",
    "mkv",
]


class SortifyBaseModel(BaseModel):
    """Shared configuration for Sortify Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class ProcessingOptions(SortifyBaseModel):
    """Options governing metadata extraction and hashing.

    Attributes:
        workers: Size of the worker pool; half of the CPU count when unset.
        metadata_sources: Metadata backends tried in priority order.
        exiftool_path: Executable used by the ExifTool backend.
        allow_mtime_fallback: Use the file modification time when every
            backend fails to provide a capture timestamp.
        hash_chunk_size: Chunk size in bytes for streaming content hashes.
        recent_year_cutoff: Filesystem-derived dates after this year are
            treated as copy/transfer stamps rather than capture dates.
    """

    workers: Optional[int] = Field(default=None, ge=1)
    metadata_sources: List[MetadataBackend] = Field(
        default_factory=lambda: ["pillow", "exiftool"], min_length=1
    )
    exiftool_path: str = "exiftool"
    allow_mtime_fallback: bool = False
    hash_chunk_size: int = Field(default=65_536, gt=0)
    recent_year_cutoff: int = 2024


class OrganizationOptions(SortifyBaseModel):
    """Settings that govern how files are placed in the output tree.

    Attributes:
        output_dir: Root of the date-partitioned output tree.
        mode: Filesystem operation applied to every file in a run.
        on_conflict: Policy when a destination exists with different content.
    """

    output_dir: str = "."
    mode: PlacementMode = "move"
    on_conflict: ConflictPolicy = "suffix"


class DiscoveryOptions(SortifyBaseModel):
    """Settings used when scanning directories for media files.

    Attributes:
        recursive: Whether to descend into subdirectories.
        include_hidden: Whether dot-files and dot-directories are included.
        extensions: Case-insensitive file extensions treated as media.
        limit: Maximum number of files to process (0 processes everything).
    """

    recursive: bool = True
    include_hidden: bool = False
    extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_MEDIA_EXTENSIONS))
    limit: int = Field(default=0, ge=0)


class LoggingSettings(SortifyBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional log file path; enables a rotating file handler.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(SortifyBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class SortifyConfig(SortifyBaseModel):
    """Top-level configuration struct for Sortify.

    Attributes:
        processing: Extraction and hashing settings.
        organization: Output placement settings.
        discovery: Directory scanning settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    processing: ProcessingOptions = Field(default_factory=ProcessingOptions)
    organization: OrganizationOptions = Field(default_factory=OrganizationOptions)
    discovery: DiscoveryOptions = Field(default_factory=DiscoveryOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "SortifyBaseModel",
    "PlacementMode",
    "ConflictPolicy",
    "MetadataBackend",
    "DEFAULT_MEDIA_EXTENSIONS",
    "ProcessingOptions",
    "OrganizationOptions",
    "DiscoveryOptions",
    "LoggingSettings",
    "CLIOptions",
    "SortifyConfig",
]
