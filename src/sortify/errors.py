"""Errors raised while analyzing and placing individual media files."""


class IngestionError(Exception):
    """Base exception for per-file ingestion failures."""


class SourceUnreadable(IngestionError):
    """Raised when an input cannot be read (symlink, missing, or locked)."""


class MetadataExtractionError(IngestionError):
    """Raised by a metadata backend that could not produce a metadata bag."""


class NoTimestampFound(IngestionError):
    """Raised when no candidate field in a metadata bag yields a capture time."""


class HashFailure(IngestionError):
    """Raised when a content hash cannot be computed for a colliding pair."""


class PlacementError(IngestionError):
    """Raised when a filesystem mutation fails part-way through."""


__all__ = [
    "IngestionError",
    "SourceUnreadable",
    "MetadataExtractionError",
    "NoTimestampFound",
    "HashFailure",
    "PlacementError",
]
