"""Media ingestion: metadata extraction, timestamp resolution, and placement."""

from .discovery import MediaScanner
from .extractors import ExifToolSource, MetadataSource, PillowExifSource, build_sources
from .hashing import ContentHasher
from .models import AnalysisOutcome, BatchReport, CaptureTimestamp, FileOperationResult
from .pipeline import IngestionPipeline
from .timestamps import TimestampResolver, resolve_capture_timestamp

__all__ = [
    "AnalysisOutcome",
    "BatchReport",
    "CaptureTimestamp",
    "ContentHasher",
    "ExifToolSource",
    "FileOperationResult",
    "IngestionPipeline",
    "MediaScanner",
    "MetadataSource",
    "PillowExifSource",
    "TimestampResolver",
    "build_sources",
    "resolve_capture_timestamp",
]
