"""Data models produced and consumed by the ingestion pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

MetadataBag = Mapping[str, str]

ErrorKind = Literal["source-unreadable", "no-timestamp", "filesystem"]
PlacementStatus = Literal[
    "renamed",
    "skipped-duplicate",
    "skipped-noop",
    "skipped-symlink",
    "skipped-conflict",
    "failed-analysis",
    "failed-io",
]


class CaptureTimestamp(BaseModel):
    """When a media file was captured, with millisecond precision.

    Attributes:
        instant: Capture instant in UTC; naive values are read as UTC.
        millisecond: Sub-second fraction in milliseconds.
    """

    model_config = ConfigDict(frozen=True)

    instant: datetime
    millisecond: int = Field(default=0, ge=0, le=999)

    @field_validator("instant")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def isoformat(self) -> str:
        """Return an ISO-8601 rendering such as ``2025-09-24T08:20:49.680Z``."""
        return f"{self.instant.strftime('%Y-%m-%dT%H:%M:%S')}.{self.millisecond:03d}Z"


class AnalysisOutcome(BaseModel):
    """Result of Phase 1 analysis for a single input file.

    Attributes:
        source: Input path as given to the pipeline.
        success: Whether a capture timestamp and proposed path were produced.
        timestamp: Resolved capture timestamp.
        extension: Normalized lowercase extension without the dot.
        proposed_path: Provisional relative output path (POSIX separators).
        metadata_source: Backend that produced the timestamp, or ``mtime``.
        error: Human-readable reason when analysis failed or was skipped.
        error_kind: Error taxonomy entry for failed outcomes.
        skipped: True when the file was deliberately skipped (e.g. symlink).
    """

    model_config = ConfigDict(frozen=True)

    source: Path
    success: bool
    timestamp: Optional[CaptureTimestamp] = None
    extension: str = ""
    proposed_path: Optional[str] = None
    metadata_source: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    skipped: bool = False


class FileOperationResult(BaseModel):
    """Externally visible outcome for one input file.

    Attributes:
        source: Input path.
        success: False only for analysis and filesystem failures.
        relocated: True when the file was moved, copied, or linked.
        status: Final placement state.
        destination: Absolute destination path when relocated.
        message: Diagnostic text for skips and failures.
    """

    source: Path
    success: bool
    relocated: bool = False
    status: PlacementStatus
    destination: Optional[Path] = None
    message: Optional[str] = None


class BatchReport(BaseModel):
    """Ordered results of one pipeline run, one entry per input file."""

    results: List[FileOperationResult] = Field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        """Return processed/renamed/skipped/failed totals."""
        renamed = sum(1 for result in self.results if result.relocated)
        failed = sum(1 for result in self.results if not result.success)
        return {
            "processed": len(self.results),
            "renamed": renamed,
            "skipped": len(self.results) - renamed - failed,
            "failed": failed,
        }

    def failures(self) -> List[FileOperationResult]:
        """Return results whose processing failed."""
        return [result for result in self.results if not result.success]


__all__ = [
    "MetadataBag",
    "ErrorKind",
    "PlacementStatus",
    "CaptureTimestamp",
    "AnalysisOutcome",
    "FileOperationResult",
    "BatchReport",
]
