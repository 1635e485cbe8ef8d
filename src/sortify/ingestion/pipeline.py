"""High-level ingestion pipeline orchestration.

A run has two phases separated by a hashing gate:

1. Analyze every input in parallel: read metadata, resolve the capture
   timestamp, and compute a provisional output path.
2. Hash only the inputs whose provisional path already exists on disk.
3. Place files in parallel across ``YYYY/MM-Mon`` buckets. Each bucket is
   handled by a single task that walks its files in input order, so suffix
   tie-breaks are deterministic without any filesystem-wide locking.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sortify.config.exceptions import ConfigError
from sortify.config.models import SortifyConfig
from sortify.errors import (
    HashFailure,
    MetadataExtractionError,
    NoTimestampFound,
    PlacementError,
    SourceUnreadable,
)
from sortify.organization.executor import PLACEMENT_MODES, OperationExecutor
from sortify.organization.naming import FilenameGenerator

from .extractors import MetadataSource, build_sources
from .hashing import ContentHasher
from .models import AnalysisOutcome, BatchReport, CaptureTimestamp, FileOperationResult
from .timestamps import TimestampResolver

LOGGER = logging.getLogger(__name__)

CONFLICT_POLICIES = ("suffix", "skip", "overwrite")

# Extensions mangled by some transfer tools.
_EXTENSION_REPAIRS = {
    "%jpg": "jpg",
    "%jpeg": "jpg",
    "%mov": "mov",
    "%mp4": "mp4",
}


def default_worker_count() -> int:
    """Return half of the available CPUs, the workload being I/O bound."""
    return max(1, (os.cpu_count() or 2) // 2)


def normalize_extension(path: Path) -> str:
    """Return the lowercase extension of ``path`` without the dot."""
    extension = path.suffix.lower().lstrip(".")
    return _EXTENSION_REPAIRS.get(extension, extension)


def _ensure_readable(path: Path) -> None:
    if not path.is_file():
        raise SourceUnreadable(f"Source file does not exist: {path}")
    if not os.access(path, os.R_OK):
        raise SourceUnreadable(f"Source file is not readable: {path}")


class IngestionPipeline:
    """Coordinate metadata extraction, naming, hashing, and placement."""

    def __init__(
        self,
        sources: Sequence[MetadataSource],
        *,
        mode: str = "move",
        workers: Optional[int] = None,
        allow_mtime_fallback: bool = False,
        on_conflict: str = "suffix",
        resolver: TimestampResolver | None = None,
        generator: FilenameGenerator | None = None,
        hasher: ContentHasher | None = None,
        executor: OperationExecutor | None = None,
    ) -> None:
        if mode not in PLACEMENT_MODES:
            raise ConfigError(f"Invalid mode: {mode}. Must be 'move', 'copy', or 'symlink'.")
        if on_conflict not in CONFLICT_POLICIES:
            raise ConfigError(
                f"Invalid conflict policy: {on_conflict}. Must be 'suffix', 'skip', or 'overwrite'."
            )
        if not sources:
            raise ConfigError("At least one metadata source must be configured.")
        if workers is not None and workers < 1:
            raise ConfigError("Worker count must be at least 1.")

        self.sources = list(sources)
        self.mode = mode
        self.workers = workers or default_worker_count()
        self.allow_mtime_fallback = allow_mtime_fallback
        self.on_conflict = on_conflict
        self.resolver = resolver or TimestampResolver()
        self.generator = generator or FilenameGenerator()
        self.hasher = hasher or ContentHasher()
        self.executor = executor or OperationExecutor()

    @classmethod
    def from_config(cls, config: SortifyConfig) -> "IngestionPipeline":
        """Build a pipeline from resolved configuration."""
        processing = config.processing
        organization = config.organization
        return cls(
            build_sources(processing.metadata_sources, exiftool_path=processing.exiftool_path),
            mode=organization.mode,
            workers=processing.workers,
            allow_mtime_fallback=processing.allow_mtime_fallback,
            on_conflict=organization.on_conflict,
            resolver=TimestampResolver(recent_year_cutoff=processing.recent_year_cutoff),
            hasher=ContentHasher(chunk_size=processing.hash_chunk_size),
        )

    def run(self, paths: Iterable[Path], output_dir: Path) -> BatchReport:
        """Organize ``paths`` under ``output_dir`` and report every file's outcome.

        Args:
            paths: Input files, processed and reported in this order.
            output_dir: Root of the date-partitioned output tree.

        Returns:
            BatchReport: One result per input path.

        Raises:
            ConfigError: If no paths are given or the output root is unusable.
        """

        files = [Path(path) for path in paths]
        if not files:
            raise ConfigError("No files specified.")

        output_root = output_dir.expanduser()
        try:
            output_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ConfigError(f"Failed to create output directory {output_root}: {exc}") from exc
        output_root = output_root.resolve()

        LOGGER.info("Processing %d files with %d workers", len(files), self.workers)
        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="sortify-worker"
        ) as pool:
            outcomes = list(pool.map(self.analyze, files))
            hash_index = self._build_hash_index(outcomes, output_root, pool)
            results = self._place_all(outcomes, hash_index, output_root, pool)

        report = BatchReport(results=results)
        LOGGER.info("Run complete: %s", report.counts())
        return report

    # ------------------------------------------------------------------ #
    # Phase 1: analysis                                                  #
    # ------------------------------------------------------------------ #

    def analyze(self, path: Path) -> AnalysisOutcome:
        """Resolve the capture timestamp and provisional path for one file.

        Never raises; every failure becomes an unsuccessful outcome.
        """
        try:
            return self._analyze_file(path)
        except Exception as exc:
            LOGGER.warning("Unexpected error analyzing %s: %s", path, exc)
            return AnalysisOutcome(
                source=path,
                success=False,
                error=f"Unexpected error: {exc}",
                error_kind="source-unreadable",
            )

    def _analyze_file(self, path: Path) -> AnalysisOutcome:
        if path.is_symlink():
            return AnalysisOutcome(
                source=path,
                success=False,
                skipped=True,
                error="Skipped symlink",
                error_kind="source-unreadable",
            )
        try:
            _ensure_readable(path)
            timestamp, source_name = self._resolve_timestamp(path)
        except (MetadataExtractionError, NoTimestampFound) as exc:
            return AnalysisOutcome(
                source=path, success=False, error=str(exc), error_kind="no-timestamp"
            )
        except SourceUnreadable as exc:
            return AnalysisOutcome(
                source=path, success=False, error=str(exc), error_kind="source-unreadable"
            )

        extension = normalize_extension(path)
        proposed = self.generator.name(timestamp, extension)
        LOGGER.debug("Proposed %s for %s (via %s)", proposed, path, source_name)
        return AnalysisOutcome(
            source=path,
            success=True,
            timestamp=timestamp,
            extension=extension,
            proposed_path=proposed,
            metadata_source=source_name,
        )

    def _resolve_timestamp(self, path: Path) -> Tuple[CaptureTimestamp, str]:
        failures: List[str] = []
        extracted = False
        for source in self.sources:
            try:
                metadata = source.extract(path)
            except MetadataExtractionError as exc:
                LOGGER.debug("%s failed for %s: %s", source.name, path, exc)
                failures.append(f"{source.name}: {exc}")
                continue
            extracted = True
            try:
                return self.resolver.resolve(metadata), source.name
            except NoTimestampFound as exc:
                LOGGER.debug("%s found no timestamp for %s: %s", source.name, path, exc)
                failures.append(f"{source.name}: {exc}")

        if self.allow_mtime_fallback:
            LOGGER.warning("Using file modification time for: %s", path)
            try:
                modified = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            except OSError as exc:
                raise SourceUnreadable(f"Cannot stat {path}: {exc}") from exc
            return CaptureTimestamp(instant=modified.replace(microsecond=0)), "mtime"

        detail = "; ".join(failures)
        if not extracted:
            raise MetadataExtractionError(f"All metadata sources failed ({detail})")
        raise NoTimestampFound(f"No capture timestamp found ({detail})")

    # ------------------------------------------------------------------ #
    # Hashing gate                                                       #
    # ------------------------------------------------------------------ #

    def _build_hash_index(
        self,
        outcomes: Sequence[AnalysisOutcome],
        output_root: Path,
        pool: ThreadPoolExecutor,
    ) -> Dict[Path, str]:
        to_hash: List[Path] = []
        for outcome in outcomes:
            if not outcome.success or outcome.proposed_path is None:
                continue
            target = output_root / outcome.proposed_path
            try:
                collides = target.exists()
            except OSError as exc:
                LOGGER.warning("Cannot inspect %s: %s", target, exc)
                continue
            if collides:
                to_hash.extend([outcome.source, target])

        if not to_hash:
            LOGGER.info("No file conflicts detected, skipping hash index building")
            return {}

        unique = list(dict.fromkeys(to_hash))
        LOGGER.info("Building hash index for %d potentially conflicting files", len(unique))
        index: Dict[Path, str] = {}
        lock = threading.Lock()

        def _hash_chunk(chunk: List[Path]) -> None:
            digests = self.hasher.hash_many(chunk)
            with lock:
                index.update(digests)

        task_count = min(self.workers, len(unique))
        chunks = [unique[offset::task_count] for offset in range(task_count)]
        list(pool.map(_hash_chunk, chunks))
        return index

    # ------------------------------------------------------------------ #
    # Phase 2: placement                                                 #
    # ------------------------------------------------------------------ #

    def _place_all(
        self,
        outcomes: Sequence[AnalysisOutcome],
        hash_index: Dict[Path, str],
        output_root: Path,
        pool: ThreadPoolExecutor,
    ) -> List[FileOperationResult]:
        results: List[Optional[FileOperationResult]] = [None] * len(outcomes)
        buckets: Dict[str, List[int]] = {}
        for position, outcome in enumerate(outcomes):
            if not outcome.success or outcome.proposed_path is None:
                results[position] = self._analysis_result(outcome)
                continue
            bucket = PurePosixPath(outcome.proposed_path).parent.as_posix()
            buckets.setdefault(bucket, []).append(position)

        futures: List[Tuple[Future[List[FileOperationResult]], List[int]]] = []
        for positions in buckets.values():
            batch = [outcomes[position] for position in positions]
            futures.append(
                (pool.submit(self._place_bucket, batch, hash_index, output_root), positions)
            )

        for future, positions in futures:
            for position, result in zip(positions, future.result()):
                results[position] = result

        return [result for result in results if result is not None]

    def _place_bucket(
        self,
        outcomes: Sequence[AnalysisOutcome],
        hash_index: Dict[Path, str],
        output_root: Path,
    ) -> List[FileOperationResult]:
        claimed: List[str] = []
        lazy_hashes: Dict[Path, str] = {}
        results: List[FileOperationResult] = []
        for outcome in outcomes:
            try:
                result = self._place_one(outcome, claimed, hash_index, lazy_hashes, output_root)
            except Exception as exc:
                LOGGER.warning("Unexpected error placing %s: %s", outcome.source, exc)
                result = FileOperationResult(
                    source=outcome.source,
                    success=False,
                    status="failed-io",
                    message=f"Failed to {self.mode} file: {exc}",
                )
            results.append(result)
        return results

    def _place_one(
        self,
        outcome: AnalysisOutcome,
        claimed: List[str],
        hash_index: Dict[Path, str],
        lazy_hashes: Dict[Path, str],
        output_root: Path,
    ) -> FileOperationResult:
        source = outcome.source
        if outcome.timestamp is None:
            return FileOperationResult(
                source=source,
                success=False,
                status="failed-analysis",
                message="No capture timestamp resolved",
            )
        taken = list(claimed)
        replace = False

        while True:
            name = self.generator.name(outcome.timestamp, outcome.extension, taken)
            target = output_root / name
            if not (target.exists() or target.is_symlink()):
                break
            if self._is_duplicate(source, target, hash_index, lazy_hashes):
                return FileOperationResult(
                    source=source,
                    success=True,
                    status="skipped-duplicate",
                    message=f"Content duplicate of {target}",
                )
            if self._same_file(source, target):
                return FileOperationResult(
                    source=source,
                    success=True,
                    status="skipped-noop",
                    message="No rename needed",
                )
            if self.on_conflict == "skip":
                return FileOperationResult(
                    source=source,
                    success=True,
                    status="skipped-conflict",
                    message=f"Destination exists with different content: {target}",
                )
            if self.on_conflict == "overwrite":
                replace = True
                break
            LOGGER.debug("Destination %s holds different content; trying next suffix", target)
            taken.append(name)

        try:
            self.executor.apply(source, target, self.mode, replace=replace)
        except (OSError, PlacementError) as exc:
            return FileOperationResult(
                source=source,
                success=False,
                status="failed-io",
                message=f"Failed to {self.mode} file: {exc}",
            )

        claimed.append(name)
        return FileOperationResult(
            source=source,
            success=True,
            relocated=True,
            status="renamed",
            destination=target,
        )

    def _is_duplicate(
        self,
        source: Path,
        target: Path,
        hash_index: Dict[Path, str],
        lazy_hashes: Dict[Path, str],
    ) -> bool:
        source_hash = self._lookup_hash(source, hash_index, lazy_hashes)
        target_hash = self._lookup_hash(target, hash_index, lazy_hashes)
        return source_hash is not None and source_hash == target_hash

    def _lookup_hash(
        self, path: Path, hash_index: Dict[Path, str], lazy_hashes: Dict[Path, str]
    ) -> Optional[str]:
        # Suffixed candidates were never part of the gate, so hash them on demand.
        if path in hash_index:
            return hash_index[path]
        if path not in lazy_hashes:
            try:
                lazy_hashes[path] = self.hasher.hash(path)
            except HashFailure as exc:
                LOGGER.warning("%s", exc)
                return None
        return lazy_hashes[path]

    def _same_file(self, source: Path, target: Path) -> bool:
        return source.resolve() == target.parent.resolve() / target.name

    def _analysis_result(self, outcome: AnalysisOutcome) -> FileOperationResult:
        if outcome.skipped:
            return FileOperationResult(
                source=outcome.source,
                success=True,
                status="skipped-symlink",
                message=outcome.error,
            )
        return FileOperationResult(
            source=outcome.source,
            success=False,
            status="failed-analysis",
            message=outcome.error,
        )


__all__ = [
    "IngestionPipeline",
    "CONFLICT_POLICIES",
    "default_worker_count",
    "normalize_extension",
]
