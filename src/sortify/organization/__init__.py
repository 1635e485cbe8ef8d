"""Output naming and filesystem placement."""

from .executor import PLACEMENT_MODES, OperationExecutor
from .naming import FilenameGenerator, bucket_for, generate_filename

__all__ = [
    "PLACEMENT_MODES",
    "FilenameGenerator",
    "OperationExecutor",
    "bucket_for",
    "generate_filename",
]
