"""Resilient multi-file radicación upload orchestrator."""

__version__ = "0.1.0"

from radicacion.models import (
    Category,
    FileStatus,
    FinalizeStatus,
    LocalFile,
    SubmissionResult,
    UploadConfig,
    UploadFileStatus,
    UploadToken,
)

__all__ = [
    "Category",
    "FileStatus",
    "FinalizeStatus",
    "LocalFile",
    "SubmissionResult",
    "UploadConfig",
    "UploadFileStatus",
    "UploadToken",
    "__version__",
]
