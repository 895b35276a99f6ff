"""Upload pipeline for radicación (submission) supporting documents.

Public API
----------
.. autoclass:: RadicacionOrchestrator
.. autoclass:: RadicacionClient
.. autoclass:: BatchUploader
.. autoclass:: UploadStatusBoard
.. autoclass:: UploadProgressTracker
.. autofunction:: execute_with_retry
.. autofunction:: run_recovery_passes
.. autofunction:: validate_file
"""

from radicacion.upload.client import RadicacionClient
from radicacion.upload.exceptions import (
    AllFilesInvalidError,
    FinalizationError,
    InitiationError,
    PermanentTransferError,
    RadicacionError,
    RateLimitError,
    TransferError,
)
from radicacion.upload.manifest import build_file_lookup, build_manifest, token_keys
from radicacion.upload.orchestrator import RadicacionOrchestrator
from radicacion.upload.progress import UploadProgressTracker
from radicacion.upload.recovery import RecoveryResult, run_recovery_passes
from radicacion.upload.retry import execute_with_retry
from radicacion.upload.schemas import SubmissionMetadata
from radicacion.upload.state import UploadStatusBoard
from radicacion.upload.uploader import BatchUploader, UploadRun
from radicacion.upload.validator import validate_batch, validate_file

__all__ = [
    "AllFilesInvalidError",
    "BatchUploader",
    "FinalizationError",
    "InitiationError",
    "PermanentTransferError",
    "RadicacionClient",
    "RadicacionError",
    "RadicacionOrchestrator",
    "RateLimitError",
    "RecoveryResult",
    "SubmissionMetadata",
    "TransferError",
    "UploadProgressTracker",
    "UploadRun",
    "UploadStatusBoard",
    "build_file_lookup",
    "build_manifest",
    "execute_with_retry",
    "run_recovery_passes",
    "token_keys",
    "validate_batch",
    "validate_file",
]
