"""Exception hierarchy for the radicación upload pipeline.

Only submission-level failures cross :meth:`RadicacionOrchestrator.submit`.
Per-file transfer failures are caught by the uploader and recorded as
``error`` statuses.
"""

from __future__ import annotations

from radicacion.models import ValidationFailure


class RadicacionError(Exception):
    """Base class for all radicación pipeline errors."""


class AllFilesInvalidError(RadicacionError):
    """Raised when local validation rejects every file in the batch."""

    def __init__(self, failures: list[ValidationFailure]) -> None:
        self.failures = failures
        reasons = "\n".join(f"- {f.message}" for f in failures)
        super().__init__(f"Ningún archivo es válido para subir:\n{reasons}")


class InitiationError(RadicacionError):
    """Raised when the backend could not create the pending submission."""


class FinalizationError(RadicacionError):
    """Raised when the finalize call itself fails (not a zero-file outcome)."""


class TransferError(RadicacionError):
    """Raised when a single object-storage PUT fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(TransferError):
    """Raised when the storage endpoint throttles with a 429."""


class PermanentTransferError(TransferError):
    """Raised on 4xx responses (except 408/429) such as an expired token."""
