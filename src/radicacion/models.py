"""Data models and enums for the radicación upload pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from radicacion.constants import MAX_FILE_SIZE_BYTES


class Category(str, Enum):
    """Document group a supporting file is filed under."""

    VALIDACION_DERECHOS = "validacion_derechos"
    AUTORIZACION = "autorizacion"
    SOPORTE_CLINICO = "soporte_clinico"
    COMPROBANTE_RECIBO = "comprobante_recibo"
    ORDEN_MEDICA = "orden_medica"
    DESCRIPCION_QUIRURGICA = "descripcion_quirurgica"
    REGISTRO_ANESTESIA = "registro_anestesia"
    HOJA_MEDICAMENTOS = "hoja_medicamentos"
    NOTAS_ENFERMERIA = "notas_enfermeria"


class FileStatus(str, Enum):
    """Status of a single file within one submission attempt."""

    PENDING = "pending"
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"


class FinalizeStatus(str, Enum):
    """Server-verified outcome of a submission."""

    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


class ValidationErrorKind(str, Enum):
    """Reason a file was refused before any network call."""

    EMPTY_FILE = "EmptyFile"
    FILE_TOO_LARGE = "FileTooLarge"
    UNREADABLE_FILE = "UnreadableFile"


@dataclass(frozen=True)
class ValidationFailure:
    """A file excluded from the manifest, with a human-readable reason."""

    kind: ValidationErrorKind
    file_name: str
    message: str
    category: str | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class LocalFile:
    """A user-selected file, backed either by a path or by in-memory bytes."""

    name: str
    size: int
    path: Path | None = None
    content: bytes | None = None

    @classmethod
    def from_path(cls, path: Path | str, name: str | None = None) -> LocalFile:
        """Build a LocalFile from a filesystem path (size from ``stat``)."""
        path = Path(path)
        return cls(name=name or path.name, size=path.stat().st_size, path=path)

    @classmethod
    def from_bytes(cls, name: str, content: bytes) -> LocalFile:
        return cls(name=name, size=len(content), content=content)

    def read_header(self, length: int = 4) -> bytes:
        """Read the first *length* bytes. Raises ``OSError`` when unreadable."""
        if self.content is not None:
            return self.content[:length]
        if self.path is None:
            raise OSError(f"{self.name}: no path or content to read")
        with open(self.path, "rb") as f:
            return f.read(length)

    def read_bytes(self) -> bytes:
        if self.content is not None:
            return self.content
        if self.path is None:
            raise OSError(f"{self.name}: no path or content to read")
        return self.path.read_bytes()


@dataclass(frozen=True)
class UploadToken:
    """Single-use signed upload credential minted by the backend for one file."""

    signed_url: str
    token: str
    path: str
    category: str
    original_name: str


@dataclass
class UploadFileStatus:
    """Observable per-file status record.

    ``progress`` is coarse: 0 until the storage layer acknowledges the
    write, then 100.
    """

    path: str
    category: str
    original_name: str
    status: FileStatus = FileStatus.PENDING
    progress: int = 0
    error: str | None = None

    def copy(self) -> UploadFileStatus:
        return replace(self)


@dataclass(frozen=True)
class InitiateResult:
    """Response of the initiate call: the pending submission and its tokens."""

    radicado: str
    soporte_id: str
    upload_tokens: list[UploadToken]


@dataclass(frozen=True)
class FinalizeResult:
    """Server-verified reconciliation of what actually landed in storage."""

    radicado: str
    upload_status: FinalizeStatus
    archivos_exitosos: int
    archivos_faltantes: int
    total_esperados: int
    eliminado: bool = False
    mensaje: str | None = None


@dataclass
class SubmissionResult:
    """Consolidated outcome handed back to the caller of ``submit()``.

    ``success`` and the storage counts come from the finalize response, which
    is authoritative for every file that got a token. ``statuses`` is the
    locally observed per-file list; files the backend issued no token for are
    appended as ``error`` entries with an empty ``path`` and counted in
    ``archivos_sin_token``.
    """

    success: bool
    radicado: str | None
    mensaje: str
    soporte_id: str | None = None
    upload_status: FinalizeStatus | None = None
    archivos_exitosos: int = 0
    archivos_faltantes: int = 0
    total_esperados: int = 0
    archivos_sin_token: int = 0
    eliminado: bool = False
    statuses: list[UploadFileStatus] = field(default_factory=list)
    rejected: list[ValidationFailure] = field(default_factory=list)

    @property
    def uploaded_count(self) -> int:
        return sum(1 for s in self.statuses if s.status == FileStatus.DONE)

    @property
    def failed_count(self) -> int:
        return sum(1 for s in self.statuses if s.status == FileStatus.ERROR)


@dataclass
class UploadConfig:
    """Configuration for the radicación upload pipeline.

    Defaults are the production retry/concurrency budget: 3 concurrent
    transfers, 5 inner retries from a 1.5s base, 3 recovery passes with
    a 5s escalating cooldown.
    """

    base_url: str = "http://localhost:54321"
    access_token: str | None = None
    concurrency_limit: int = 3
    max_retries: int = 5
    base_delay: float = 1.5
    max_delay: float = 30.0
    jitter_ratio: float = 0.3
    batch_pause: float = 0.3
    recovery_passes: int = 3
    recovery_pass_delay: float = 5.0
    max_file_size: int = MAX_FILE_SIZE_BYTES
    request_timeout: float = 60.0

    def __post_init__(self) -> None:
        if self.concurrency_limit < 1:
            raise ValueError(
                f"concurrency_limit must be >= 1, got {self.concurrency_limit}"
            )
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.recovery_passes < 0:
            raise ValueError(
                f"recovery_passes must be >= 0, got {self.recovery_passes}"
            )
        for name in (
            "base_delay",
            "max_delay",
            "jitter_ratio",
            "batch_pause",
            "recovery_pass_delay",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.max_file_size < 1:
            raise ValueError(f"max_file_size must be >= 1, got {self.max_file_size}")
        if self.request_timeout <= 0:
            raise ValueError(
                f"request_timeout must be > 0, got {self.request_timeout}"
            )
