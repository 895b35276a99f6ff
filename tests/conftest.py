"""Shared pytest fixtures for radicación upload tests.

Provides an in-memory object store with upsert semantics, a fake backend
client that mints tokens and reconciles like the real functions, a fast
pipeline config, and a recording no-op sleep so retry and recovery delays
never actually wait.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from pathlib import PurePosixPath

import pytest

from radicacion.models import (
    FinalizeResult,
    FinalizeStatus,
    InitiateResult,
    LocalFile,
    UploadConfig,
    UploadToken,
)
from radicacion.upload.exceptions import TransferError
from radicacion.upload.schemas import ManifestGroup, SubmissionMetadata


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeStorage:
    """In-memory object store keyed by path; PUT overwrites (upsert).

    Failures are scripted per path:
      * ``transient[path] = n`` -- the next *n* PUTs to *path* fail
      * ``always_fail`` -- every PUT to these paths fails
    """

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.transient: dict[str, int] = {}
        self.always_fail: set[str] = set()
        self.calls: dict[str, int] = {}
        self.in_flight = 0
        self.peak_in_flight = 0

    async def put(self, path: str, body: bytes) -> None:
        self.calls[path] = self.calls.get(path, 0) + 1
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            # Yield so sibling transfers in the batch overlap.
            await asyncio.sleep(0)
            if path in self.always_fail:
                raise TransferError(f"HTTP 503 subiendo {path}", status_code=503)
            remaining = self.transient.get(path, 0)
            if remaining > 0:
                self.transient[path] = remaining - 1
                raise TransferError(f"HTTP 503 subiendo {path}", status_code=503)
            self.objects[path] = body
        finally:
            self.in_flight -= 1


class FakeBackend:
    """Stand-in for :class:`RadicacionClient` backed by :class:`FakeStorage`.

    ``initiate`` mints tokens in manifest order with a deterministic path
    (``{radicado}/{category}_{ordinal}{ext}``); ``finalize`` checks which
    expected paths exist in storage, deleting the submission when none do.
    Paths listed in ``unminted`` get no token and are not expected, as when
    the backend fails to sign a URL and skips the file.
    """

    def __init__(self, storage: FakeStorage, radicado: str = "RAD-0001") -> None:
        self.storage = storage
        self.radicado = radicado
        self.expected: list[str] = []
        self.initiate_calls = 0
        self.finalize_calls = 0
        self.last_manifest: list[ManifestGroup] = []
        self.unminted: set[str] = set()

    async def initiate(
        self, metadata: SubmissionMetadata, manifest: Sequence[ManifestGroup]
    ) -> InitiateResult:
        self.initiate_calls += 1
        self.last_manifest = list(manifest)
        tokens: list[UploadToken] = []
        for group in manifest:
            for ordinal, f in enumerate(group.files, start=1):
                suffix = PurePosixPath(f.name).suffix or ".pdf"
                path = f"{self.radicado}/{group.categoria}_{ordinal}{suffix}"
                if path in self.unminted:
                    continue
                tokens.append(
                    UploadToken(
                        signed_url=f"https://storage.test/upload/{path}?token=t{len(tokens)}",
                        token=f"t{len(tokens)}",
                        path=path,
                        category=group.categoria,
                        original_name=f.name,
                    )
                )
        self.expected = [t.path for t in tokens]
        return InitiateResult(
            radicado=self.radicado, soporte_id="sop-1", upload_tokens=tokens
        )

    async def upload_file(self, token: UploadToken, file: LocalFile) -> None:
        await self.storage.put(token.path, file.read_bytes())

    async def finalize(self, radicado: str) -> FinalizeResult:
        self.finalize_calls += 1
        present = [p for p in self.expected if p in self.storage.objects]
        missing = len(self.expected) - len(present)
        if not present:
            return FinalizeResult(
                radicado=radicado,
                upload_status=FinalizeStatus.FAILED,
                archivos_exitosos=0,
                archivos_faltantes=missing,
                total_esperados=len(self.expected),
                eliminado=True,
                mensaje=(
                    "Ningún archivo fue recibido. El radicado fue eliminado. "
                    "Debe realizar una nueva radicación."
                ),
            )
        status = FinalizeStatus.COMPLETED if missing == 0 else FinalizeStatus.PARTIAL
        return FinalizeResult(
            radicado=radicado,
            upload_status=status,
            archivos_exitosos=len(present),
            archivos_faltantes=missing,
            total_esperados=len(self.expected),
        )


def make_files(
    spec: Mapping[str, Sequence[str]], size: int = 64
) -> dict[str, list[LocalFile]]:
    """Build in-memory files grouped by category from ``{category: [names]}``."""
    return {
        category: [
            LocalFile.from_bytes(name, f"%PDF-{category}-{name}-{i}".encode().ljust(size, b"x"))
            for i, name in enumerate(names)
        ]
        for category, names in spec.items()
    }


@pytest.fixture
def files_factory():
    """The :func:`make_files` builder, for tests that need custom batches."""
    return make_files


@pytest.fixture
def config() -> UploadConfig:
    """Production retry/concurrency budget against a test base URL."""
    return UploadConfig(base_url="https://portal.test", access_token="test-token")


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def backend(storage: FakeStorage) -> FakeBackend:
    return FakeBackend(storage)


@pytest.fixture
def metadata() -> SubmissionMetadata:
    return SubmissionMetadata(
        radicador_email="facturacion@ips.test",
        eps="NUEVA EPS",
        regimen="CONTRIBUTIVO",
        servicio_prestado="Consulta Ambulatoria",
        fecha_atencion="2026-10-01",
        tipo_id="CC",
        identificacion="123456789",
    )
