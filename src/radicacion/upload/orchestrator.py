"""Submission orchestrator for the radicación upload pipeline.

Composes the upload primitives (validator, client, batch uploader, recovery
controller, status board) into one call that:

* Validates the whole batch locally before any network call
* Initiates the submission and receives one signed upload token per file
* Uploads files in concurrency-limited batches with per-file retries
* Runs escalating recovery passes over files that still failed
* Finalizes, letting the backend verify what actually landed in storage

Per-file problems never raise out of :meth:`RadicacionOrchestrator.submit`;
they end up as ``error`` statuses. Only local validation eliminating every
file, initiation failure and finalize transport failure raise.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence

from radicacion.constants import NO_UPLOAD_TOKEN_MESSAGE, RESUBMIT_MESSAGE
from radicacion.models import (
    FileStatus,
    FinalizeResult,
    FinalizeStatus,
    LocalFile,
    SubmissionResult,
    UploadConfig,
    UploadFileStatus,
    ValidationFailure,
)
from radicacion.upload.client import RadicacionClient
from radicacion.upload.exceptions import InitiationError
from radicacion.upload.manifest import build_manifest, unmatched_files
from radicacion.upload.recovery import run_recovery_passes
from radicacion.upload.schemas import SubmissionMetadata
from radicacion.upload.state import ProgressCallback
from radicacion.upload.uploader import BatchUploader, UploadRun
from radicacion.upload.validator import validate_batch

logger = logging.getLogger(__name__)


class RadicacionOrchestrator:
    """Main engine coordinating initiate -> upload -> recover -> finalize.

    Usage::

        async with RadicacionClient(config) as client:
            orchestrator = RadicacionOrchestrator(client, config)
            result = await orchestrator.submit(
                metadata,
                {"soporte_clinico": [LocalFile.from_path("hc.pdf")]},
                on_progress=render,
            )

    Each :meth:`submit` call builds its own status board, so one
    orchestrator can run several submissions one after another.

    Args:
        client: Backend and storage client.
        config: Pipeline configuration.
        sleep: Awaitable sleep for backoff, pauses and recovery cooldowns.
    """

    def __init__(
        self,
        client: RadicacionClient,
        config: UploadConfig,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._config = config
        self._sleep = sleep
        self._uploader = BatchUploader(client, config, sleep=sleep)

    async def submit(
        self,
        metadata: SubmissionMetadata,
        files_by_category: Mapping[str, Sequence[LocalFile]],
        on_progress: ProgressCallback | None = None,
    ) -> SubmissionResult:
        """Run one complete submission attempt.

        Args:
            metadata: Form fields for the submission record.
            files_by_category: Local files grouped by category value.
            on_progress: Called with a status snapshot after every transition.

        Returns:
            :class:`SubmissionResult` combining the server-verified finalize
            outcome with the locally observed statuses.

        Raises:
            AllFilesInvalidError: Every file failed local validation.
            InitiationError: The backend could not create the submission or
                returned no upload tokens.
            FinalizationError: The finalize call itself failed.
        """
        valid, rejected = validate_batch(
            files_by_category, max_size=self._config.max_file_size
        )
        manifest = build_manifest(valid)
        declared = sum(len(group.files) for group in manifest)

        initiated = await self._client.initiate(metadata, manifest)
        tokens = initiated.upload_tokens
        if not tokens:
            raise InitiationError(
                f"El radicado {initiated.radicado} no recibió URLs de subida"
            )

        unissued = unmatched_files(valid, tokens)
        if unissued:
            logger.error(
                "Radicado %s: backend minted %d tokens for %d declared files; "
                "no upload URL for %s",
                initiated.radicado,
                len(tokens),
                declared,
                ", ".join(f"{category}/{f.name}" for category, f in unissued),
            )

        run = await self._uploader.upload_all(tokens, valid, on_progress)
        recovery = await run_recovery_passes(
            run, self._uploader, self._config, sleep=self._sleep
        )
        if recovery.recovered:
            logger.info(
                "Radicado %s: %d files recovered in %d passes",
                initiated.radicado,
                len(recovery.recovered),
                recovery.passes_run,
            )

        outcome = await self._client.finalize(initiated.radicado)
        return self._build_result(
            initiated.soporte_id, outcome, run, rejected, unissued
        )

    # ------------------------------------------------------------------
    # Result consolidation
    # ------------------------------------------------------------------

    def _build_result(
        self,
        soporte_id: str,
        outcome: FinalizeResult,
        run: UploadRun,
        rejected: list[ValidationFailure],
        unissued: list[tuple[str, LocalFile]],
    ) -> SubmissionResult:
        """Combine the authoritative finalize outcome with local statuses.

        Finalize only knows about files it minted a token for. Declared files
        left without one are reported as ``error`` statuses and turn a
        ``completed`` outcome into ``partial``.
        """
        result = SubmissionResult(
            success=False,
            radicado=outcome.radicado,
            mensaje="",
            soporte_id=soporte_id,
            upload_status=outcome.upload_status,
            archivos_exitosos=outcome.archivos_exitosos,
            archivos_faltantes=outcome.archivos_faltantes,
            total_esperados=outcome.total_esperados,
            archivos_sin_token=len(unissued),
            eliminado=outcome.eliminado,
            statuses=run.statuses
            + [
                UploadFileStatus(
                    path="",
                    category=category,
                    original_name=file.name,
                    status=FileStatus.ERROR,
                    error=NO_UPLOAD_TOKEN_MESSAGE,
                )
                for category, file in unissued
            ],
            rejected=list(rejected),
        )
        if unissued and outcome.upload_status == FinalizeStatus.COMPLETED:
            result.upload_status = FinalizeStatus.PARTIAL

        if result.uploaded_count != outcome.archivos_exitosos:
            # Finalize wins: a write may land even if its response was lost.
            logger.warning(
                "Radicado %s: client saw %d uploaded, server verified %d",
                outcome.radicado,
                result.uploaded_count,
                outcome.archivos_exitosos,
            )

        if outcome.eliminado:
            result.mensaje = outcome.mensaje or RESUBMIT_MESSAGE
            logger.error(
                "Radicado %s deleted by backend: no files received", outcome.radicado
            )
        elif result.upload_status == FinalizeStatus.COMPLETED:
            result.success = True
            result.mensaje = (
                f"Radicación {outcome.radicado} completada: "
                f"{outcome.archivos_exitosos} archivos recibidos"
            )
        elif result.upload_status == FinalizeStatus.PARTIAL:
            result.success = True
            result.mensaje = (
                f"Radicación {outcome.radicado} registrada parcialmente: "
                f"{outcome.archivos_exitosos} de "
                f"{outcome.total_esperados + len(unissued)} archivos recibidos, "
                f"{outcome.archivos_faltantes + len(unissued)} faltantes"
            )
            if unissued:
                result.mensaje += (
                    f" ({len(unissued)} sin URL de subida: "
                    + ", ".join(file.name for _, file in unissued)
                    + ")"
                )
            logger.warning("%s", result.mensaje)
        else:
            result.mensaje = outcome.mensaje or RESUBMIT_MESSAGE

        return result
