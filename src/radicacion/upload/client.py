"""HTTP client for the three-phase radicación protocol.

Implements the calls the orchestrator coordinates:
  1. ``initiate()`` -- create the pending submission and mint one signed
     upload URL per declared file
  2. ``upload_file()`` -- PUT raw bytes to a signed URL (upsert, so a retry
     after an ambiguous failure overwrites instead of duplicating)
  3. ``finalize()`` -- ask the backend to verify what landed in storage

Initiate and finalize are never retried here. Upload failures are raised as
:class:`TransferError` subclasses for the retry engine to handle.
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from radicacion.constants import FINALIZE_ENDPOINT, INITIATE_ENDPOINT
from radicacion.models import (
    FinalizeResult,
    InitiateResult,
    LocalFile,
    UploadConfig,
    UploadToken,
)
from radicacion.upload.exceptions import (
    FinalizationError,
    InitiationError,
    PermanentTransferError,
    RateLimitError,
    TransferError,
)
from radicacion.upload.schemas import (
    FinalizeResponse,
    InitiateRequest,
    InitiateResponse,
    ManifestGroup,
    SubmissionMetadata,
)

logger = logging.getLogger(__name__)


class RadicacionClient:
    """Async client for the submission backend and object storage.

    Usage::

        async with RadicacionClient(config) as client:
            init = await client.initiate(metadata, manifest)
            await client.upload_file(init.upload_tokens[0], local_file)
            outcome = await client.finalize(init.radicado)

    Args:
        config: Pipeline configuration (base URL, token, request timeout).
        http_client: Optional pre-built ``httpx.AsyncClient`` (tests inject
            one backed by ``httpx.MockTransport``). The client is closed by
            :meth:`close` only when it was created here.
    """

    def __init__(
        self,
        config: UploadConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=config.base_url,
            timeout=httpx.Timeout(config.request_timeout),
        )

    # ------------------------------------------------------------------
    # Phase 1: initiate
    # ------------------------------------------------------------------

    async def initiate(
        self,
        metadata: SubmissionMetadata,
        manifest: Sequence[ManifestGroup],
    ) -> InitiateResult:
        """Create the pending submission and obtain upload tokens.

        Raises:
            InitiationError: On transport errors, non-2xx responses,
                ``success != true`` or a malformed body.
        """
        request = InitiateRequest(
            **metadata.model_dump(), archivos=list(manifest)
        )
        payload = request.model_dump(by_alias=True, exclude_none=True)

        try:
            response = await self._http.post(
                self._function_url(INITIATE_ENDPOINT),
                json=payload,
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as exc:
            raise InitiationError(f"No se pudo iniciar la radicación: {exc}") from exc

        if response.is_error:
            raise InitiationError(
                f"Error al iniciar la radicación (HTTP {response.status_code}): "
                f"{_error_detail(response)}"
            )

        try:
            parsed = InitiateResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise InitiationError(
                f"Respuesta inválida de init-radicacion: {exc}"
            ) from exc

        if not parsed.success:
            raise InitiationError(
                f"init-radicacion rechazó la solicitud: {_error_detail(response)}"
            )

        result = parsed.to_result()
        logger.info(
            "Initiated radicado %s with %d upload tokens",
            result.radicado,
            len(result.upload_tokens),
        )
        return result

    # ------------------------------------------------------------------
    # Phase 2: per-file transfer
    # ------------------------------------------------------------------

    async def upload_file(self, token: UploadToken, file: LocalFile) -> None:
        """PUT the whole file to its signed URL with upsert semantics.

        Raises:
            RateLimitError: On 429.
            PermanentTransferError: On other 4xx except 408.
            TransferError: On transport errors and 5xx/408.
        """
        content_type = mimetypes.guess_type(file.name)[0] or "application/octet-stream"
        try:
            body = file.read_bytes()
        except OSError as exc:
            raise TransferError(f"No se pudo leer {file.name}: {exc}") from exc

        try:
            response = await self._http.put(
                token.signed_url,
                content=body,
                headers={
                    "Content-Type": content_type,
                    "x-upsert": "true",
                    "cache-control": "3600",
                },
            )
        except httpx.HTTPError as exc:
            raise TransferError(
                f"Error de red subiendo {file.name}: {exc.__class__.__name__}: {exc}"
            ) from exc

        status = response.status_code
        if status == 429:
            raise RateLimitError(
                f"429 rate limit subiendo {file.name}", status_code=status
            )
        if response.is_error:
            message = (
                f"HTTP {status} subiendo {file.name}: {_error_detail(response)}"
            )
            if 400 <= status < 500 and status != 408:
                raise PermanentTransferError(message, status_code=status)
            raise TransferError(message, status_code=status)

        logger.debug("Uploaded %s -> %s (%d bytes)", file.name, token.path, len(body))

    # ------------------------------------------------------------------
    # Phase 3: finalize
    # ------------------------------------------------------------------

    async def finalize(self, radicado: str) -> FinalizeResult:
        """Ask the backend to reconcile the submission against storage.

        A response with ``eliminado=true`` is a valid outcome (zero files
        arrived and the submission was deleted), not an error.

        Raises:
            FinalizationError: On transport errors, non-2xx responses or a
                malformed body.
        """
        try:
            response = await self._http.post(
                self._function_url(FINALIZE_ENDPOINT),
                json={"radicado": radicado},
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as exc:
            raise FinalizationError(
                f"No se pudo finalizar la radicación {radicado}: {exc}"
            ) from exc

        if response.is_error:
            raise FinalizationError(
                f"Error al finalizar {radicado} (HTTP {response.status_code}): "
                f"{_error_detail(response)}"
            )

        try:
            parsed = FinalizeResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise FinalizationError(
                f"Respuesta inválida de finalizar-radicacion: {exc}"
            ) from exc

        result = parsed.to_result()
        logger.info(
            "Finalized %s: status=%s exitosos=%d faltantes=%d eliminado=%s",
            result.radicado,
            result.upload_status.value,
            result.archivos_exitosos,
            result.archivos_faltantes,
            result.eliminado,
        )
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> RadicacionClient:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _function_url(self, endpoint: str) -> str:
        return self._config.base_url.rstrip("/") + endpoint

    def _auth_headers(self) -> dict[str, str]:
        if not self._config.access_token:
            return {}
        return {"Authorization": f"Bearer {self._config.access_token}"}


def _error_detail(response: httpx.Response) -> str:
    """Best-effort error message from a function or storage response."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict):
        for key in ("error", "message", "mensaje"):
            if data.get(key):
                return str(data[key])
    return str(data)[:200]
