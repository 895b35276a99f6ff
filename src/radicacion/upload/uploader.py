"""Concurrency-limited batch uploader.

Transfers every token's file to object storage:

* Tokens are split into consecutive batches of ``concurrency_limit``
* Batches run strictly in sequence; transfers inside a batch run
  concurrently with ``asyncio.gather`` (settle-all semantics)
* Each transfer runs under :func:`execute_with_retry`
* A short fixed pause separates batches so the storage endpoint is not
  hit in bursts

Peak concurrency is therefore bounded by the batch size.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TypeVar

from radicacion.constants import FILE_NOT_FOUND_FOR_TOKEN
from radicacion.models import (
    FileStatus,
    LocalFile,
    UploadConfig,
    UploadFileStatus,
    UploadToken,
)
from radicacion.upload.client import RadicacionClient
from radicacion.upload.manifest import build_file_lookup, token_keys
from radicacion.upload.retry import execute_with_retry
from radicacion.upload.state import ProgressCallback, UploadStatusBoard

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class UploadRun:
    """Tokens, their matched local files and the status board of one attempt.

    ``files[i]`` is ``None`` when token ``i`` had no matching local file.
    """

    tokens: list[UploadToken]
    files: list[LocalFile | None]
    board: UploadStatusBoard

    @property
    def statuses(self) -> list[UploadFileStatus]:
        return self.board.snapshot()

    def failed_indices(self) -> list[int]:
        return self.board.indices_with(FileStatus.ERROR)

    def retryable_indices(self) -> list[int]:
        """Failed tokens whose local file exists. Lookup faults are excluded."""
        return [i for i in self.failed_indices() if self.files[i] is not None]


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    """Split *items* into consecutive slices of at most *size*."""
    return [items[i : i + size] for i in range(0, len(items), size)]


class BatchUploader:
    """Drives per-file transfers under a fixed concurrency cap.

    Args:
        client: Client providing ``upload_file(token, file)``.
        config: Pipeline configuration (concurrency, retry budget, pause).
        sleep: Awaitable sleep for backoff and pauses (injectable for tests).
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

    async def upload_all(
        self,
        tokens: Sequence[UploadToken],
        files_by_category: Mapping[str, Sequence[LocalFile]],
        on_progress: ProgressCallback | None = None,
    ) -> UploadRun:
        """Upload every token's file once (with inner retries).

        Emits the initial all-``pending`` snapshot before any transfer,
        then one snapshot per status transition.

        Returns:
            The :class:`UploadRun`; ``run.statuses`` is the final list.
        """
        lookup = build_file_lookup(files_by_category)
        run = UploadRun(
            tokens=list(tokens),
            files=[lookup.get(key) for key in token_keys(tokens)],
            board=UploadStatusBoard(tokens, on_progress),
        )
        run.board.emit()

        batches = chunked(range(len(run.tokens)), self._config.concurrency_limit)
        logger.info(
            "Uploading %d files in %d batches of up to %d",
            len(run.tokens),
            len(batches),
            self._config.concurrency_limit,
        )

        for batch_number, batch in enumerate(batches, start=1):
            if batch_number > 1:
                await self._sleep(self._config.batch_pause)
            await self._run_batch(run, batch, batch_number)

        failed = run.failed_indices()
        logger.info(
            "Initial pass complete: %d done, %d failed",
            len(run.tokens) - len(failed),
            len(failed),
        )
        return run

    async def transfer(self, token: UploadToken, file: LocalFile) -> None:
        """One file transfer under the inner retry policy. Raises on exhaustion."""
        await execute_with_retry(
            lambda: self._client.upload_file(token, file),
            max_retries=self._config.max_retries,
            base_delay=self._config.base_delay,
            max_delay=self._config.max_delay,
            jitter_ratio=self._config.jitter_ratio,
            sleep=self._sleep,
            description=f"Upload {token.category}/{token.original_name}",
        )

    async def _run_batch(
        self, run: UploadRun, batch: Sequence[int], batch_number: int
    ) -> None:
        logger.debug("Starting batch %d (%d files)", batch_number, len(batch))
        results = await asyncio.gather(
            *(self._upload_one(run, index) for index in batch),
            return_exceptions=True,
        )
        for index, result in zip(batch, results):
            if isinstance(result, Exception):
                logger.error(
                    "Upload task for %s raised unexpectedly: %s",
                    run.tokens[index].path,
                    result,
                )

    async def _upload_one(self, run: UploadRun, index: int) -> None:
        token = run.tokens[index]
        file = run.files[index]

        if file is None:
            logger.error(
                "No local file for token %s (%s/%s)",
                token.path,
                token.category,
                token.original_name,
            )
            run.board.mark_error(index, FILE_NOT_FOUND_FOR_TOKEN)
            return

        run.board.mark_uploading(index)
        try:
            await self.transfer(token, file)
        except Exception as exc:
            logger.error("Giving up on %s after retries: %s", token.path, exc)
            run.board.mark_error(index, str(exc) or exc.__class__.__name__)
        else:
            run.board.mark_done(index)
