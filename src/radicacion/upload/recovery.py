"""Multi-pass recovery of files that failed the initial upload pass.

Files reaching this stage already survived a full inner retry budget, which
points to a sustained condition such as throttling. Each pass therefore
waits longer before trying again: ``pass_number * recovery_pass_delay``
seconds (5s, 10s, 15s by default).

Lookup faults (token with no local file) are never retried here; they cannot
succeed without new input.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from radicacion.constants import RECOVERY_EXHAUSTED_MESSAGE
from radicacion.models import UploadConfig
from radicacion.upload.uploader import BatchUploader, UploadRun, chunked

logger = logging.getLogger(__name__)


@dataclass
class RecoveryResult:
    """Summary of the recovery passes.

    Attributes:
        passes_run: Passes actually executed (stops early when nothing is left).
        recovered: Token indices that reached ``done`` during recovery.
        still_failed: Token indices still failing after the last pass.
    """

    passes_run: int = 0
    recovered: list[int] = field(default_factory=list)
    still_failed: list[int] = field(default_factory=list)


async def run_recovery_passes(
    run: UploadRun,
    uploader: BatchUploader,
    config: UploadConfig,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> RecoveryResult:
    """Retry failed-but-matchable files in up to ``config.recovery_passes`` passes.

    Each pass sleeps, re-arms every still-failed file (``error ->
    uploading``, error cleared) and gives it one more full
    :meth:`BatchUploader.transfer`. Transfers within a pass use the same
    concurrency cap as the initial pass.

    Args:
        run: The run returned by :meth:`BatchUploader.upload_all`.
        uploader: Uploader whose inner retry policy is reused.
        config: Pass count, pass delay and concurrency cap.
        sleep: Awaitable sleep for the inter-pass cooldown.

    Returns:
        :class:`RecoveryResult` describing what was recovered.
    """
    result = RecoveryResult()
    pending = run.retryable_indices()

    if not pending:
        return result

    logger.info(
        "%d files failed the initial pass; starting recovery (%d passes max)",
        len(pending),
        config.recovery_passes,
    )

    for pass_number in range(1, config.recovery_passes + 1):
        if not pending:
            break

        delay = pass_number * config.recovery_pass_delay
        logger.info(
            "Recovery pass %d/%d: waiting %.1fs before retrying %d files",
            pass_number,
            config.recovery_passes,
            delay,
            len(pending),
        )
        await sleep(delay)
        result.passes_run = pass_number

        still_failed: list[int] = []
        for batch in chunked(pending, config.concurrency_limit):
            outcomes = await asyncio.gather(
                *(_retry_one(run, uploader, index) for index in batch),
                return_exceptions=True,
            )
            for index, ok in zip(batch, outcomes):
                if ok is True:
                    result.recovered.append(index)
                else:
                    if isinstance(ok, Exception):
                        logger.error(
                            "Recovery task for %s raised unexpectedly: %s",
                            run.tokens[index].path,
                            ok,
                        )
                    still_failed.append(index)

        pending = still_failed
        logger.info(
            "Recovery pass %d complete: %d recovered so far, %d still failing",
            pass_number,
            len(result.recovered),
            len(pending),
        )

    result.still_failed = pending
    if pending:
        logger.error(
            "%d files still failing after %d recovery passes: %s",
            len(pending),
            result.passes_run,
            ", ".join(run.tokens[i].path for i in pending),
        )
    return result


async def _retry_one(run: UploadRun, uploader: BatchUploader, index: int) -> bool:
    token = run.tokens[index]
    file = run.files[index]
    if file is None:
        raise ValueError(
            f"No local file for token {token.path}; lookup faults are not retryable"
        )

    run.board.mark_uploading(index)
    try:
        await uploader.transfer(token, file)
    except Exception as exc:
        logger.warning("Recovery attempt for %s failed: %s", token.path, exc)
        run.board.mark_error(index, RECOVERY_EXHAUSTED_MESSAGE)
        return False
    run.board.mark_done(index)
    logger.info("Recovered %s", token.path)
    return True
