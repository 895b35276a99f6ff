"""Orchestrator-owned per-file status model.

One :class:`UploadStatusBoard` exists per submission attempt. Each
concurrent transfer task writes only to its own slot (single writer per
index), so slots are mutated without locks. Observers never see the live
list: every transition emits a fresh snapshot of copies.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from radicacion.models import FileStatus, UploadFileStatus, UploadToken
from radicacion.upload.fsm import create_fsm

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[list[UploadFileStatus]], None]


class UploadStatusBoard:
    """Status slots for a token list, in token order.

    Args:
        tokens: Tokens returned by the initiate call; one slot per token.
        on_progress: Optional observer called with a snapshot after every
            transition.
    """

    def __init__(
        self,
        tokens: Sequence[UploadToken],
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._slots = [
            UploadFileStatus(
                path=t.path,
                category=t.category,
                original_name=t.original_name,
            )
            for t in tokens
        ]
        self._on_progress = on_progress
        self._peak_uploading = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> list[UploadFileStatus]:
        """Return independent copies of every slot."""
        return [s.copy() for s in self._slots]

    def indices_with(self, status: FileStatus) -> list[int]:
        return [i for i, s in enumerate(self._slots) if s.status == status]

    @property
    def uploading_count(self) -> int:
        return sum(1 for s in self._slots if s.status == FileStatus.UPLOADING)

    @property
    def peak_uploading(self) -> int:
        """Highest number of simultaneously ``uploading`` slots observed."""
        return self._peak_uploading

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def emit(self) -> None:
        """Send a snapshot to the observer, if any."""
        if self._on_progress is None:
            return
        try:
            self._on_progress(self.snapshot())
        except Exception:
            # Observer faults must not turn into lost files.
            logger.exception("Progress callback raised; continuing upload")

    def mark_uploading(self, index: int) -> None:
        """``pending -> uploading`` or, for a recovery pass, ``error -> uploading``."""
        slot = self._slots[index]
        fsm = create_fsm(slot.status.value)
        if slot.status == FileStatus.ERROR:
            fsm.retry_upload()
        else:
            fsm.start_upload()
        slot.status = FileStatus.UPLOADING
        slot.error = None
        self._peak_uploading = max(self._peak_uploading, self.uploading_count)
        self.emit()

    def mark_done(self, index: int) -> None:
        slot = self._slots[index]
        create_fsm(slot.status.value).complete_upload()
        slot.status = FileStatus.DONE
        slot.progress = 100
        slot.error = None
        self.emit()

    def mark_error(self, index: int, message: str) -> None:
        slot = self._slots[index]
        create_fsm(slot.status.value).fail_upload()
        slot.status = FileStatus.ERROR
        slot.progress = 0
        slot.error = message
        self.emit()
