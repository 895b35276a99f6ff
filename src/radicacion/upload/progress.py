"""Rich progress display fed by status snapshots.

The orchestrator only emits a progress *model* (lists of
:class:`UploadFileStatus`). This tracker is one observer of that model,
used by the CLI:

* **Pipeline level** -- files settled (done or error) out of total
* **Status text** -- files currently in flight, or the last failure
"""

from __future__ import annotations

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from radicacion.models import FileStatus, UploadFileStatus


class UploadProgressTracker:
    """Rich progress bar driven by ``on_progress`` snapshots.

    Usage::

        tracker = UploadProgressTracker()
        with tracker:
            await orchestrator.submit(metadata, files, on_progress=tracker.update)
    """

    def __init__(self, console: Console | None = None) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("{task.fields[status]}", style="dim"),
            console=console,
        )
        self._task: TaskID | None = None
        self._stats: dict[str, int] = {"done": 0, "error": 0, "uploading": 0}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self._progress.start()
        self._task = self._progress.add_task(
            "[green]Subiendo", total=None, status="iniciando..."
        )

    def stop(self) -> None:
        self._progress.stop()

    def __enter__(self) -> UploadProgressTracker:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Snapshot observer
    # ------------------------------------------------------------------

    def update(self, statuses: list[UploadFileStatus]) -> None:
        """Render one snapshot. Safe to pass directly as ``on_progress``."""
        counts = {s.value: 0 for s in FileStatus}
        for status in statuses:
            counts[status.status.value] += 1
        self._stats = {
            "done": counts[FileStatus.DONE.value],
            "error": counts[FileStatus.ERROR.value],
            "uploading": counts[FileStatus.UPLOADING.value],
        }

        if self._task is None:
            return

        in_flight = [
            _truncate(s.original_name)
            for s in statuses
            if s.status == FileStatus.UPLOADING
        ]
        if in_flight:
            text = ", ".join(in_flight)
        elif self._stats["error"]:
            text = f"[red]{self._stats['error']} con error[/red]"
        else:
            text = ""

        self._progress.update(
            self._task,
            total=len(statuses),
            completed=self._stats["done"] + self._stats["error"],
            status=text,
        )

    @property
    def stats(self) -> dict[str, int]:
        """Return a copy of the counts from the last snapshot."""
        return dict(self._stats)


def _truncate(name: str, max_len: int = 30) -> str:
    """Truncate a file name for display, keeping its end (extension)."""
    if len(name) <= max_len:
        return name
    return "..." + name[-(max_len - 3) :]
