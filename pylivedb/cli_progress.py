"""CLI progress display for uploads.

This module provides a Rich-based progress bar driven by the
``callback(progress, sent, total)`` hook of the upload methods.
"""

from typing import Optional

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TransferSpeedColumn,
)

from .models import UploadProgress


class UploadProgressDisplay:
    """Rich-based progress display for a single upload.

    Use as a context manager and pass ``display.callback`` as the upload's
    ``on_progress`` argument.
    """

    def __init__(self, description: str, total: Optional[int] = None) -> None:
        self.description = description
        self.total = total
        self.last: Optional[UploadProgress] = None
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def callback(self, progress: float, sent: int, total: int) -> None:
        """Progress hook matching the ProgressCallback signature."""
        self.last = UploadProgress(progress=progress, sent=sent, total=total)
        if self._progress is None or self._task is None:
            return
        self._progress.update(self._task, completed=sent, total=total)

    def __enter__(self) -> "UploadProgressDisplay":
        """Enter context manager - start progress display."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeElapsedColumn(),
            refresh_per_second=4,
        )
        self._progress.__enter__()
        self._task = self._progress.add_task(self.description, total=self.total)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit context manager - stop progress display."""
        if self._progress is not None:
            self._progress.__exit__(exc_type, exc_val, exc_tb)
            self._progress = None
            self._task = None
