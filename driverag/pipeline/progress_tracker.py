"""Ingestion progress tracking with callback-based listener notification.

Stores the latest :class:`ProcessingProgress` snapshot for each ingestion
run and broadcasts updates to listener callbacks registered for that run.
Listeners are keyed by run ID so concurrent runs never see each other's
progress.

    IngestionService ──update()──→ ProgressTracker ──callback()──→ CLI printer
                                                   ──→ (any other listener)

Listeners receive a deep copy of the progress, so a listener holding on
to a snapshot never sees later mutations.  A listener that raises is
logged and skipped; it cannot stop the run or starve other listeners.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from driverag.models.pipeline import ProcessingProgress
from driverag.utils.logging import get_logger


class ProgressTracker:
    """Tracks and broadcasts ingestion progress via callbacks."""

    def __init__(self) -> None:
        self._statuses: dict[str, ProcessingProgress] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(self, run_id: str, progress: ProcessingProgress) -> None:
        """Record a snapshot of *progress* and notify listeners for *run_id*."""
        snapshot = progress.model_copy(deep=True)
        self._statuses[run_id] = snapshot

        self._logger.debug(
            "progress_update",
            run_id=run_id,
            status=snapshot.status.value,
            files_processed=snapshot.files_processed,
            total_files=snapshot.total_files,
            current_file=snapshot.current_file,
        )

        await self._notify_listeners(run_id, snapshot)

    def register_listener(self, run_id: str, callback: Callable) -> None:
        """Register a callback to receive progress updates for a run.

        Parameters
        ----------
        run_id:
            The ingestion run to listen to.
        callback:
            An async or sync callable accepting ``(run_id, progress)``.
        """
        if run_id not in self._listeners:
            self._listeners[run_id] = []

        if callback not in self._listeners[run_id]:
            self._listeners[run_id].append(callback)
            self._logger.debug(
                "listener_registered",
                run_id=run_id,
                total_listeners=len(self._listeners[run_id]),
            )

    def unregister_listener(self, run_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(run_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                run_id=run_id,
                remaining_listeners=len(listeners),
            )

    def get_status(self, run_id: str) -> ProcessingProgress | None:
        """Return a copy of the latest snapshot, or ``None`` for unknown runs."""
        status = self._statuses.get(run_id)
        return status.model_copy(deep=True) if status is not None else None

    def discard(self, run_id: str) -> None:
        """Forget the snapshot and listeners of a finished run."""
        self._statuses.pop(run_id, None)
        self._listeners.pop(run_id, None)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, run_id: str, snapshot: ProcessingProgress) -> None:
        listeners = list(self._listeners.get(run_id, []))
        if not listeners:
            return

        for callback in listeners:
            try:
                result = callback(run_id, snapshot.model_copy(deep=True))
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    run_id=run_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
