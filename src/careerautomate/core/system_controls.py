from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from typing import Any

from careerautomate.core.events import EventBus
from careerautomate.services.backend import BackendClient
from careerautomate.types import SystemControlsSnapshot

logger = logging.getLogger(__name__)

CHANNEL = "system_controls"
EMERGENCY_STOP = "emergency_stop"
AUTOMATIONS_STOPPED = "automations_stopped"

RowFetcher = Callable[[], list[dict[str, Any]]]


def backend_row_fetcher(backend: BackendClient) -> RowFetcher:
    def fetch() -> list[dict[str, Any]]:
        return backend.select("system_controls", None, columns="control_key,control_value")

    return fetch


def read_flags(
    rows: Iterable[dict[str, Any]],
    *,
    emergency_stop: bool = False,
    automations_stopped: bool = False,
) -> tuple[bool, bool]:
    """Fold control rows over the given defaults; only a literal ``true`` sets a flag."""
    for row in rows:
        key = row.get("control_key")
        if key == EMERGENCY_STOP:
            emergency_stop = row.get("control_value") is True
        elif key == AUTOMATIONS_STOPPED:
            automations_stopped = row.get("control_value") is True
    return emergency_stop, automations_stopped


def check_system_controls(fetch_rows: RowFetcher) -> tuple[bool, bool]:
    try:
        return read_flags(fetch_rows())
    except Exception as exc:
        logger.error("Error checking system controls: %s", exc)
        return False, False


class SystemControlsStore:
    """Single owner of the operator flags.

    One polling task per app; pages and the stream endpoint only read
    ``snapshot`` or subscribe to ``CHANNEL`` on the event bus.
    """

    def __init__(
        self,
        fetch_rows: RowFetcher,
        *,
        interval_sec: float = 30.0,
        event_bus: EventBus | None = None,
    ):
        self._fetch_rows = fetch_rows
        self.interval_sec = interval_sec
        self.event_bus = event_bus or EventBus()
        self._emergency_stop = False
        self._automations_stopped = False
        self._loading = True
        self._task: asyncio.Task[None] | None = None

    @property
    def snapshot(self) -> SystemControlsSnapshot:
        return SystemControlsSnapshot(
            emergency_stop=self._emergency_stop,
            automations_stopped=self._automations_stopped,
            loading=self._loading,
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def apply_rows(self, rows: Iterable[dict[str, Any]]) -> bool:
        before = (self._emergency_stop, self._automations_stopped)
        self._emergency_stop, self._automations_stopped = read_flags(
            rows,
            emergency_stop=self._emergency_stop,
            automations_stopped=self._automations_stopped,
        )
        return before != (self._emergency_stop, self._automations_stopped)

    async def refresh(self) -> SystemControlsSnapshot:
        was_loading = self._loading
        changed = False
        try:
            rows = await asyncio.to_thread(self._fetch_rows)
        except Exception as exc:
            logger.error("Error fetching system controls: %s", exc)
        else:
            changed = self.apply_rows(rows)
        finally:
            self._loading = False

        snapshot = self.snapshot
        if changed or was_loading:
            await self.event_bus.publish(CHANNEL, snapshot.model_dump())
        return snapshot

    async def start(self) -> None:
        """First fetch inline, then a fixed interval until ``stop``."""
        if self.running:
            return
        await self.refresh()
        self._task = asyncio.create_task(self._poll(), name="system-controls-poller")

    async def stop(self) -> None:
        await self.event_bus.close(CHANNEL)
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.interval_sec)
            await self.refresh()
