"""Sequential enrichment of a whole shelf with pause/resume on rate limits."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Sequence, TypeVar

from .errors import RateLimitError

logger = logging.getLogger(__name__)

EntryT = TypeVar("EntryT")


class WalkerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class WalkerProgress:
    processed: int
    total: int


@dataclass
class WalkerFailure:
    index: int
    entry: Any
    error: str


@dataclass
class WalkerReport:
    status: WalkerStatus
    progress: WalkerProgress
    failures: list[WalkerFailure] = field(default_factory=list)


class EnrichmentWalker(Generic[EntryT]):
    """Walk shelf entries one at a time, calling ``fetch`` for each.

    A :class:`RateLimitError` pauses the walk on the current entry until
    :meth:`resume` is called, after which the same entry is retried. Any
    other error counts the entry as attempted and moves on. Only one entry
    is in flight at a time and nothing is fetched while paused.
    """

    def __init__(
        self,
        entries: Sequence[EntryT],
        fetch: Callable[[EntryT], Awaitable[Any]],
        *,
        on_progress: Callable[[WalkerProgress], None] | None = None,
    ):
        self._entries = list(entries)
        self._fetch = fetch
        self._on_progress = on_progress
        self._status = WalkerStatus.IDLE
        self._processed = 0
        self._pause_message: str | None = None
        self._resume_event = asyncio.Event()
        self._cancelled = False
        self._failures: list[WalkerFailure] = []

    @property
    def status(self) -> WalkerStatus:
        return self._status

    @property
    def progress(self) -> WalkerProgress:
        return WalkerProgress(self._processed, len(self._entries))

    @property
    def pause_message(self) -> str | None:
        return self._pause_message

    @property
    def failures(self) -> list[WalkerFailure]:
        return list(self._failures)

    async def run(self) -> WalkerReport:
        if self._status is not WalkerStatus.IDLE:
            raise RuntimeError(f"Walker already started ({self._status.value})")

        self._status = WalkerStatus.RUNNING
        logger.info("Enrichment walk started over %d entries", len(self._entries))
        index = 0
        while index < len(self._entries):
            if self._cancelled:
                break
            entry = self._entries[index]
            try:
                await self._fetch(entry)
            except RateLimitError as exc:
                self._pause(exc.message)
                await self.wait_for_resume()
                continue
            except Exception as exc:
                logger.warning("Enrichment failed for entry %d: %s", index, exc)
                self._failures.append(WalkerFailure(index=index, entry=entry, error=str(exc)))
            index += 1
            self._processed = index
            self._report()

        if self._cancelled:
            self._status = WalkerStatus.CANCELLED
            logger.info("Enrichment walk cancelled at %d/%d", self._processed, len(self._entries))
        else:
            self._status = WalkerStatus.COMPLETED
            logger.info("Enrichment walk completed (%d failures)", len(self._failures))
        return WalkerReport(self._status, self.progress, self.failures)

    async def wait_for_resume(self) -> None:
        """Suspend the loop until :meth:`resume` or :meth:`cancel` is called."""

        await self._resume_event.wait()
        self._resume_event.clear()
        if not self._cancelled:
            self._status = WalkerStatus.RUNNING
            self._pause_message = None

    def resume(self) -> None:
        if self._status is not WalkerStatus.PAUSED:
            return
        logger.info("Resuming enrichment walk at entry %d", self._processed)
        self._resume_event.set()

    def cancel(self) -> None:
        """Abandon the walk; entries not yet reached stay unenriched."""

        if self._status in (WalkerStatus.COMPLETED, WalkerStatus.CANCELLED):
            return
        self._cancelled = True
        self._resume_event.set()

    def _pause(self, message: str) -> None:
        self._status = WalkerStatus.PAUSED
        self._pause_message = message
        logger.warning(
            "Enrichment walk paused at %d/%d: %s",
            self._processed,
            len(self._entries),
            message,
        )

    def _report(self) -> None:
        if self._on_progress is not None:
            self._on_progress(self.progress)
