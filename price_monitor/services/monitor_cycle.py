# price_monitor/services/monitor_cycle.py

"""Orchestrates a full monitoring pass across every configured category."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from zoneinfo import ZoneInfo

from price_monitor.config.settings import Settings
from price_monitor.models.change_event import ChangeEvent
from price_monitor.models.product import ProductRecord
from price_monitor.models.snapshot import Snapshot
from price_monitor.services.change_formatter import format_changes
from price_monitor.services.diff_engine import diff
from price_monitor.storage.last_run_store import LastRunStore
from price_monitor.storage.snapshot_store import SnapshotStore

logger = logging.getLogger("price_monitor.cycle")


class CategoryFetcher(Protocol):
    def fetch_category(
        self, category: str, url: str,
    ) -> list[ProductRecord]: ...


class Notifier(Protocol):
    async def send(self, text: str) -> None: ...


@dataclass
class CycleResult:
    """Outcome of one completed monitoring cycle."""

    events: list[ChangeEvent]
    snapshot: Snapshot
    finished_at: datetime
    records_seen: dict[str, int] = field(
        default_factory=lambda: dict[str, int]()
    )
    errors: list[str] = field(
        default_factory=lambda: list[str]()
    )


def _default_fetcher() -> CategoryFetcher:
    from price_monitor.scrapers.category_scraper import CategoryScraper

    return CategoryScraper()


class MonitorCycle:
    """Runs fetch → extract → diff for each category, then persists once.

    Only one cycle runs at a time; a manual trigger issued while the
    scheduled cycle is in flight waits for it to finish.
    """

    def __init__(
        self,
        categories: Mapping[str, str] | None = None,
        fetcher: CategoryFetcher | None = None,
        snapshot_store: SnapshotStore | None = None,
        last_run_store: LastRunStore | None = None,
    ) -> None:
        self.categories: dict[str, str] = dict(
            categories or Settings.CATEGORIES
        )
        self.fetcher = fetcher or _default_fetcher()
        self.snapshot_store = snapshot_store or SnapshotStore()
        self.last_run_store = last_run_store or LastRunStore()
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def _fetch(self, category: str, url: str) -> list[ProductRecord]:
        records: list[ProductRecord] = await asyncio.to_thread(
            self.fetcher.fetch_category, category, url,
        )
        return records

    async def run_cycle(self, snapshot: Snapshot) -> CycleResult:
        """Diff every category against *snapshot* and persist the result.

        The caller's snapshot is left untouched; the updated copy is
        returned in the result. A failing category is logged and skipped.
        Errors raised while diffing abort the cycle before anything is
        written.
        """
        async with self._lock:
            logger.info(
                "Starting cycle over %d categories", len(self.categories),
            )
            working = snapshot.copy()
            result_events: list[ChangeEvent] = []
            records_seen: dict[str, int] = {}
            errors: list[str] = []

            for category, url in self.categories.items():
                try:
                    records = await self._fetch(category, url)
                except Exception as exc:
                    logger.error(
                        "[%s] Extraction failed: %s",
                        category,
                        exc,
                        exc_info=True,
                    )
                    errors.append(f"{category}: {exc}")
                    records_seen[category] = 0
                    continue
                records_seen[category] = len(records)
                events, working = diff(records, category, working)
                result_events.extend(events)

            finished_at = datetime.now(ZoneInfo(Settings.TIMEZONE))
            self.snapshot_store.save(working)
            self.last_run_store.save(finished_at)

            logger.info(
                "Cycle finished: %d changes, %d errors",
                len(result_events),
                len(errors),
            )
            return CycleResult(
                events=result_events,
                snapshot=working,
                finished_at=finished_at,
                records_seen=records_seen,
                errors=errors,
            )

    async def current_listing(self) -> dict[str, list[ProductRecord]]:
        """Fetch every category without touching any snapshot."""
        listing: dict[str, list[ProductRecord]] = {}
        for category, url in self.categories.items():
            listing[category] = await self._fetch(category, url)
        return listing


class MonitorService:
    """Owns the live snapshot across cycles and delivers the reports."""

    def __init__(
        self,
        cycle: MonitorCycle,
        notifier: Notifier | None = None,
    ) -> None:
        self.cycle = cycle
        self.notifier = notifier
        self.snapshot: Snapshot = cycle.snapshot_store.load()
        self._lock = asyncio.Lock()

    async def run(self, notify: bool = True) -> CycleResult:
        """Run one cycle, adopt its snapshot and send the report if any.

        The live snapshot is read and replaced under one lock, so a
        trigger queued behind a running cycle diffs against that cycle's
        result.
        """
        async with self._lock:
            result = await self.cycle.run_cycle(self.snapshot)
            self.snapshot = result.snapshot

        report = format_changes(result.events, result.finished_at)
        if report is None:
            logger.info("No price changes")
        elif notify and self.notifier is not None:
            try:
                await self.notifier.send(report)
                logger.info("%d changes notified", len(result.events))
            except Exception as exc:
                logger.error(
                    "Failed to deliver notification: %s", exc, exc_info=True,
                )
        return result
