# tests/test_monitor_cycle.py

"""Tests for the monitoring cycle orchestration and the owning service."""

import asyncio
import json
import tempfile
import threading
import unittest
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from price_monitor.models.errors import ArithmeticPreconditionError
from price_monitor.models.product import (
    ProductKey,
    ProductRecord,
    SafeText,
    Unit,
)
from price_monitor.models.snapshot import Snapshot
from price_monitor.services.monitor_cycle import MonitorCycle, MonitorService
from price_monitor.storage.last_run_store import LastRunStore
from price_monitor.storage.snapshot_store import SnapshotStore

CATEGORIES = {
    "cerdo": "https://example.com/cerdo/",
    "pollo": "https://example.com/pollo/",
}


def _record(name: str, price: str, category: str) -> ProductRecord:
    return ProductRecord(
        name=SafeText.escape(name),
        price=Decimal(price),
        unit=Unit.PER_KILOGRAM,
        category=category,
    )


class FakeFetcher:
    """Returns canned records per category, or raises when told to."""

    def __init__(
        self,
        pages: dict[str, list[ProductRecord]],
        failing: frozenset[str] = frozenset(),
    ) -> None:
        self.pages = pages
        self.failing = failing
        self.calls: list[str] = []

    def fetch_category(
        self, category: str, url: str,
    ) -> list[ProductRecord]:
        self.calls.append(category)
        if category in self.failing:
            raise ConnectionError(f"{category} unreachable")
        return list(self.pages.get(category, []))


class MonitorCycleTestCase(unittest.IsolatedAsyncioTestCase):
    """Shared temp-dir stores."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp_dir.cleanup)
        base = Path(self.tmp_dir.name)
        self.snapshot_path = base / "precios.json"
        self.last_run_path = base / "last_run.json"
        self.snapshot_store = SnapshotStore(path=self.snapshot_path)
        self.last_run_store = LastRunStore(path=self.last_run_path)

    def _cycle(self, fetcher: FakeFetcher) -> MonitorCycle:
        return MonitorCycle(
            categories=CATEGORIES,
            fetcher=fetcher,
            snapshot_store=self.snapshot_store,
            last_run_store=self.last_run_store,
        )


class TestRunCycle(MonitorCycleTestCase):
    """run_cycle() behaviour."""

    async def test_aggregates_events_across_categories(self) -> None:
        fetcher = FakeFetcher({
            "cerdo": [_record("Bife Angosto", "10450.00", "cerdo")],
            "pollo": [_record("Pechuga", "5000.00", "pollo")],
        })
        snapshot = Snapshot({
            ProductKey("cerdo", "Bife Angosto"): Decimal("9500.00"),
            ProductKey("pollo", "Pechuga"): Decimal("5500.00"),
        })
        result = await self._cycle(fetcher).run_cycle(snapshot)
        self.assertEqual(
            [(e.category, e.name) for e in result.events],
            [("cerdo", "Bife Angosto"), ("pollo", "Pechuga")],
        )
        self.assertEqual(fetcher.calls, ["cerdo", "pollo"])
        self.assertEqual(result.records_seen, {"cerdo": 1, "pollo": 1})

    async def test_persists_snapshot_and_last_run_once(self) -> None:
        fetcher = FakeFetcher({
            "cerdo": [_record("Bondiola", "8990.00", "cerdo")],
        })
        result = await self._cycle(fetcher).run_cycle(Snapshot())
        data = json.loads(self.snapshot_path.read_text(encoding="utf-8"))
        self.assertEqual(data, {"cerdo_Bondiola": 8990.0})
        record = self.last_run_store.load()
        assert record is not None
        self.assertEqual(record.finished_at, result.finished_at)

    async def test_failing_category_is_isolated(self) -> None:
        """pollo fails, cerdo still produces events and is persisted."""
        fetcher = FakeFetcher(
            {"cerdo": [_record("Bife Angosto", "10450.00", "cerdo")]},
            failing=frozenset({"pollo"}),
        )
        snapshot = Snapshot(
            {ProductKey("cerdo", "Bife Angosto"): Decimal("9500.00")}
        )
        result = await self._cycle(fetcher).run_cycle(snapshot)
        self.assertEqual(len(result.events), 1)
        self.assertEqual(result.events[0].category, "cerdo")
        self.assertEqual(len(result.errors), 1)
        self.assertIn("pollo", result.errors[0])
        stored = self.snapshot_store.load()
        self.assertEqual(
            stored.get(ProductKey("cerdo", "Bife Angosto")),
            Decimal("10450.00"),
        )

    async def test_caller_snapshot_is_not_mutated(self) -> None:
        fetcher = FakeFetcher({
            "cerdo": [_record("Bondiola", "8990.00", "cerdo")],
        })
        snapshot = Snapshot()
        result = await self._cycle(fetcher).run_cycle(snapshot)
        self.assertEqual(len(snapshot), 0)
        self.assertEqual(len(result.snapshot), 1)

    async def test_fatal_error_persists_nothing(self) -> None:
        fetcher = FakeFetcher({
            "cerdo": [_record("Gratis", "10.00", "cerdo")],
        })
        snapshot = Snapshot({ProductKey("cerdo", "Gratis"): Decimal("0.00")})
        with self.assertRaises(ArithmeticPreconditionError):
            await self._cycle(fetcher).run_cycle(snapshot)
        self.assertFalse(self.snapshot_path.exists())
        self.assertFalse(self.last_run_path.exists())

    async def test_cycles_do_not_overlap(self) -> None:
        """A second trigger waits for the running cycle to finish."""
        release = threading.Event()
        active = 0
        max_active = 0
        lock = threading.Lock()

        class SlowFetcher(FakeFetcher):
            def fetch_category(
                self, category: str, url: str,
            ) -> list[ProductRecord]:
                nonlocal active, max_active
                with lock:
                    active += 1
                    max_active = max(max_active, active)
                release.wait(timeout=5)
                with lock:
                    active -= 1
                return []

        cycle = self._cycle(SlowFetcher({}))
        first = asyncio.create_task(cycle.run_cycle(Snapshot()))
        second = asyncio.create_task(cycle.run_cycle(Snapshot()))
        await asyncio.sleep(0.05)
        self.assertTrue(cycle.running)
        release.set()
        await asyncio.gather(first, second)
        self.assertEqual(max_active, 1)
        self.assertFalse(cycle.running)

    async def test_current_listing_does_not_persist(self) -> None:
        fetcher = FakeFetcher({
            "cerdo": [_record("Bondiola", "8990.00", "cerdo")],
        })
        listing = await self._cycle(fetcher).current_listing()
        self.assertEqual(len(listing["cerdo"]), 1)
        self.assertEqual(listing["pollo"], [])
        self.assertFalse(self.snapshot_path.exists())


class TestMonitorService(MonitorCycleTestCase):
    """Snapshot ownership and notification."""

    async def test_queued_run_diffs_against_previous_result(self) -> None:
        """Two triggers at once report a change only once."""
        self.snapshot_store.save(Snapshot(
            {ProductKey("cerdo", "Bife Angosto"): Decimal("9500.00")}
        ))
        service = MonitorService(self._cycle(FakeFetcher({
            "cerdo": [_record("Bife Angosto", "10450.00", "cerdo")],
        })))
        first, second = await asyncio.gather(
            service.run(notify=False), service.run(notify=False),
        )
        self.assertEqual(len(first.events), 1)
        self.assertEqual(second.events, [])
        self.assertEqual(
            service.snapshot.get(ProductKey("cerdo", "Bife Angosto")),
            Decimal("10450.00"),
        )

    async def test_queued_run_keeps_updates_of_failed_category(self) -> None:
        fetcher = FakeFetcher({
            "cerdo": [_record("Bondiola", "8990.00", "cerdo")],
            "pollo": [_record("Pechuga", "5200.00", "pollo")],
        })
        canned_fetch = fetcher.fetch_category

        def flaky_fetch(category: str, url: str) -> list[ProductRecord]:
            if category == "pollo" and fetcher.calls.count("pollo") >= 1:
                fetcher.calls.append(category)
                raise ConnectionError("pollo unreachable")
            return canned_fetch(category, url)

        fetcher.fetch_category = flaky_fetch  # type: ignore[method-assign]
        service = MonitorService(self._cycle(fetcher))
        _, second = await asyncio.gather(
            service.run(notify=False), service.run(notify=False),
        )
        self.assertEqual(len(second.errors), 1)
        self.assertEqual(
            self.snapshot_store.load().get(ProductKey("pollo", "Pechuga")),
            Decimal("5200.00"),
        )

    async def test_notifies_when_prices_change(self) -> None:
        self.snapshot_store.save(Snapshot(
            {ProductKey("cerdo", "Bife Angosto"): Decimal("9500.00")}
        ))
        notifier = MagicMock()
        notifier.send = AsyncMock()
        service = MonitorService(
            self._cycle(FakeFetcher({
                "cerdo": [_record("Bife Angosto", "10450.00", "cerdo")],
            })),
            notifier=notifier,
        )
        await service.run()
        notifier.send.assert_awaited_once()
        self.assertIn("Bife Angosto", notifier.send.await_args.args[0])

    async def test_no_notification_without_changes(self) -> None:
        notifier = MagicMock()
        notifier.send = AsyncMock()
        service = MonitorService(
            self._cycle(FakeFetcher({
                "cerdo": [_record("Bondiola", "8990.00", "cerdo")],
            })),
            notifier=notifier,
        )
        await service.run()
        notifier.send.assert_not_awaited()

    async def test_notify_false_skips_delivery(self) -> None:
        self.snapshot_store.save(Snapshot(
            {ProductKey("cerdo", "Bondiola"): Decimal("1.00")}
        ))
        notifier = MagicMock()
        notifier.send = AsyncMock()
        service = MonitorService(
            self._cycle(FakeFetcher({
                "cerdo": [_record("Bondiola", "2.00", "cerdo")],
            })),
            notifier=notifier,
        )
        result = await service.run(notify=False)
        self.assertEqual(len(result.events), 1)
        notifier.send.assert_not_awaited()

    async def test_live_snapshot_carries_over_between_cycles(self) -> None:
        fetcher = FakeFetcher({
            "cerdo": [_record("Bondiola", "8990.00", "cerdo")],
        })
        service = MonitorService(self._cycle(fetcher))
        first = await service.run()
        fetcher.pages["cerdo"] = [_record("Bondiola", "9500.00", "cerdo")]
        second = await service.run()
        self.assertEqual(first.events, [])
        self.assertEqual(len(second.events), 1)
        self.assertEqual(
            service.snapshot.get(ProductKey("cerdo", "Bondiola")),
            Decimal("9500.00"),
        )

    async def test_delivery_failure_does_not_raise(self) -> None:
        self.snapshot_store.save(Snapshot(
            {ProductKey("cerdo", "Bondiola"): Decimal("1.00")}
        ))
        notifier = MagicMock()
        notifier.send = AsyncMock(side_effect=RuntimeError("telegram down"))
        service = MonitorService(
            self._cycle(FakeFetcher({
                "cerdo": [_record("Bondiola", "2.00", "cerdo")],
            })),
            notifier=notifier,
        )
        result = await service.run()
        self.assertEqual(len(result.events), 1)
        self.assertTrue(self.snapshot_path.exists())


if __name__ == "__main__":
    unittest.main()
