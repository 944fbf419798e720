# price_monitor/storage/last_run_store.py

"""Persists the completion time of the latest monitoring cycle."""

import json
import logging
from datetime import datetime
from pathlib import Path

from price_monitor.config.settings import Settings
from price_monitor.models.snapshot import LastRunRecord
from price_monitor.storage.snapshot_store import write_json_atomic

logger = logging.getLogger("price_monitor.storage")


class LastRunStore:
    """Reads and writes ``{"last_run": "<ISO-8601>"}``."""

    def __init__(self, path: Path | None = None) -> None:
        self.path: Path = path or Settings.LAST_RUN_PATH

    def save(self, finished_at: datetime) -> LastRunRecord:
        write_json_atomic(
            self.path, {"last_run": finished_at.isoformat()},
        )
        logger.debug("Last run recorded at %s", finished_at.isoformat())
        return LastRunRecord(finished_at=finished_at)

    def load(self) -> LastRunRecord | None:
        """Return the last run, or None if it was never recorded or is unreadable."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            return LastRunRecord(
                finished_at=datetime.fromisoformat(data["last_run"]),
            )
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Failed to read last run from %s: %s", self.path, exc,
            )
            return None
