# price_monitor/storage/snapshot_store.py

"""JSON-file persistence for the last-known price of every product."""

import json
import logging
import os
import tempfile
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from price_monitor.config.settings import Settings
from price_monitor.models.errors import PersistenceCorruptionError
from price_monitor.models.product import ProductKey
from price_monitor.models.snapshot import Snapshot
from price_monitor.parsers.price_text import CENTS

logger = logging.getLogger("price_monitor.storage")


def write_json_atomic(path: Path, data: object) -> None:
    """Write *data* as JSON through a temp file and an atomic rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class SnapshotStore:
    """Loads and saves the snapshot as a flat ``{"<category>_<name>": price}`` file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path: Path = path or Settings.SNAPSHOT_PATH

    def _read_raw(self) -> dict[str, Any]:
        """Return the decoded JSON object, or raise on corruption."""
        try:
            content = self.path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise PersistenceCorruptionError(
                f"Cannot read {self.path}: {exc}"
            ) from exc
        if not content:
            return {}
        try:
            data = json.loads(
                content, parse_float=Decimal, parse_constant=Decimal,
            )
        except json.JSONDecodeError as exc:
            raise PersistenceCorruptionError(
                f"Invalid JSON in {self.path}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise PersistenceCorruptionError(
                f"Expected a JSON object in {self.path}, "
                f"got {type(data).__name__}"
            )
        return data

    def load(self) -> Snapshot:
        """Load the snapshot, starting empty when the file is absent or corrupt."""
        if not self.path.exists():
            logger.info("No snapshot at %s, starting empty", self.path)
            return Snapshot()

        try:
            raw = self._read_raw()
        except PersistenceCorruptionError as exc:
            logger.error("%s, initialising empty snapshot", exc)
            return Snapshot()

        snapshot = Snapshot()
        for text_key, value in raw.items():
            try:
                key = ProductKey.from_storage(text_key)
                if isinstance(value, bool):
                    raise InvalidOperation
                price = Decimal(str(value))
                # Stored prices must be finite and positive
                if not price.is_finite() or price <= 0:
                    raise InvalidOperation
                price = price.quantize(CENTS)
            except (ValueError, InvalidOperation):
                logger.warning(
                    "Ignoring malformed snapshot entry %r: %r",
                    text_key,
                    value,
                )
                continue
            snapshot.upsert(key, price)

        logger.info(
            "Loaded %d snapshot entries from %s", len(snapshot), self.path,
        )
        return snapshot

    def save(self, snapshot: Snapshot) -> Path:
        """Persist every entry in one atomic write."""
        data = {
            key.to_storage(): float(price)
            for key, price in snapshot.items()
        }
        write_json_atomic(self.path, data)
        logger.info(
            "Saved %d snapshot entries to %s", len(data), self.path,
        )
        return self.path
