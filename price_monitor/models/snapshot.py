# price_monitor/models/snapshot.py

"""Last-known price per product, the only state that survives a restart."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from price_monitor.models.product import ProductKey


class Snapshot:
    """Mapping of :class:`ProductKey` to the last observed price.

    Entries are upserted and never removed: a product that vanishes
    from its category page keeps its last price.
    """

    def __init__(
        self, prices: Mapping[ProductKey, Decimal] | None = None,
    ) -> None:
        self._prices: dict[ProductKey, Decimal] = dict(prices or {})

    def get(self, key: ProductKey) -> Decimal | None:
        return self._prices.get(key)

    def upsert(self, key: ProductKey, price: Decimal) -> None:
        self._prices[key] = price

    def items(self) -> list[tuple[ProductKey, Decimal]]:
        return list(self._prices.items())

    def product_names(self) -> list[str]:
        """Distinct product names across all categories, sorted."""
        return sorted({key.name for key in self._prices})

    def copy(self) -> "Snapshot":
        return Snapshot(self._prices)

    def __len__(self) -> int:
        return len(self._prices)

    def __contains__(self, key: object) -> bool:
        return key in self._prices

    def __iter__(self) -> Iterator[ProductKey]:
        return iter(self._prices)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self._prices == other._prices

    def __repr__(self) -> str:
        return f"Snapshot({len(self._prices)} entries)"


@dataclass(frozen=True)
class LastRunRecord:
    """Completion time of the most recent monitoring cycle."""

    finished_at: datetime
