# price_monitor/services/diff_engine.py

"""Compares fresh listings against the snapshot and emits price changes."""

import logging
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from price_monitor.models.change_event import ChangeEvent, Direction
from price_monitor.models.errors import ArithmeticPreconditionError
from price_monitor.models.product import ProductKey, ProductRecord
from price_monitor.models.snapshot import Snapshot
from price_monitor.parsers.price_text import CENTS

logger = logging.getLogger("price_monitor.diff")

_HUNDRED = Decimal(100)


def percent_change(previous: Decimal, delta: Decimal) -> Decimal:
    """Return ``delta / previous * 100`` rounded to two decimals.

    Raises:
        ArithmeticPreconditionError: *previous* is zero or negative.
    """
    if previous <= 0:
        raise ArithmeticPreconditionError(
            f"Cannot compute a percentage against a previous price of {previous}"
        )
    return (delta / previous * _HUNDRED).quantize(
        CENTS, rounding=ROUND_HALF_UP,
    )


def build_change_event(
    record: ProductRecord,
    category: str,
    previous: Decimal,
) -> ChangeEvent:
    """Describe the move from *previous* to the record's price."""
    delta = record.price - previous
    return ChangeEvent(
        name=record.name,
        category=category,
        unit=record.unit,
        previous_price=previous,
        current_price=record.price,
        delta=delta,
        percent_change=percent_change(previous, delta),
        direction=Direction.INCREASE if delta > 0 else Direction.DECREASE,
    )


def diff(
    records: Iterable[ProductRecord],
    category: str,
    snapshot: Snapshot,
) -> tuple[list[ChangeEvent], Snapshot]:
    """Fold one category's listings into *snapshot*.

    New products are recorded silently and unchanged prices are no-ops.
    Every record is upserted, so the snapshot is updated in place and
    returned alongside the events, which keep extraction order.
    """
    events: list[ChangeEvent] = []
    new_count = 0
    for record in records:
        key = ProductKey(category, record.name)
        previous = snapshot.get(key)
        if previous is None:
            new_count += 1
        elif previous != record.price:
            events.append(build_change_event(record, category, previous))
        snapshot.upsert(key, record.price)

    logger.info(
        "[%s] %d price changes, %d new products",
        category,
        len(events),
        new_count,
    )
    return events, snapshot
