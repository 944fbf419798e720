# price_monitor/models/change_event.py

"""Price change detected between two observations of a product."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from price_monitor.models.product import SafeText, Unit


class Direction(Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


@dataclass(frozen=True)
class ChangeEvent:
    """One non-zero price movement. Never persisted."""

    name: SafeText
    category: str
    unit: Unit
    previous_price: Decimal
    current_price: Decimal
    delta: Decimal
    percent_change: Decimal
    direction: Direction
