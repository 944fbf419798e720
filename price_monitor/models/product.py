# price_monitor/models/product.py

"""Product data model for inter-module data flow."""

import html
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import NamedTuple

KEY_SEPARATOR = "_"


class SafeText(str):
    """Text that has already been HTML-escaped for display.

    Only :meth:`escape` should build instances. Escaping a value that is
    already ``SafeText`` returns it untouched, so a name can be rendered
    in any number of reports without being escaped twice.
    """

    __slots__ = ()

    @classmethod
    def escape(cls, raw: str) -> "SafeText":
        """Escape ``& < > " '`` once and tag the result as safe."""
        if isinstance(raw, SafeText):
            return raw
        return cls(html.escape(raw, quote=True))


class Unit(Enum):
    """Selling unit inferred from the price fragment."""

    PER_KILOGRAM = "kg"
    PER_15KG_CASE = "cajón 15kg"
    PER_UNIT = "unidad"

    @property
    def label(self) -> str:
        return self.value


class ProductKey(NamedTuple):
    """Stable identity of a listing across runs."""

    category: str
    name: str

    def to_storage(self) -> str:
        """Render the flat ``<category>_<name>`` form used on disk."""
        return f"{self.category}{KEY_SEPARATOR}{self.name}"

    @classmethod
    def from_storage(cls, text: str) -> "ProductKey":
        """Split a stored key on its first separator.

        Category labels never contain the separator, so anything after
        the first one belongs to the product name.
        """
        category, sep, name = text.partition(KEY_SEPARATOR)
        if not sep or not category or not name:
            raise ValueError(f"Malformed snapshot key: {text!r}")
        return cls(category=category, name=SafeText(name))


@dataclass(frozen=True)
class ProductRecord:
    """A single listing observed on a category page."""

    name: SafeText
    price: Decimal
    unit: Unit
    category: str

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(
                f"Negative price for {self.name!r}: {self.price}"
            )

    @property
    def key(self) -> ProductKey:
        return ProductKey(self.category, self.name)
