# price_monitor/parsers/price_text.py

"""Parse Argentine-formatted price fragments such as ``$9.500,00 kg``."""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from price_monitor.models.errors import PriceParseError
from price_monitor.models.product import Unit

CENTS = Decimal("0.01")

_WHITESPACE_RE = re.compile(r"\s+")

# "$" then digits with "." thousands separators, "," and exactly two decimals
_AMOUNT_RE = re.compile(r"\$\s?(\d[\d.]*,\d{2})")


@dataclass(frozen=True)
class ParsedPrice:
    """Amount and selling unit read from a price fragment."""

    amount: Decimal
    unit: Unit


def infer_unit(text: str) -> Unit:
    """Classify the selling unit from hints in the fragment.

    ``15kg`` is tested before the bare ``kg`` since it contains it.
    """
    lowered = _WHITESPACE_RE.sub(" ", text).lower()
    if "15kg" in lowered.replace(" ", ""):
        return Unit.PER_15KG_CASE
    if "kg" in lowered:
        return Unit.PER_KILOGRAM
    return Unit.PER_UNIT


def parse_amount(text: str) -> Decimal:
    """Return the first ``$D.DDD,DD`` amount in *text* as a Decimal."""
    collapsed = _WHITESPACE_RE.sub(" ", text).strip()
    match = _AMOUNT_RE.search(collapsed)
    if match is None:
        raise PriceParseError(f"No price found in {collapsed!r}")
    normalised = match.group(1).replace(".", "").replace(",", ".")
    try:
        return Decimal(normalised).quantize(CENTS)
    except InvalidOperation as exc:
        raise PriceParseError(
            f"Unparseable amount {match.group(1)!r}"
        ) from exc


def parse_price_text(text: str | None) -> ParsedPrice:
    """Parse a price fragment into an amount and a unit.

    Raises:
        PriceParseError: the fragment holds no amount. Callers are
            expected to skip the listing rather than abort.
    """
    if not text:
        raise PriceParseError("Empty price text")
    return ParsedPrice(amount=parse_amount(text), unit=infer_unit(text))


def format_amount(amount: Decimal) -> str:
    """Render *amount* with es-AR grouping: ``10.450,00``."""
    english = f"{amount.quantize(CENTS):,.2f}"
    return english.replace(",", "\x00").replace(".", ",").replace("\x00", ".")


def format_price_text(amount: Decimal) -> str:
    """Inverse of :func:`parse_amount` for non-negative amounts."""
    return f"${format_amount(amount)}"
