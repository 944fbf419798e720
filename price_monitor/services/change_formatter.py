# price_monitor/services/change_formatter.py

"""Renders change events and listings as Telegram HTML messages.

Product names arrive as :class:`SafeText` (escaped at extraction time),
so nothing here escapes them again.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from zoneinfo import ZoneInfo

from price_monitor.config.settings import Settings
from price_monitor.models.change_event import ChangeEvent, Direction
from price_monitor.models.product import ProductRecord
from price_monitor.parsers.price_text import format_amount

_GLYPHS: dict[Direction, str] = {
    Direction.INCREASE: "📈",
    Direction.DECREASE: "📉",
}


def local_timestamp(now: datetime | None = None) -> str:
    """Format *now* (default: current time) in the vendor's timezone."""
    tz = ZoneInfo(Settings.TIMEZONE)
    moment = now.astimezone(tz) if now else datetime.now(tz)
    return moment.strftime("%d/%m/%Y, %H:%M:%S")


def _format_event(event: ChangeEvent) -> str:
    sign = "+" if event.direction is Direction.INCREASE else "-"
    return (
        f"{_GLYPHS[event.direction]} <b>{event.name}</b>"
        f" ({event.category.upper()})\n"
        f"💰 Antes: ${format_amount(event.previous_price)}"
        f" ({event.unit.label})\n"
        f"💰 Ahora: ${format_amount(event.current_price)}\n"
        f"📊 Cambio: {sign}${format_amount(abs(event.delta))}"
        f" ({sign}{format_amount(abs(event.percent_change))}%)\n"
    )


def format_changes(
    events: Sequence[ChangeEvent],
    now: datetime | None = None,
) -> str | None:
    """Build the change report, or None when there is nothing to send."""
    if not events:
        return None
    blocks = [_format_event(event) for event in events]
    return (
        "🔔 <b>CAMBIOS DE PRECIOS DETECTADOS</b>\n\n"
        + "\n".join(blocks)
        + f"\n⏰ {local_timestamp(now)}"
    )


def format_listing(
    categorized: Mapping[str, Sequence[ProductRecord]],
    now: datetime | None = None,
) -> str:
    """Render every currently listed product, grouped by category."""
    lines: list[str] = ["📋 <b>PRECIOS ACTUALES</b>", ""]
    for category, records in categorized.items():
        lines.append(f"<b>{category.upper()}:</b>")
        if not records:
            lines.append("(sin productos)")
        for record in records:
            lines.append(
                f"• {record.name}: ${format_amount(record.price)}"
                f" ({record.unit.label})"
            )
        lines.append("")
    lines.append(f"⏰ {local_timestamp(now)}")
    return "\n".join(lines)
