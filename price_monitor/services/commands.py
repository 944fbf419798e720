# price_monitor/services/commands.py

"""Transport-independent command handlers.

Every handler takes a :class:`CommandContext` and returns the reply
text (Telegram HTML). :func:`dispatch` looks a command up by name and
turns handler failures into an error reply instead of raising.
"""

import html
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from zoneinfo import ZoneInfo

from price_monitor.config.settings import Settings
from price_monitor.services.change_formatter import (
    format_changes,
    format_listing,
)
from price_monitor.services.monitor_cycle import MonitorService

logger = logging.getLogger("price_monitor.commands")


@dataclass
class CommandContext:
    """Everything a handler may need to answer a request."""

    service: MonitorService
    args: str = ""


Handler = Callable[[CommandContext], Awaitable[str]]


@dataclass(frozen=True)
class Command:
    handler: Handler
    description: str


async def current_prices(ctx: CommandContext) -> str:
    listing = await ctx.service.cycle.current_listing()
    return format_listing(listing)


async def force_cycle(ctx: CommandContext) -> str:
    result = await ctx.service.run(notify=False)
    report = format_changes(result.events, result.finished_at)
    reply = report or "ℹ️ Sin cambios de precios."
    if result.errors:
        failed = "\n".join(f"⚠️ {error}" for error in result.errors)
        reply = f"{reply}\n\n{failed}"
    return reply


async def last_run(ctx: CommandContext) -> str:
    record = ctx.service.cycle.last_run_store.load()
    if record is None:
        return "ℹ️ Todavía no se ejecutó ningún monitoreo."
    local = record.finished_at.astimezone(ZoneInfo(Settings.TIMEZONE))
    return f"⏰ Último monitoreo: {local.strftime('%d/%m/%Y, %H:%M:%S')}"


async def tracked_products(ctx: CommandContext) -> str:
    names = ctx.service.snapshot.product_names()
    if not names:
        return "ℹ️ No hay productos rastreados todavía."
    lines = [f"📦 <b>PRODUCTOS RASTREADOS</b> ({len(names)})", ""]
    lines.extend(f"• {name}" for name in names)
    return "\n".join(lines)


async def list_categories(ctx: CommandContext) -> str:
    lines = ["🗂 <b>CATEGORÍAS</b>", ""]
    lines.extend(f"• {category}" for category in ctx.service.cycle.categories)
    return "\n".join(lines)


async def status(ctx: CommandContext) -> str:
    state = "en curso" if ctx.service.cycle.running else "inactivo"
    return (
        "📊 <b>ESTADO</b>\n\n"
        f"📦 Productos rastreados: {len(ctx.service.snapshot)}\n"
        f"🔄 Monitoreo: {state}\n"
        f"⏰ {Settings.SCHEDULE_DESCRIPTION}"
    )


async def show_help(ctx: CommandContext) -> str:
    lines = ["🤖 <b>Monitor de Precios</b>", "", "Comandos disponibles:"]
    lines.extend(
        f"/{name} - {command.description}"
        for name, command in COMMANDS.items()
    )
    lines.extend(["", f"⏰ {Settings.SCHEDULE_DESCRIPTION}"])
    return "\n".join(lines)


COMMANDS: dict[str, Command] = {
    "precios": Command(current_prices, "precios actuales"),
    "monitorear": Command(force_cycle, "forzar un monitoreo ahora"),
    "ultima": Command(last_run, "fecha del último monitoreo"),
    "productos": Command(tracked_products, "productos rastreados"),
    "categorias": Command(list_categories, "categorías monitoreadas"),
    "estado": Command(status, "estado del monitor"),
    "help": Command(show_help, "esta ayuda"),
}


async def dispatch(name: str, ctx: CommandContext) -> str:
    """Run the handler registered under *name* and return its reply."""
    key = name.strip().lstrip("/").split("@", 1)[0].lower()
    command = COMMANDS.get(key)
    if command is None:
        return f"❓ Comando desconocido: /{html.escape(key)}. Usá /help"
    try:
        return await command.handler(ctx)
    except Exception as exc:
        logger.error("Command /%s failed: %s", key, exc, exc_info=True)
        return f"❌ Error: {html.escape(str(exc))}"
