# price_monitor/cli/runner.py

"""Entry points for the one-shot CLI modes and the long-running bot."""

import html
import logging
from collections.abc import Mapping, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from price_monitor.config.settings import Settings
from price_monitor.models.change_event import ChangeEvent, Direction
from price_monitor.models.errors import ConfigurationError
from price_monitor.models.product import ProductRecord
from price_monitor.parsers.price_text import format_amount
from price_monitor.services.monitor_cycle import MonitorCycle, MonitorService

logger = logging.getLogger("price_monitor.cli")

# Stderr console for status messages so stdout stays clean
_err = Console(stderr=True)


def _terminal_name(name: str) -> Text:
    """Product names are stored HTML-escaped; show them as literal text."""
    return Text(html.unescape(name))


def build_changes_table(events: Sequence[ChangeEvent]) -> Table:
    """Render change events as a Rich table."""
    table = Table(
        title="Cambios de precios",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Producto", max_width=50)
    table.add_column("Categoría", style="magenta")
    table.add_column("Antes", justify="right")
    table.add_column("Ahora", justify="right", style="bold")
    table.add_column("Cambio", justify="right")

    for event in events:
        colour = "red" if event.direction is Direction.INCREASE else "green"
        sign = "+" if event.direction is Direction.INCREASE else "-"
        table.add_row(
            _terminal_name(event.name),
            event.category,
            f"${format_amount(event.previous_price)} ({event.unit.label})",
            f"${format_amount(event.current_price)}",
            f"[{colour}]{sign}${format_amount(abs(event.delta))}"
            f" ({sign}{format_amount(abs(event.percent_change))}%)[/{colour}]",
        )
    return table


def build_listing_table(
    listing: Mapping[str, Sequence[ProductRecord]],
) -> Table:
    """Render the current listing as a Rich table."""
    table = Table(
        title="Precios actuales",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Producto", max_width=50)
    table.add_column("Categoría", style="magenta")
    table.add_column("Precio", justify="right", style="green")
    table.add_column("Unidad", justify="center")

    idx = 0
    for category, records in listing.items():
        for record in records:
            idx += 1
            table.add_row(
                str(idx),
                _terminal_name(record.name),
                category,
                f"${format_amount(record.price)}",
                record.unit.label,
            )
    return table


async def run_once() -> int:
    """Run a single cycle without notifying; return an exit code."""
    service = MonitorService(MonitorCycle())
    _err.print(
        f"[bold]Monitoreando:[/bold] {', '.join(service.cycle.categories)}"
    )
    result = await service.run(notify=False)

    for error_msg in result.errors:
        _err.print(f"[red]Error: {error_msg}[/red]")

    seen = sum(result.records_seen.values())
    _err.print(
        f"[green]✓ {seen} productos, {len(result.events)} cambios[/green]"
    )
    if result.events:
        Console().print(build_changes_table(result.events))
    else:
        _err.print("[dim]Sin cambios[/dim]")
    return 1 if result.errors else 0


async def show_prices() -> int:
    """Print the current listing; no state is modified."""
    cycle = MonitorCycle()
    listing = await cycle.current_listing()
    if not any(listing.values()):
        _err.print("[yellow]No products found.[/yellow]")
        return 1
    Console().print(build_listing_table(listing))
    return 0


async def run_bot(initial_run: bool = True) -> int:
    """Start the Telegram bot and the daily scheduler until interrupted."""
    from price_monitor.bot.telegram_bot import (
        TelegramAdapter,
        TelegramNotifier,
        create_bot,
    )
    from price_monitor.services.scheduler import CronScheduler

    try:
        Settings.validate_transport()
    except ConfigurationError as exc:
        logger.critical("%s", exc)
        _err.print(f"[red]⚠️ {exc}[/red]")
        return 1

    bot = create_bot(Settings.BOT_TOKEN)
    service = MonitorService(
        MonitorCycle(),
        notifier=TelegramNotifier(bot, Settings.CHAT_ID),
    )
    adapter = TelegramAdapter(bot, service)
    scheduler = CronScheduler(service.run)

    logger.info("Bot started")
    try:
        if initial_run:
            await scheduler.run_job()
        await scheduler.start()
        await adapter.start()
    finally:
        await scheduler.stop()
        await adapter.stop()
        logger.info("Bot shutting down")
    return 0
