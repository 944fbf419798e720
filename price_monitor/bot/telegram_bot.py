# price_monitor/bot/telegram_bot.py

"""Telegram transport: outbound reports and inbound command routing."""

import logging

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.filters import Command as CommandFilter
from aiogram.filters import CommandObject
from aiogram.types import Message

from price_monitor.services.commands import COMMANDS, CommandContext, dispatch
from price_monitor.services.monitor_cycle import MonitorService

logger = logging.getLogger("price_monitor.telegram")

TELEGRAM_MESSAGE_LIMIT = 4096

# Commands that hit the network get an immediate acknowledgement
_SLOW_COMMANDS: dict[str, str] = {
    "precios": "🔍 Obteniendo precios actuales...",
    "monitorear": "🔍 Iniciando monitoreo...",
}


def create_bot(token: str) -> Bot:
    """Build a bot that sends every message as HTML."""
    return Bot(
        token=token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def split_message(
    text: str, limit: int = TELEGRAM_MESSAGE_LIMIT,
) -> list[str]:
    """Split *text* on line boundaries into chunks Telegram will accept."""
    chunks: list[str] = []
    current: list[str] = []
    size = 0
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append("\n".join(current))
                current, size = [], 0
            chunks.append(line[:limit])
            line = line[limit:]
        added = len(line) + (1 if current else 0)
        if current and size + added > limit:
            chunks.append("\n".join(current))
            current, size = [], 0
            added = len(line)
        current.append(line)
        size += added
    if current:
        chunks.append("\n".join(current))
    return chunks


class TelegramNotifier:
    """Sends reports to the single configured chat."""

    def __init__(self, bot: Bot, chat_id: str) -> None:
        self.bot = bot
        self.chat_id = chat_id

    async def send(self, text: str) -> None:
        for chunk in split_message(text):
            await self.bot.send_message(chat_id=self.chat_id, text=chunk)


class TelegramAdapter:
    """Routes ``/command`` messages to the command dispatch table."""

    def __init__(self, bot: Bot, service: MonitorService) -> None:
        self.bot = bot
        self.service = service
        self.dp = Dispatcher()
        self.dp.message.register(
            self.handle_command, CommandFilter(*COMMANDS, "start"),
        )

    async def handle_command(
        self, message: Message, command: CommandObject,
    ) -> None:
        name = "help" if command.command == "start" else command.command
        logger.info(
            "Command /%s from chat %s", name, message.chat.id,
        )
        ack = _SLOW_COMMANDS.get(name)
        if ack:
            await message.answer(ack)
        reply = await dispatch(
            name, CommandContext(self.service, command.args or ""),
        )
        for chunk in split_message(reply):
            await message.answer(chunk)

    async def start(self) -> None:
        """Start long polling; returns when polling stops."""
        logger.info("Starting Telegram polling")
        await self.dp.start_polling(self.bot)

    async def stop(self) -> None:
        logger.info("Stopping Telegram adapter")
        try:
            await self.dp.stop_polling()
        except RuntimeError:
            # Polling was never started
            pass
        await self.bot.session.close()
