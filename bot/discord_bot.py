# bot/discord_bot.py
from __future__ import annotations

import asyncio
from typing import Optional

import discord
from discord.ext import commands
from loguru import logger

from bot.battle_cog import BattleCog
from bot.trainer_cog import TrainerCog
from config import settings
from data.commands import help_lines
from services.battle.service import BattleService
from services.storage import Storage

HELP_TEXT = "\n".join(
    ["**Pokémon Bot Commands**", *help_lines(), "Pick a move or **Run Away** with the buttons under the battle."]
)

_bot: Optional[commands.Bot] = None
_task: Optional[asyncio.Task] = None


def create_bot() -> commands.Bot:
    intents = discord.Intents.default()
    intents.message_content = True

    bot = commands.Bot(command_prefix=settings.discord_prefix, intents=intents, help_command=None)

    @bot.event
    async def on_ready():
        logger.info("discord: logged in as {} ({} guilds)", bot.user, len(bot.guilds))
        await bot.change_presence(activity=discord.Game(name=f"{settings.discord_prefix}help | Pokémon Battles"))

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, (commands.BadArgument, commands.MissingRequiredArgument)):
            await ctx.reply(f"⚠️ {error}")
            return
        logger.opt(exception=error).error("discord: command {} failed", ctx.command)
        await ctx.reply("An error occurred. Please try again later.")

    @bot.command(name="help")
    async def help_command(ctx: commands.Context):
        await ctx.reply(HELP_TEXT)

    return bot


async def start_discord_bot(service: BattleService, storage: Storage) -> Optional[commands.Bot]:
    """Starts the bot in the background; no token, no bot."""
    global _bot, _task
    if not settings.discord_token:
        logger.warning("DISCORD_TOKEN is not set, bot will not start")
        return None

    _bot = create_bot()
    await _bot.add_cog(BattleCog(_bot, service, storage))
    await _bot.add_cog(TrainerCog(_bot, storage))
    _task = asyncio.create_task(_bot.start(settings.discord_token))
    return _bot


async def stop_discord_bot() -> None:
    global _bot, _task
    if _bot is not None:
        await _bot.close()
        _bot = None
    if _task is not None:
        _task.cancel()
        await asyncio.gather(_task, return_exceptions=True)
        _task = None
