# bot/trainer_cog.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from discord.ext import commands
from loguru import logger

from bot.render import profile_embed, team_embed, welcome_embed
from models.trainer import ActivityCreate, UserDTO
from services.storage import Storage

REGISTER_ACTIVITY = "REGISTER"
NOT_REGISTERED = "You need to register first! Use `!register` in the welcome channel."


class TrainerCog(commands.Cog):
    """Trainer accounts: `!register`, `!team`, `!profile [username]`."""

    def __init__(self, bot: commands.Bot, storage: Storage):
        self.bot = bot
        self.storage = storage

    async def _free_username(self, name: str, discord_id: str) -> str:
        if await self.storage.get_user_by_username(name) is None:
            return name
        return f"{name}_{discord_id[-4:]}"

    async def _log_registration(self, user: UserDTO) -> None:
        try:
            await self.storage.create_activity(
                ActivityCreate(
                    type=REGISTER_ACTIVITY,
                    description=f"{user.username} registered as a new trainer!",
                    timestamp=datetime.now(timezone.utc).isoformat(),
                    user_id=user.id,
                )
            )
        except Exception:
            logger.exception("discord: register activity FAILED user={}", user.id)

    # ===========================
    # REGISTER
    # ===========================
    @commands.command(name="register")
    async def register(self, ctx: commands.Context):
        discord_id = str(ctx.author.id)
        if await self.storage.get_user_by_discord_id(discord_id):
            await ctx.reply("You are already registered! Use `!profile` to see your profile.")
            return

        avatar = ctx.author.display_avatar.url
        try:
            username = await self._free_username(ctx.author.name, discord_id)
            user = await self.storage.create_user(username, discord_id, avatar)
        except Exception:
            logger.exception("discord: create_user FAILED discord_id={}", discord_id)
            await ctx.reply("An error occurred while registering. Please try again later.")
            return

        logger.info("discord: registered user={} discord_id={}", user.id, discord_id)
        await ctx.reply(embed=welcome_embed(user.username, avatar))
        await self._log_registration(user)

    # ===========================
    # TEAM
    # ===========================
    @commands.command(name="team")
    async def team(self, ctx: commands.Context):
        user = await self.storage.get_user_by_discord_id(str(ctx.author.id))
        if not user:
            await ctx.reply(NOT_REGISTERED)
            return

        team = await self.storage.get_user_team(user.id)
        if not team:
            await ctx.reply("You don't have any Pokémon in your team! Catch a Pokémon first.")
            return

        await ctx.reply(embed=team_embed(ctx.author.name, team, ctx.author.display_avatar.url))

    # ===========================
    # PROFILE
    # ===========================
    @commands.command(name="profile")
    async def profile(self, ctx: commands.Context, *, username: Optional[str] = None):
        if username:
            user = await self.storage.get_user_by_username(username)
            if not user:
                await ctx.reply(f"User {username} not found.")
                return
            avatar = user.avatar
        else:
            user = await self.storage.get_user_by_discord_id(str(ctx.author.id))
            if not user:
                await ctx.reply(NOT_REGISTERED)
                return
            avatar = ctx.author.display_avatar.url

        if not user.team:
            user.team = await self.storage.get_user_team(user.id)
        await ctx.reply(embed=profile_embed(user, avatar))
