# bot/battle_cog.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import discord
from discord.ext import commands
from loguru import logger

from bot.render import battle_embeds
from bot.trainer_cog import NOT_REGISTERED
from core.errors import BattleError
from services.battle.models import BattleState
from services.battle.service import BattleService
from services.storage import Storage

MOVE_STYLES = {
    "fire": discord.ButtonStyle.danger,
    "fighting": discord.ButtonStyle.danger,
    "dragon": discord.ButtonStyle.danger,
    "water": discord.ButtonStyle.primary,
    "ice": discord.ButtonStyle.primary,
    "psychic": discord.ButtonStyle.primary,
    "flying": discord.ButtonStyle.primary,
    "grass": discord.ButtonStyle.success,
    "bug": discord.ButtonStyle.success,
    "poison": discord.ButtonStyle.success,
}


def move_style(move_type: str) -> discord.ButtonStyle:
    return MOVE_STYLES.get(move_type, discord.ButtonStyle.secondary)


@dataclass
class TrackedBattle:
    owner_id: int
    message: Optional[discord.Message] = None


class MoveButton(discord.ui.Button):
    def __init__(self, cog: "BattleCog", state: BattleState, index: int):
        move = state.user_pokemon.moves[index]
        super().__init__(
            label=f"{move.name} ({move.current_pp}/{move.pp})",
            style=move_style(move.type),
            disabled=not state.is_user_turn or not state.is_active or not move.usable,
            row=0 if index < 2 else 1,
        )
        self.cog = cog
        self.battle_id = state.id
        self.index = index

    async def callback(self, interaction: discord.Interaction):
        await self.cog.handle_move(interaction, self.battle_id, self.index)


class FleeButton(discord.ui.Button):
    def __init__(self, cog: "BattleCog", state: BattleState):
        super().__init__(
            label="Run Away",
            style=discord.ButtonStyle.danger,
            disabled=not state.is_user_turn or not state.is_active,
            row=2,
        )
        self.cog = cog
        self.battle_id = state.id

    async def callback(self, interaction: discord.Interaction):
        await self.cog.handle_flee(interaction, self.battle_id)


class BattleView(discord.ui.View):
    def __init__(self, cog: "BattleCog", state: BattleState):
        super().__init__(timeout=None)
        for i in range(len(state.user_pokemon.moves)):
            self.add_item(MoveButton(cog, state, i))
        self.add_item(FleeButton(cog, state))


class BattleCog(commands.Cog):
    """Wild battles from chat: `!battle [pokemonId]`, then buttons."""

    def __init__(self, bot: commands.Bot, service: BattleService, storage: Storage):
        self.bot = bot
        self.service = service
        self.storage = storage
        self.tracked: Dict[str, TrackedBattle] = {}
        self.latest: Dict[int, str] = {}  # discord user id -> last battle id
        service.add_listener(self.on_opponent_turn)

    # ===========================
    # HELPERS
    # ===========================
    def _view(self, state: BattleState) -> Optional[BattleView]:
        return BattleView(self, state) if state.is_active else None

    def _forget_if_over(self, state: BattleState) -> None:
        if not state.is_active:
            self.tracked.pop(state.id, None)

    async def _reply_error(self, interaction: discord.Interaction, text: str) -> None:
        if interaction.response.is_done():
            await interaction.followup.send(text, ephemeral=True)
        else:
            await interaction.response.send_message(text, ephemeral=True)

    def _owns(self, interaction: discord.Interaction, battle_id: str) -> bool:
        tracked = self.tracked.get(battle_id)
        return tracked is not None and tracked.owner_id == interaction.user.id

    # ===========================
    # COMMANDS
    # ===========================
    @commands.command(name="battle")
    async def battle(self, ctx: commands.Context, pokemon_id: Optional[int] = None):
        user = await self.storage.get_user_by_discord_id(str(ctx.author.id))
        if not user:
            await ctx.reply(NOT_REGISTERED)
            return

        if pokemon_id is None:
            team = await self.storage.get_user_team(user.id)
            if not team:
                await ctx.reply("You don't have any Pokémon in your team! Catch a Pokémon first.")
                return
            pokemon_id = team[0].id

        loading = await ctx.reply("Starting battle...")
        try:
            state = await self.service.start_battle(user.id, pokemon_id)
        except BattleError as e:
            await loading.edit(content=f"❌ {e.message}")
            return
        except Exception:
            logger.exception("discord: start_battle FAILED user={} pokemon={}", user.id, pokemon_id)
            await loading.edit(content="An error occurred while starting the battle. Please try again later.")
            return

        await loading.delete()
        message = await ctx.send(embeds=battle_embeds(state), view=self._view(state))
        self.tracked[state.id] = TrackedBattle(owner_id=ctx.author.id, message=message)
        self.latest[ctx.author.id] = state.id

    @commands.command(name="endbattle")
    async def end_battle(self, ctx: commands.Context):
        battle_id = self.latest.pop(ctx.author.id, None)
        if not battle_id:
            await ctx.reply("You have no battle to end.")
            return
        await self.service.end_battle(battle_id)
        self.tracked.pop(battle_id, None)
        await ctx.reply("Battle closed.")

    # ===========================
    # BUTTONS
    # ===========================
    async def handle_move(self, interaction: discord.Interaction, battle_id: str, index: int) -> None:
        if not self._owns(interaction, battle_id):
            await self._reply_error(interaction, "This is not your battle!")
            return
        try:
            state = await self.service.execute_move(battle_id, index)
        except BattleError as e:
            await self._reply_error(interaction, e.message)
            return
        await interaction.response.edit_message(embeds=battle_embeds(state), view=self._view(state))
        self._forget_if_over(state)

    async def handle_flee(self, interaction: discord.Interaction, battle_id: str) -> None:
        if not self._owns(interaction, battle_id):
            await self._reply_error(interaction, "This is not your battle!")
            return
        try:
            state = await self.service.flee(battle_id)
        except BattleError as e:
            await self._reply_error(interaction, e.message)
            return
        await interaction.response.edit_message(embeds=battle_embeds(state), view=self._view(state))
        self._forget_if_over(state)

    # ===========================
    # OPPONENT TURN
    # ===========================
    async def on_opponent_turn(self, state: BattleState) -> None:
        tracked = self.tracked.get(state.id)
        if tracked is None or tracked.message is None:
            return
        await tracked.message.edit(embeds=battle_embeds(state), view=self._view(state))
        self._forget_if_over(state)
