# bot/render.py
from __future__ import annotations

from typing import List, Optional

import discord

from models.trainer import PokemonDTO, UserDTO
from services.battle.models import BattlePokemon, BattleState, BattleStatus

LOG_TAIL = 5
HP_BAR_CELLS = 10
TEAM_SIZE = 6

RESULT_TEXT = {
    BattleStatus.USER_WON: ("🏆 You won the battle!", discord.Color.green()),
    BattleStatus.OPPONENT_WON: ("😢 You lost the battle!", discord.Color.red()),
    BattleStatus.FLED: ("🏃 You fled from the battle!", discord.Color.orange()),
}


def hp_percent(p: BattlePokemon) -> int:
    if p.max_hp <= 0:
        return 0
    return (p.current_hp * 100) // p.max_hp


def hp_bar(p: BattlePokemon) -> str:
    filled = hp_percent(p) // HP_BAR_CELLS
    return "🟩" * filled + "⬛" * (HP_BAR_CELLS - filled)


def hp_color(p: BattlePokemon) -> discord.Color:
    pct = hp_percent(p)
    if pct <= 20:
        return discord.Color.red()
    if pct <= 50:
        return discord.Color.orange()
    return discord.Color.green()


def types_line(p: BattlePokemon) -> str:
    return "/".join(t.capitalize() for t in p.types) or "Unknown"


def pokemon_embed(p: BattlePokemon, *, mine: bool) -> discord.Embed:
    title = f"Your {p.name} (Lv. {p.level})" if mine else f"Wild {p.name} (Lv. {p.level})"
    embed = discord.Embed(title=title, description=f"Type: {types_line(p)}", color=hp_color(p))
    sprite = p.image_url_back if mine else p.image_url_front
    if sprite:
        embed.set_thumbnail(url=sprite)
    embed.add_field(name="HP", value=f"{p.current_hp}/{p.max_hp}", inline=False)
    embed.add_field(name="HP Bar", value=hp_bar(p), inline=False)
    return embed


def log_tail(state: BattleState, n: int = LOG_TAIL) -> List[str]:
    return state.messages[-n:]


def battle_log_embed(state: BattleState) -> discord.Embed:
    embed = discord.Embed(
        title="Battle Log",
        description="\n".join(log_tail(state)) or "...",
        color=discord.Color.blue(),
    )
    result = RESULT_TEXT.get(state.battle_status)
    if result:
        text, color = result
        embed.add_field(name="Battle Result", value=text, inline=False)
        embed.color = color
    elif not state.is_user_turn:
        embed.set_footer(text=f"{state.opponent_pokemon.name} is thinking...")
    return embed


def battle_embeds(state: BattleState) -> List[discord.Embed]:
    return [
        pokemon_embed(state.opponent_pokemon, mine=False),
        pokemon_embed(state.user_pokemon, mine=True),
        battle_log_embed(state),
    ]


# ─────────────────────────────────────────────
# trainer
# ─────────────────────────────────────────────
def _team_types(p: PokemonDTO) -> str:
    return "/".join(p.types) if p.types else "Unknown"


def team_embed(owner: str, team: List[PokemonDTO], avatar_url: Optional[str] = None) -> discord.Embed:
    embed = discord.Embed(title=f"{owner}'s Pokémon Team", color=discord.Color.from_str("#FF5722"))
    if avatar_url:
        embed.set_thumbnail(url=avatar_url)
    for i, p in enumerate(team, start=1):
        embed.add_field(
            name=f"{i}. {p.name} (Lv. {p.level})",
            value=f"Type: {_team_types(p)}\nID: {p.id}",
            inline=False,
        )
    return embed


def profile_embed(user: UserDTO, avatar_url: Optional[str] = None) -> discord.Embed:
    embed = discord.Embed(title=f"{user.username}'s Trainer Profile", color=discord.Color.from_str("#3F51B5"))
    thumbnail = avatar_url or user.avatar
    if thumbnail:
        embed.set_thumbnail(url=thumbnail)

    stats = [
        ("Trainer Level", user.trainer_level),
        ("PokéCoins", user.pokecoins),
        ("Battle Wins", user.battle_wins),
        ("Tournament Wins", user.tournament_wins),
        ("Pokémon Caught", user.pokemon_caught),
        ("Team Size", f"{len(user.team)}/{TEAM_SIZE}"),
    ]
    for name, value in stats:
        embed.add_field(name=name, value=str(value), inline=True)

    if user.team:
        preview = ", ".join(f"{p.name} (Lv. {p.level})" for p in user.team)
        embed.add_field(name="Active Team", value=preview, inline=False)
    return embed


def welcome_embed(username: str, avatar_url: Optional[str] = None) -> discord.Embed:
    embed = discord.Embed(
        title="🎉 Welcome to the Pokémon World!",
        description=f"Congratulations {username}! You are now registered as a Pokémon trainer.",
        color=discord.Color.from_str("#4CAF50"),
    )
    embed.add_field(
        name="Next Steps",
        value="Use `!team` to view your team and `!battle` to start battling!",
        inline=False,
    )
    if avatar_url:
        embed.set_thumbnail(url=avatar_url)
    embed.set_footer(text="Your adventure begins now!")
    return embed
