# data/commands.py
from __future__ import annotations

from typing import List

from models.dashboard import CommandDTO, CommandSectionDTO

AVAILABLE = "bg-green-100 dark:bg-green-900 text-green-800 dark:text-green-200"

# Commands the bot actually answers; the dashboard and `!help` both read this.
COMMAND_SECTIONS: List[CommandSectionDTO] = [
    CommandSectionDTO(
        title="Trainer",
        icon="person",
        icon_color="text-pokemon-red",
        commands=[
            CommandDTO(
                title="Register",
                description="Register as a trainer to start your journey",
                command="!register",
                status="Any Channel",
                status_color_class=AVAILABLE,
            ),
            CommandDTO(
                title="Trainer Profile",
                description="View your trainer profile or another trainer's profile",
                command="!profile [username]",
                status="Any Channel",
                status_color_class=AVAILABLE,
            ),
        ],
    ),
    CommandSectionDTO(
        title="Pokémon",
        icon="catching_pokemon",
        icon_color="text-pokemon-blue",
        commands=[
            CommandDTO(
                title="Team Management",
                description="View your current Pokémon team",
                command="!team",
                status="Any Channel",
                status_color_class=AVAILABLE,
            ),
        ],
    ),
    CommandSectionDTO(
        title="Battles",
        icon="sports_martial_arts",
        icon_color="text-pokemon-yellow",
        commands=[
            CommandDTO(
                title="Wild Battles",
                description="Battle a wild Pokémon; your first team member is used if no ID is given",
                command="!battle [pokemonId]",
                status="Available",
                status_color_class=AVAILABLE,
            ),
            CommandDTO(
                title="Close Battle",
                description="Close your last battle",
                command="!endbattle",
                status="Available",
                status_color_class=AVAILABLE,
            ),
        ],
    ),
]


def help_lines() -> List[str]:
    return [f"`{c.command}` {c.description}" for section in COMMAND_SECTIONS for c in section.commands]
