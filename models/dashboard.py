# models/dashboard.py
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class EventDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    description: str
    date: str
    time_remaining: str = Field(alias="timeRemaining")
    color_class: str = Field(alias="colorClass")


class CommandDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str
    command: str
    status: str
    status_color_class: str = Field(alias="statusColorClass")


class CommandSectionDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    icon: str
    icon_color: str = Field(alias="iconColor")
    commands: List[CommandDTO] = Field(default_factory=list)
