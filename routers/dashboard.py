# routers/dashboard.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from data.commands import COMMAND_SECTIONS
from models.dashboard import CommandSectionDTO, EventDTO
from services.battle.deps import get_storage
from services.storage import Storage

router = APIRouter(tags=["dashboard"])


@router.get("/events", response_model=List[EventDTO])
async def get_events(storage: Storage = Depends(get_storage)) -> List[EventDTO]:
    return await storage.get_upcoming_events()


@router.get("/commands", response_model=List[CommandSectionDTO])
async def get_commands() -> List[CommandSectionDTO]:
    return COMMAND_SECTIONS
