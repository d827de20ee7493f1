# routers/profile.py
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from models.trainer import ActivityDTO, PokemonDTO, UserDTO
from services.battle.deps import get_storage, user_id_from_header
from services.storage import Storage

router = APIRouter(tags=["profile"])


@router.get("/user", response_model=UserDTO)
async def get_user(
    user_id: int = Depends(user_id_from_header),
    storage: Storage = Depends(get_storage),
) -> UserDTO:
    user = await storage.get_user(user_id)
    if not user:
        raise HTTPException(404, "User not found")
    return user


@router.get("/user/team", response_model=List[PokemonDTO])
async def get_team(
    user_id: int = Depends(user_id_from_header),
    storage: Storage = Depends(get_storage),
) -> List[PokemonDTO]:
    return await storage.get_user_team(user_id)


@router.get("/activity", response_model=List[ActivityDTO])
async def get_activity(
    limit: int = Query(10, ge=1, le=50),
    user_id: int = Depends(user_id_from_header),
    storage: Storage = Depends(get_storage),
) -> List[ActivityDTO]:
    return await storage.get_recent_activities(user_id=user_id, limit=limit)
