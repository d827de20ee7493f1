# services/pokeapi.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Protocol, Union

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from config import settings
from core.errors import DataFetchError

DEFAULT_BASE_STAT = 50


class MoveRef(BaseModel):
    name: str
    url: str


class SpeciesData(BaseModel):
    id: int
    name: str
    types: List[str]
    sprite_front: Optional[str] = None
    sprite_back: Optional[str] = None
    base_stats: Dict[str, int] = Field(default_factory=dict)
    move_pool: List[MoveRef] = Field(default_factory=list)

    def stat(self, name: str) -> int:
        return self.base_stats.get(name, DEFAULT_BASE_STAT)


class MoveData(BaseModel):
    id: int
    name: str
    power: Optional[int] = None
    pp: int
    accuracy: Optional[int] = None
    type: str
    damage_class: str


class DataProvider(Protocol):
    async def fetch_species(self, id_or_name: Union[int, str]) -> SpeciesData: ...

    async def fetch_move(self, ref: Union[MoveRef, str]) -> MoveData: ...


def parse_species(payload: Dict[str, Any]) -> SpeciesData:
    sprites = payload.get("sprites") or {}
    return SpeciesData(
        id=int(payload["id"]),
        name=payload["name"],
        types=[t["type"]["name"] for t in payload.get("types") or []],
        sprite_front=sprites.get("front_default"),
        sprite_back=sprites.get("back_default"),
        base_stats={s["stat"]["name"]: int(s["base_stat"]) for s in payload.get("stats") or []},
        move_pool=[MoveRef(name=m["move"]["name"], url=m["move"]["url"]) for m in payload.get("moves") or []],
    )


def parse_move(payload: Dict[str, Any]) -> MoveData:
    return MoveData(
        id=int(payload["id"]),
        name=payload["name"],
        power=payload.get("power"),
        pp=int(payload.get("pp") or 0),
        accuracy=payload.get("accuracy"),
        type=payload["type"]["name"],
        damage_class=(payload.get("damage_class") or {}).get("name", "physical"),
    )


class PokeApiClient:
    """
    Species / move data over the public PokeAPI.
    Reference data is static, so successful responses are cached per URL.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.pokeapi_base_url).rstrip("/")
        self.retries = settings.pokeapi_retries if retries is None else max(0, retries)
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.pokeapi_timeout,
            transport=transport,
        )
        self._cache: Dict[str, Dict[str, Any]] = {}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, url: str) -> Dict[str, Any]:
        cached = self._cache.get(url)
        if cached is not None:
            return cached

        attempt = 0
        while True:
            try:
                resp = await self._client.get(url)
                if resp.status_code >= 500 and attempt < self.retries:
                    attempt += 1
                    logger.warning("pokeapi: {} -> {}, retry {}/{}", url, resp.status_code, attempt, self.retries)
                    await asyncio.sleep(0.2 * attempt)
                    continue
                resp.raise_for_status()
                data = resp.json()
            except httpx.TransportError as e:
                if attempt < self.retries:
                    attempt += 1
                    logger.warning("pokeapi: {} transport error {!r}, retry {}/{}", url, e, attempt, self.retries)
                    await asyncio.sleep(0.2 * attempt)
                    continue
                logger.error("pokeapi: {} unreachable: {!r}", url, e)
                raise DataFetchError(f"Failed to fetch data from {url}") from e
            except (httpx.HTTPStatusError, ValueError) as e:
                logger.error("pokeapi: {} failed: {!r}", url, e)
                raise DataFetchError(f"Failed to fetch data from {url}") from e

            if not data:
                raise DataFetchError(f"No data returned from {url}")

            self._cache[url] = data
            return data

    async def fetch_species(self, id_or_name: Union[int, str]) -> SpeciesData:
        key = str(id_or_name).strip().lower()
        payload = await self._get_json(f"{self.base_url}/pokemon/{key}")
        try:
            return parse_species(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise DataFetchError(f"Malformed species data for {id_or_name}") from e

    async def fetch_move(self, ref: Union[MoveRef, str]) -> MoveData:
        if isinstance(ref, MoveRef):
            url = ref.url
        elif str(ref).startswith("http"):
            url = str(ref)
        else:
            url = f"{self.base_url}/move/{str(ref).strip().lower()}"

        payload = await self._get_json(url)
        try:
            return parse_move(payload)
        except (KeyError, TypeError, ValueError) as e:
            raise DataFetchError(f"Malformed move data for {url}") from e
