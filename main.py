from __future__ import annotations

import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.requests import Request
from starlette.responses import JSONResponse

from bot.discord_bot import start_discord_bot, stop_discord_bot
from config import settings
from core.errors import BattleError
from db import close_pool, run_migrations
from routers.battle import router as battle_router
from routers.dashboard import router as dashboard_router
from routers.profile import router as profile_router
from services.battle.deps import close_battle_service, get_storage, init_battle_service
from services.redis_manager import close_redis
from services.scheduler import run_all_schedulers, stop_all_schedulers

logger.remove()
logger.add(sys.stderr, level=settings.log_level.upper())

app = FastAPI(title="PokeBattle API", version=settings.app_version)

# ─────────────────────────────────────────────
# CORS
# ─────────────────────────────────────────────
allowed_origins = {
    "http://localhost:3000",
    "http://localhost:5173",
}
if settings.frontend_origin:
    allowed_origins.add(settings.frontend_origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(allowed_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-User-Id"],
)


# ─────────────────────────────────────────────
# ERRORS
# ─────────────────────────────────────────────
@app.exception_handler(BattleError)
async def battle_error_handler(request: Request, exc: BattleError) -> JSONResponse:
    logger.info("api: {} {} -> {} {}", request.method, request.url.path, exc.status_code, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


# ─────────────────────────────────────────────
# STARTUP / SHUTDOWN
# ─────────────────────────────────────────────
@app.on_event("startup")
async def startup_event():
    await run_migrations()

    service = await init_battle_service()
    run_all_schedulers(service, cleanup_interval=settings.battle_cleanup_interval)

    try:
        await start_discord_bot(service, get_storage())
    except Exception as e:
        logger.warning("discord bot failed to start: {}", e)


@app.on_event("shutdown")
async def shutdown_event():
    await stop_discord_bot()
    await stop_all_schedulers()
    await close_battle_service()
    await close_redis()
    await close_pool()


@app.get("/health")
async def health():
    return {"ok": True, "version": settings.app_version}


# ─────────────────────────────────────────────
# ROUTERS
# ─────────────────────────────────────────────
app.include_router(battle_router, prefix="/api")
app.include_router(profile_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")
