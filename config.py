import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_version: str = os.getenv("APP_VERSION", "dev")
    log_level: str = "INFO"

    database_url: str = ""
    redis_url: str = ""
    frontend_origin: str = ""

    # species / move data
    pokeapi_base_url: str = "https://pokeapi.co/api/v2"
    pokeapi_timeout: float = 10.0
    pokeapi_retries: int = 2

    # battles
    battle_store: str = "memory"  # "memory" | "redis"
    battle_ttl_seconds: int = 1800  # 0 = never expire
    battle_cleanup_interval: float = 60.0
    opponent_turn_delay: float = 1.0

    # discord
    discord_token: str = ""
    discord_prefix: str = "!"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
