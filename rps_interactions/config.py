from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_API_BASE = "https://discord.com/api/v10/"


@dataclass(frozen=True, slots=True)
class Settings:
    app_id: str
    guild_id: str
    bot_token: str
    public_key: str
    host: str = "0.0.0.0"
    port: int = 3000
    api_base: str = DEFAULT_API_BASE
    session_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"

    @property
    def can_register_commands(self) -> bool:
        return bool(self.app_id and self.guild_id and self.bot_token)


def settings_from_env() -> Settings:
    backend = os.environ.get("SESSION_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "redis"}:
        raise ValueError(f"SESSION_BACKEND must be 'memory' or 'redis', got {backend!r}")

    return Settings(
        app_id=os.environ.get("APP_ID", "").strip(),
        guild_id=os.environ.get("GUILD_ID", "").strip(),
        bot_token=os.environ.get("DISCORD_TOKEN", "").strip(),
        public_key=os.environ.get("PUBLIC_KEY", "").strip(),
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3000")),
        # httpx joins relative endpoints onto the base only when it ends with a slash.
        api_base=os.environ.get("DISCORD_API_BASE", DEFAULT_API_BASE).rstrip("/") + "/",
        session_backend=backend,
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
