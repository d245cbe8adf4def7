from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rps_interactions.api.deps import close_discord_client, get_discord_client
from rps_interactions.api.routes import router
from rps_interactions.commands import ensure_guild_commands
from rps_interactions.config import settings_from_env
from rps_interactions.errors import ConfigurationError

load_dotenv(override=False)

app = FastAPI(title="rps-interactions", version="0.1.0")
app.include_router(router)
# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


@app.exception_handler(ConfigurationError)
async def _configuration_error(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("configuration error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "internal error"})


@app.on_event("startup")
async def _startup() -> None:
    settings = settings_from_env()
    if not settings.can_register_commands:
        logger.info("APP_ID/GUILD_ID/DISCORD_TOKEN not all set; not registering commands")
        return
    await ensure_guild_commands(
        client=get_discord_client(settings),
        app_id=settings.app_id,
        guild_id=settings.guild_id,
    )


@app.on_event("shutdown")
async def _shutdown() -> None:
    await close_discord_client()


@app.get("/info")
async def info() -> dict[str, str]:
    return {"name": "rps-interactions", "version": "0.1.0"}


def main() -> None:
    settings = settings_from_env()
    # TLS is terminated in front of this process.
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
