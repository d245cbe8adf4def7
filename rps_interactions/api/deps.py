from __future__ import annotations

from fastapi import Depends

from rps_interactions.config import Settings, settings_from_env
from rps_interactions.discord_client import DiscordClient
from rps_interactions.interactions import InteractionRouter
from rps_interactions.session_store import SessionStore, create_session_store
from rps_interactions.signature import SignatureVerifier

# Process-lifetime collaborators, created on first use.
_STORE: SessionStore | None = None
_CLIENT: DiscordClient | None = None


def get_settings() -> Settings:
    return settings_from_env()


def get_session_store(settings: Settings = Depends(get_settings)) -> SessionStore:
    global _STORE
    if _STORE is None:
        _STORE = create_session_store(settings)
    return _STORE


def get_discord_client(settings: Settings = Depends(get_settings)) -> DiscordClient:
    global _CLIENT
    if _CLIENT is None:
        _CLIENT = DiscordClient(settings=settings)
    return _CLIENT


def get_verifier(settings: Settings = Depends(get_settings)) -> SignatureVerifier:
    return SignatureVerifier(public_key=settings.public_key)


def get_router(
    settings: Settings = Depends(get_settings),
    store: SessionStore = Depends(get_session_store),
    client: DiscordClient = Depends(get_discord_client),
) -> InteractionRouter:
    return InteractionRouter(store=store, notifier=client, settings=settings)


async def close_discord_client() -> None:
    global _CLIENT
    if _CLIENT is not None:
        await _CLIENT.aclose()
        _CLIENT = None


def reset_for_tests() -> None:
    """Forget the cached store and client so each test starts clean."""

    global _STORE, _CLIENT
    _STORE = None
    _CLIENT = None
