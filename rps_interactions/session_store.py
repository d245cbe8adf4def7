from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Protocol

import redis
from pydantic import BaseModel, Field, field_validator

from rps_interactions.config import Settings
from rps_interactions.errors import DuplicateSessionError
from rps_interactions.game import is_valid_choice

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "rps:session:"  # + {session_id}


def _now() -> datetime:
    return datetime.now(tz=UTC)


class Session(BaseModel):
    """A challenge waiting for an opponent.

    Keyed by the id of the `challenge` command interaction that created it.
    """

    session_id: str = Field(..., min_length=1)
    challenger_id: str = Field(..., min_length=1)
    challenger_choice: str
    created_at: datetime = Field(default_factory=_now)

    @field_validator("challenger_choice")
    @classmethod
    def _known_choice(cls, value: str) -> str:
        if not is_valid_choice(value):
            raise ValueError(f"Unknown choice: {value!r}")
        return value


class SessionStore(Protocol):
    def create(self, *, session_id: str, challenger_id: str, choice: str) -> Session: ...

    def get(self, session_id: str) -> Session | None: ...

    def consume_and_delete(self, session_id: str) -> Session | None: ...


class InMemorySessionStore:
    """Process-local store.

    Nothing here awaits, so under asyncio each call runs to completion before
    another task can touch the dict; `consume_and_delete` relies on `dict.pop`.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(self, *, session_id: str, challenger_id: str, choice: str) -> Session:
        if session_id in self._sessions:
            logger.warning("refusing to overwrite existing session %s", session_id)
            raise DuplicateSessionError(session_id)
        session = Session(session_id=session_id, challenger_id=challenger_id, challenger_choice=choice)
        self._sessions[session_id] = session
        logger.info("session %s created by %s", session_id, challenger_id)
        return session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def consume_and_delete(self, session_id: str) -> Session | None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info("session %s consumed", session_id)
        return session


class RedisSessionStore:
    """Redis-backed store for a single instance.

    `SET NX` refuses duplicates and `GETDEL` makes consumption a single server-side step.
    """

    def __init__(self, *, r: redis.Redis) -> None:
        self._r = r

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{session_id}"

    def create(self, *, session_id: str, challenger_id: str, choice: str) -> Session:
        session = Session(session_id=session_id, challenger_id=challenger_id, challenger_choice=choice)
        created = self._r.set(self._key(session_id), session.model_dump_json(), nx=True)
        if not created:
            logger.warning("refusing to overwrite existing session %s", session_id)
            raise DuplicateSessionError(session_id)
        logger.info("session %s created by %s", session_id, challenger_id)
        return session

    def get(self, session_id: str) -> Session | None:
        raw = self._r.get(self._key(session_id))
        if not raw:
            return None
        return Session.model_validate_json(raw)

    def consume_and_delete(self, session_id: str) -> Session | None:
        raw = self._r.getdel(self._key(session_id))
        if not raw:
            return None
        logger.info("session %s consumed", session_id)
        return Session.model_validate_json(raw)


def create_session_store(settings: Settings) -> SessionStore:
    if settings.session_backend == "redis":
        # decode_responses=True => strings in/out instead of bytes
        return RedisSessionStore(r=redis.Redis.from_url(settings.redis_url, decode_responses=True))
    return InMemorySessionStore()
