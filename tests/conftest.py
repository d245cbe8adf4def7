from __future__ import annotations

import json
import time
from collections.abc import Generator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient
from nacl.encoding import HexEncoder
from nacl.signing import SigningKey

from rps_interactions.api import deps
from rps_interactions.config import Settings, settings_from_env
from rps_interactions.discord_client import DiscordClient
from rps_interactions.session_store import InMemorySessionStore

APP_ID = "app-1"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"


@pytest.fixture(scope="session")
def signing_key() -> SigningKey:
    return SigningKey.generate()


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch, signing_key: SigningKey) -> Settings:
    """Hermetic environment: no guild (so startup never registers commands), in-memory sessions."""

    monkeypatch.setenv("APP_ID", APP_ID)
    monkeypatch.setenv("GUILD_ID", "")
    monkeypatch.setenv("DISCORD_TOKEN", "bot-token")
    monkeypatch.setenv("PUBLIC_KEY", signing_key.verify_key.encode(encoder=HexEncoder).decode())
    monkeypatch.setenv("SESSION_BACKEND", "memory")
    monkeypatch.delenv("DISCORD_API_BASE", raising=False)
    deps.reset_for_tests()
    return settings_from_env()


@dataclass
class DiscordRecorder:
    """httpx MockTransport handler standing in for the platform REST API and its CDN."""

    requests: list[httpx.Request] = field(default_factory=list)
    fail_methods: set[str] = field(default_factory=set)
    installed: list[dict[str, Any]] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method in self.fail_methods:
            return httpx.Response(404, json={"message": "Unknown Message", "code": 10008})
        if request.url.host == "cdn.example":
            return httpx.Response(200, content=PNG_BYTES, headers={"content-type": "image/png"})
        if request.method == "GET":
            return httpx.Response(200, json=self.installed)
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json={})

    def calls(self) -> list[tuple[str, str]]:
        return [(r.method, str(r.url)) for r in self.requests]


@pytest.fixture()
def recorder() -> DiscordRecorder:
    return DiscordRecorder()


@pytest.fixture()
def discord_client(test_env: Settings, recorder: DiscordRecorder) -> DiscordClient:
    return DiscordClient(settings=test_env, transport=httpx.MockTransport(recorder))


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@dataclass
class InteractionsClient:
    client: TestClient
    signing_key: SigningKey

    def post(self, body: dict[str, Any], *, sign: bool = True) -> httpx.Response:
        return self.post_raw(json.dumps(body).encode(), sign=sign)

    def post_raw(self, raw: bytes, *, sign: bool = True) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if sign:
            timestamp = str(int(time.time()))
            signature = self.signing_key.sign(timestamp.encode() + raw).signature.hex()
            headers["X-Signature-Ed25519"] = signature
            headers["X-Signature-Timestamp"] = timestamp
        return self.client.post("/interactions", content=raw, headers=headers)


@pytest.fixture()
def api(
    signing_key: SigningKey,
    store: InMemorySessionStore,
    discord_client: DiscordClient,
) -> Generator[InteractionsClient, None, None]:
    from rps_interactions.main import app

    app.dependency_overrides[deps.get_session_store] = lambda: store
    app.dependency_overrides[deps.get_discord_client] = lambda: discord_client
    with TestClient(app) as c:
        yield InteractionsClient(client=c, signing_key=signing_key)
    app.dependency_overrides.clear()
