from __future__ import annotations

import asyncio
import random

import fakeredis
import pytest

from rps_interactions.api.models import Interaction, InteractionResponseType
from rps_interactions.config import Settings
from rps_interactions.correlation import accept_id, select_choice_id
from rps_interactions.discord_client import DiscordClient, run_followups
from rps_interactions.errors import ConfigurationError
from rps_interactions.interactions import InteractionRouter
from rps_interactions.session_store import InMemorySessionStore, RedisSessionStore, SessionStore

from .conftest import DiscordRecorder


def _interaction(body: dict) -> Interaction:  # type: ignore[type-arg]
    return Interaction.model_validate(body)


def _challenge(choice: str = "rock") -> Interaction:
    return _interaction(
        {
            "type": 2,
            "id": "E1",
            "member": {"user": {"id": "U1"}},
            "data": {"name": "challenge", "options": [{"name": "object", "type": 3, "value": choice}]},
        }
    )


def _select(value: str = "paper", user_id: str = "U2") -> Interaction:
    return _interaction(
        {
            "type": 3,
            "id": "I3",
            "token": "tok",
            "member": {"user": {"id": user_id}},
            "message": {"id": "M2"},
            "data": {"custom_id": select_choice_id("E1"), "values": [value]},
        }
    )


@pytest.fixture(params=["memory", "redis"])
def router_store(request: pytest.FixtureRequest) -> SessionStore:
    if request.param == "redis":
        return RedisSessionStore(r=fakeredis.FakeRedis(decode_responses=True))
    return InMemorySessionStore()


@pytest.fixture()
def router(router_store: SessionStore, discord_client: DiscordClient, test_env: Settings) -> InteractionRouter:
    return InteractionRouter(store=router_store, notifier=discord_client, settings=test_env, rng=random.Random(3))


def test_full_game_through_router(router: InteractionRouter, router_store: SessionStore) -> None:
    created = router.dispatch(_challenge("rock"))
    assert created.followups == []
    assert router_store.get("E1") is not None

    accepted = router.dispatch(
        _interaction(
            {
                "type": 3,
                "token": "tok",
                "member": {"user": {"id": "U2"}},
                "message": {"id": "M1"},
                "data": {"custom_id": accept_id("E1")},
            }
        )
    )
    assert accepted.response.type == InteractionResponseType.channel_message_with_source
    assert [f.description for f in accepted.followups] == ["delete challenge message for session E1"]

    resolved = router.dispatch(_select("paper"))
    assert resolved.response.data is not None
    assert resolved.response.data.content == "<@U2>'s **paper** covers <@U1>'s **rock**"
    assert [f.description for f in resolved.followups] == ["close selection menu for session E1"]
    assert router_store.get("E1") is None


def test_selection_checks_session_before_validating_value(router: InteractionRouter, router_store: SessionStore) -> None:
    ignored = router.dispatch(_select("lizard"))
    assert ignored.response.type == InteractionResponseType.deferred_update_message
    assert ignored.followups == []

    router.dispatch(_challenge("rock"))
    with pytest.raises(ValueError):
        router.dispatch(_select("lizard"))
    assert router_store.get("E1") is not None


def test_menu_order_follows_injected_rng(discord_client: DiscordClient, test_env: Settings) -> None:
    def _menu_values(seed: int) -> list[str]:
        store = InMemorySessionStore()
        store.create(session_id="E1", challenger_id="U1", choice="rock")
        r = InteractionRouter(store=store, notifier=discord_client, settings=test_env, rng=random.Random(seed))
        d = r.dispatch(
            _interaction({"type": 3, "member": {"user": {"id": "U2"}}, "data": {"custom_id": accept_id("E1")}})
        )
        assert d.response.data is not None and d.response.data.components is not None
        menu = d.response.data.components[0].components[0]
        return [o.value for o in menu.options]  # type: ignore[union-attr]

    assert _menu_values(5) == _menu_values(5)
    assert sorted(_menu_values(5)) == ["paper", "rock", "scissors"]


@pytest.mark.asyncio
async def test_concurrent_selections_resolve_once(router: InteractionRouter, recorder: DiscordRecorder) -> None:
    router.dispatch(_challenge("rock"))

    async def _deliver():  # type: ignore[no-untyped-def]
        await asyncio.sleep(0)
        d = router.dispatch(_select("scissors"))
        await run_followups(d.followups)
        return d

    first, second = await asyncio.gather(_deliver(), _deliver())
    types = sorted(int(d.response.type) for d in (first, second))
    assert types == [InteractionResponseType.channel_message_with_source, InteractionResponseType.deferred_update_message]
    assert [r.method for r in recorder.requests] == ["PATCH"]


def test_resolution_with_corrupted_session_fails_loudly(discord_client: DiscordClient, test_env: Settings) -> None:
    class _CorruptStore(InMemorySessionStore):
        def consume_and_delete(self, session_id: str):  # type: ignore[no-untyped-def]
            session = super().consume_and_delete(session_id)
            if session is not None:
                # Assignment is not validated; simulates a record outside the choice set.
                session.challenger_choice = "lizard"
            return session

    store = _CorruptStore()
    store.create(session_id="E1", challenger_id="U1", choice="rock")
    router = InteractionRouter(store=store, notifier=discord_client, settings=test_env)

    with pytest.raises(ConfigurationError):
        router.dispatch(_select("paper"))
    assert store.get("E1") is None
