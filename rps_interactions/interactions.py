from __future__ import annotations

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial

from rps_interactions.api.models import (
    ActionRow,
    Button,
    ButtonStyle,
    Interaction,
    InteractionResponse,
    InteractionResponseType,
    InteractionType,
    MessageFlags,
    MessagePayload,
    StringSelect,
)
from rps_interactions.commands import (
    CHALLENGE_COMMAND_NAME,
    CHALLENGE_OPTION,
    SERVER_ICON_COMMAND_NAME,
    TEST_COMMAND_NAME,
    UNSUBSCRIBE_COMMAND_NAME,
    UNSUBSCRIBE_OPTION,
)
from rps_interactions.config import Settings
from rps_interactions.correlation import Correlation, CorrelationKind, accept_id, select_choice_id
from rps_interactions.discord_client import DiscordClient, Followup
from rps_interactions.errors import DuplicateSessionError, UnknownSession
from rps_interactions.fsm import ChallengeFSM
from rps_interactions.game import Player, is_valid_choice, random_emoji, resolve, shuffled_options
from rps_interactions.session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Dispatch:
    """Result of routing one interaction.

    - `response`: the synchronous reply envelope.
    - `followups`: outbound calls to run after the reply has been sent.
    """

    response: InteractionResponse
    followups: list[Followup] = field(default_factory=list)


def _pong() -> InteractionResponse:
    return InteractionResponse(type=InteractionResponseType.pong)


def _ack() -> InteractionResponse:
    # Acknowledges a component interaction without touching its message.
    return InteractionResponse(type=InteractionResponseType.deferred_update_message)


def _message(content: str, *, components: list[ActionRow] | None = None, ephemeral: bool = False) -> InteractionResponse:
    return InteractionResponse(
        type=InteractionResponseType.channel_message_with_source,
        data=MessagePayload(
            content=content,
            components=components,
            flags=MessageFlags.ephemeral if ephemeral else None,
        ),
    )


class InteractionRouter:
    """Routes verified interactions to handlers.

    `dispatch` never awaits: every store read and write for one interaction happens
    before control returns to the event loop, so two deliveries of the same
    selection cannot both find the session. Outbound calls are returned as
    follow-ups for the caller to run once the reply is on its way.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        notifier: DiscordClient,
        settings: Settings,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._settings = settings
        self._rng = rng or random.SystemRandom()
        self._commands: dict[str, Callable[[Interaction], Dispatch]] = {
            TEST_COMMAND_NAME: self._test_command,
            CHALLENGE_COMMAND_NAME: self._challenge_command,
            UNSUBSCRIBE_COMMAND_NAME: self._unsubscribe_command,
            SERVER_ICON_COMMAND_NAME: self._server_icon_command,
        }

    def dispatch(self, interaction: Interaction) -> Dispatch:
        if interaction.type == InteractionType.ping:
            return Dispatch(response=_pong())
        if interaction.type == InteractionType.application_command:
            return self._handle_command(interaction)
        if interaction.type == InteractionType.message_component:
            return self._handle_component(interaction)
        raise ValueError(f"Unsupported interaction type: {interaction.type}")

    # --- application commands ---

    def _handle_command(self, interaction: Interaction) -> Dispatch:
        name = interaction.require_data().name
        handler = self._commands.get(name or "")
        if handler is None:
            raise ValueError(f"Unknown command: {name!r}")
        return handler(interaction)

    def _test_command(self, interaction: Interaction) -> Dispatch:
        return Dispatch(response=_message("hello world " + random_emoji(rng=self._rng)))

    def _challenge_command(self, interaction: Interaction) -> Dispatch:
        choice = interaction.require_data().option_value(CHALLENGE_OPTION)
        if choice is None or not is_valid_choice(choice):
            raise ValueError(f"Invalid object choice: {choice!r}")
        if not interaction.id:
            raise ValueError("challenge interaction has no id")

        session_id = interaction.id
        user_id = interaction.actor_id

        fsm = ChallengeFSM.observe(self._store.get(session_id))
        if not fsm.try_send("challenge"):
            logger.warning("challenge %s delivered twice", session_id)
            raise DuplicateSessionError(session_id)
        self._store.create(session_id=session_id, challenger_id=user_id, choice=choice)

        accept = Button(custom_id=accept_id(session_id), label="Accept", style=ButtonStyle.primary)
        return Dispatch(
            response=_message(
                f"Rock paper scissors challenge from <@{user_id}>",
                components=[ActionRow(components=[accept])],
            )
        )

    def _unsubscribe_command(self, interaction: Interaction) -> Dispatch:
        channel_id = interaction.require_data().option_value(UNSUBSCRIBE_OPTION)
        if not channel_id:
            raise ValueError("unsubscribe requires a channel")
        user_id = interaction.actor_id
        logger.info("user %s unsubscribed from channel %s", user_id, channel_id)
        return Dispatch(response=_message(f"<@{user_id}> unsubscribed from <#{channel_id}>", ephemeral=True))

    def _server_icon_command(self, interaction: Interaction) -> Dispatch:
        data = interaction.require_data()
        messages = data.resolved.messages if data.resolved is not None else {}
        message = messages.get(data.target_id or "")
        if message is None:
            raise ValueError("Target message not found in interaction")

        image_url = next((a.url for a in message.attachments), None)
        if image_url is None:
            for embed in message.embeds:
                image_url = embed.url or (embed.image.url if embed.image else None)
                if image_url:
                    break
        if not image_url:
            return Dispatch(response=_message("That message has no image to use as the server icon.", ephemeral=True))

        guild_id = interaction.guild_id or self._settings.guild_id
        if not guild_id:
            raise ValueError("Server icon can only be set from inside a server")

        return Dispatch(
            response=_message(f"Set the new server icon to {image_url}"),
            followups=[
                Followup(
                    description=f"set icon of guild {guild_id}",
                    action=partial(self._set_guild_icon, guild_id=guild_id, image_url=image_url),
                )
            ],
        )

    async def _set_guild_icon(self, *, guild_id: str, image_url: str) -> None:
        icon = await self._notifier.fetch_image_data_uri(image_url)
        await self._notifier.modify_guild_icon(guild_id=guild_id, icon=icon)

    # --- message components ---

    def _handle_component(self, interaction: Interaction) -> Dispatch:
        data = interaction.require_data()
        correlation = Correlation.decode(data.custom_id)
        if correlation is None:
            logger.info("ignoring component with unrecognised custom_id %r", data.custom_id)
            return Dispatch(response=_ack())

        try:
            if correlation.kind == CorrelationKind.accept:
                return self._accept(interaction, session_id=correlation.session_id)
            return self._select_choice(interaction, session_id=correlation.session_id)
        except UnknownSession as e:
            # Expected for duplicate or replayed deliveries.
            logger.info("%s (%s); nothing to do", e, correlation.kind.value)
            return Dispatch(response=_ack())

    def _accept(self, interaction: Interaction, *, session_id: str) -> Dispatch:
        fsm = ChallengeFSM.observe(self._store.get(session_id))
        if not fsm.try_send("accept"):
            raise UnknownSession(session_id)

        menu = StringSelect(
            custom_id=select_choice_id(session_id),
            options=shuffled_options(rng=self._rng),
        )
        followups: list[Followup] = []
        if interaction.token and interaction.message is not None:
            followups.append(
                Followup(
                    description=f"delete challenge message for session {session_id}",
                    action=partial(
                        self._notifier.delete_message,
                        token=interaction.token,
                        message_id=interaction.message.id,
                    ),
                )
            )

        return Dispatch(
            response=_message("What is your object of choice?", components=[ActionRow(components=[menu])], ephemeral=True),
            followups=followups,
        )

    def _select_choice(self, interaction: Interaction, *, session_id: str) -> Dispatch:
        if self._store.get(session_id) is None:
            raise UnknownSession(session_id)

        values = interaction.require_data().values
        choice = values[0] if values else None
        # Validate before consuming so a malformed pick leaves the session intact.
        if choice is None or not is_valid_choice(choice):
            raise ValueError(f"Invalid object choice: {choice!r}")
        responder_id = interaction.actor_id

        session = self._store.consume_and_delete(session_id)
        fsm = ChallengeFSM.observe(session)
        if session is None or not fsm.try_send("choose"):
            raise UnknownSession(session_id)

        result = resolve(
            Player(id=session.challenger_id, choice=session.challenger_choice),
            Player(id=responder_id, choice=choice),
        )
        logger.info("session %s resolved: %s", session_id, result)

        followups: list[Followup] = []
        if interaction.token and interaction.message is not None:
            followups.append(
                Followup(
                    description=f"close selection menu for session {session_id}",
                    action=partial(
                        self._notifier.edit_message,
                        token=interaction.token,
                        message_id=interaction.message.id,
                        payload=MessagePayload(content="Nice choice " + random_emoji(rng=self._rng), components=[]),
                    ),
                )
            )

        return Dispatch(response=_message(result), followups=followups)
