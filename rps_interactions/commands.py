from __future__ import annotations

import logging
from collections.abc import Sequence

from rps_interactions.api.models import CommandOptionSpec, CommandOptionType, CommandSpec, CommandType
from rps_interactions.discord_client import DiscordClient
from rps_interactions.errors import UpstreamCallFailure
from rps_interactions.game import command_choices

logger = logging.getLogger(__name__)

TEST_COMMAND_NAME = "test"
CHALLENGE_COMMAND_NAME = "challenge"
UNSUBSCRIBE_COMMAND_NAME = "unsubscribe"
SERVER_ICON_COMMAND_NAME = "Set as server icon"

CHALLENGE_OPTION = "object"
UNSUBSCRIBE_OPTION = "channel"

TEST_COMMAND = CommandSpec(
    name=TEST_COMMAND_NAME,
    description="Basic guild command",
    type=CommandType.chat_input,
)

CHALLENGE_COMMAND = CommandSpec(
    name=CHALLENGE_COMMAND_NAME,
    description="Challenge to a match of rock paper scissors",
    type=CommandType.chat_input,
    options=[
        CommandOptionSpec(
            type=CommandOptionType.string,
            name=CHALLENGE_OPTION,
            description="Pick your object",
            required=True,
            choices=command_choices(),
        )
    ],
)

UNSUBSCRIBE_COMMAND = CommandSpec(
    name=UNSUBSCRIBE_COMMAND_NAME,
    description="Unsubscribe from a channel",
    type=CommandType.chat_input,
    options=[
        CommandOptionSpec(
            type=CommandOptionType.channel,
            name=UNSUBSCRIBE_OPTION,
            description="Pick your channel",
            required=True,
        )
    ],
)

# Message context-menu commands carry no description.
SERVER_ICON_COMMAND = CommandSpec(name=SERVER_ICON_COMMAND_NAME, description="", type=CommandType.message)

ALL_COMMANDS: list[CommandSpec] = [TEST_COMMAND, CHALLENGE_COMMAND, UNSUBSCRIBE_COMMAND, SERVER_ICON_COMMAND]


async def ensure_guild_commands(
    *,
    client: DiscordClient,
    app_id: str,
    guild_id: str,
    commands: Sequence[CommandSpec] = ALL_COMMANDS,
) -> list[str]:
    """Install any command whose name is not registered yet.

    Matching is by name only: a changed schema for an installed command is not pushed.
    Returns the names installed. Upstream failures are logged, never raised.
    """

    if not app_id or not guild_id:
        logger.info("APP_ID/GUILD_ID not set; skipping command registration")
        return []

    try:
        installed = await client.get_guild_commands(app_id=app_id, guild_id=guild_id)
    except UpstreamCallFailure as e:
        logger.error("could not list guild commands: %s", e)
        return []

    installed_names = {c.get("name") for c in installed}
    added: list[str] = []
    for command in commands:
        if command.name in installed_names:
            logger.info('"%s" command already installed', command.name)
            continue
        logger.info('installing "%s"', command.name)
        try:
            await client.install_guild_command(app_id=app_id, guild_id=guild_id, command=command)
        except UpstreamCallFailure as e:
            logger.error('could not install "%s": %s', command.name, e)
            continue
        added.append(command.name)
    return added
