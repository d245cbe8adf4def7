from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, Field


class InteractionType(IntEnum):
    ping = 1
    application_command = 2
    message_component = 3
    application_command_autocomplete = 4
    modal_submit = 5


class InteractionResponseType(IntEnum):
    pong = 1
    channel_message_with_source = 4
    deferred_channel_message_with_source = 5
    deferred_update_message = 6
    update_message = 7


class MessageFlags(IntEnum):
    ephemeral = 1 << 6


class ComponentType(IntEnum):
    action_row = 1
    button = 2
    string_select = 3


class ButtonStyle(IntEnum):
    primary = 1
    secondary = 2
    success = 3
    danger = 4


class CommandType(IntEnum):
    chat_input = 1
    user = 2
    message = 3


class CommandOptionType(IntEnum):
    string = 3
    channel = 7


# --- inbound interaction payloads ---


class User(BaseModel):
    id: str
    username: str | None = None


class Member(BaseModel):
    user: User


class CommandOption(BaseModel):
    name: str
    type: int
    value: str | int | float | bool | None = None


class Attachment(BaseModel):
    id: str | None = None
    url: str
    content_type: str | None = None


class EmbedImage(BaseModel):
    url: str


class Embed(BaseModel):
    url: str | None = None
    image: EmbedImage | None = None


class ResolvedMessage(BaseModel):
    id: str
    attachments: list[Attachment] = Field(default_factory=list)
    embeds: list[Embed] = Field(default_factory=list)


class Resolved(BaseModel):
    messages: dict[str, ResolvedMessage] = Field(default_factory=dict)


class InteractionData(BaseModel):
    # application command fields
    name: str | None = None
    type: int | None = None
    options: list[CommandOption] = Field(default_factory=list)
    target_id: str | None = None
    resolved: Resolved | None = None

    # message component fields
    custom_id: str | None = None
    component_type: int | None = None
    values: list[str] = Field(default_factory=list)

    def option_value(self, name: str) -> str | None:
        for opt in self.options:
            if opt.name == name and opt.value is not None:
                return str(opt.value)
        return None


class MessageRef(BaseModel):
    id: str


class Interaction(BaseModel):
    # Only `type` is required; which other fields matter depends on it.
    type: int
    id: str | None = None
    application_id: str | None = None
    token: str | None = None
    guild_id: str | None = None
    channel_id: str | None = None
    data: InteractionData | None = None
    member: Member | None = None
    user: User | None = None
    message: MessageRef | None = None

    @property
    def actor_id(self) -> str:
        """The invoking user: `member.user` in guilds, `user` in DMs."""

        if self.member is not None:
            return self.member.user.id
        if self.user is not None:
            return self.user.id
        raise ValueError("Interaction has no invoking user")

    def require_data(self) -> InteractionData:
        if self.data is None:
            raise ValueError("Interaction has no data")
        return self.data


# --- outbound message payloads ---


class SelectOption(BaseModel):
    label: str
    value: str
    description: str | None = None


class Button(BaseModel):
    type: int = ComponentType.button
    custom_id: str = Field(..., max_length=100)
    label: str
    style: int = ButtonStyle.primary


class StringSelect(BaseModel):
    type: int = ComponentType.string_select
    custom_id: str = Field(..., max_length=100)
    options: list[SelectOption]
    placeholder: str | None = None


class ActionRow(BaseModel):
    type: int = ComponentType.action_row
    components: list[Button | StringSelect]


class MessagePayload(BaseModel):
    content: str | None = None
    components: list[ActionRow] | None = None
    flags: int | None = None


class InteractionResponse(BaseModel):
    type: int
    data: MessagePayload | None = None


# --- command registration ---


class CommandOptionChoice(BaseModel):
    name: str
    value: str


class CommandOptionSpec(BaseModel):
    type: int
    name: str
    description: str
    required: bool = False
    choices: list[CommandOptionChoice] | None = None


class CommandSpec(BaseModel):
    name: str
    description: str = ""
    type: int = CommandType.chat_input
    options: list[CommandOptionSpec] | None = None
