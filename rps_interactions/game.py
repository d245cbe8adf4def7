from __future__ import annotations

import random
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from itertools import combinations

from rps_interactions.api.models import CommandOptionChoice, SelectOption
from rps_interactions.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class Choice:
    description: str
    # loser -> verb used in the result message
    beats: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Player:
    id: str
    choice: str


class Outcome(StrEnum):
    draw = "draw"
    a_wins = "a_wins"
    b_wins = "b_wins"


CHOICES: dict[str, Choice] = {
    "rock": Choice(
        description="sedimentary, igneous, or perhaps even metamorphic",
        beats={"scissors": "crushes"},
    ),
    "paper": Choice(
        description="versatile and iconic",
        beats={"rock": "covers"},
    ),
    "scissors": Choice(
        description="careful ! sharp ! edges !!",
        beats={"paper": "cuts"},
    ),
}

EMOJIS = ["😭", "😄", "😌", "🤓", "😎", "😤", "🤖", "😶‍🌫️", "🌏", "📸", "💿", "👋", "🌊", "✨"]


def validate_beats_table(table: Mapping[str, Choice]) -> None:
    """Check the beats relation is total and antisymmetric.

    Every pair of distinct choices must have exactly one winner, and no choice may
    beat itself or a name outside the table.
    """

    for name, choice in table.items():
        if name in choice.beats:
            raise ConfigurationError(f"{name!r} cannot beat itself")
        unknown = set(choice.beats) - set(table)
        if unknown:
            raise ConfigurationError(f"{name!r} beats unknown choices: {sorted(unknown)}")

    for a, b in combinations(table, 2):
        a_beats_b = b in table[a].beats
        b_beats_a = a in table[b].beats
        if a_beats_b == b_beats_a:
            raise ConfigurationError(f"exactly one of {a!r}/{b!r} must win, got {'both' if a_beats_b else 'neither'}")


validate_beats_table(CHOICES)


def require_choice(value: str, *, table: Mapping[str, Choice] = CHOICES) -> str:
    if value not in table:
        raise ConfigurationError(f"Unknown choice: {value!r}")
    return value


def is_valid_choice(value: str, *, table: Mapping[str, Choice] = CHOICES) -> bool:
    return value in table


def outcome(choice_a: str, choice_b: str, *, table: Mapping[str, Choice] = CHOICES) -> Outcome:
    require_choice(choice_a, table=table)
    require_choice(choice_b, table=table)

    if choice_a == choice_b:
        return Outcome.draw
    if choice_b in table[choice_a].beats:
        return Outcome.a_wins
    return Outcome.b_wins


def resolve(player_a: Player, player_b: Player, *, table: Mapping[str, Choice] = CHOICES) -> str:
    """Describe the result of a round in chat markup.

    Raises ConfigurationError if either choice is outside the table.
    """

    result = outcome(player_a.choice, player_b.choice, table=table)
    if result == Outcome.draw:
        return f"<@{player_a.id}> and <@{player_b.id}> draw with **{player_a.choice}**"

    win, lose = (player_a, player_b) if result == Outcome.a_wins else (player_b, player_a)
    verb = table[win.choice].beats[lose.choice]
    return f"<@{win.id}>'s **{win.choice}** {verb} <@{lose.id}>'s **{lose.choice}**"


def shuffled_options(*, rng: random.Random, table: Mapping[str, Choice] = CHOICES) -> list[SelectOption]:
    options = [
        SelectOption(label=name.capitalize(), value=name.lower(), description=choice.description)
        for name, choice in table.items()
    ]
    rng.shuffle(options)
    return options


def command_choices(*, table: Mapping[str, Choice] = CHOICES) -> list[CommandOptionChoice]:
    return [CommandOptionChoice(name=name.capitalize(), value=name.lower()) for name in table]


def random_emoji(*, rng: random.Random) -> str:
    return rng.choice(EMOJIS)
