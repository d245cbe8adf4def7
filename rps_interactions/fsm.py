from __future__ import annotations

from enum import StrEnum

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from rps_interactions.session_store import Session


class ChallengePhase(StrEnum):
    idle = "idle"
    awaiting_opponent = "awaiting_opponent"
    resolved = "resolved"


class ChallengeFSM(StateMachine):
    """Lifecycle of one challenge as observed by a single request.

    Sessions are not stored with a phase; each handler rebuilds the machine from
    what the store returned and asks whether its event is allowed from there:
    - no session -> idle: only `challenge` is allowed
    - session present -> awaiting_opponent: `accept` (any number of times) or `choose`
    """

    idle = State(ChallengePhase.idle.value, value=ChallengePhase.idle.value, initial=True)
    awaiting_opponent = State(ChallengePhase.awaiting_opponent.value, value=ChallengePhase.awaiting_opponent.value)
    resolved = State(ChallengePhase.resolved.value, value=ChallengePhase.resolved.value, final=True)

    challenge = idle.to(awaiting_opponent)
    accept = awaiting_opponent.to.itself()
    choose = awaiting_opponent.to(resolved)

    @classmethod
    def observe(cls, session: Session | None) -> ChallengeFSM:
        phase = ChallengePhase.awaiting_opponent if session is not None else ChallengePhase.idle
        return cls(start_value=phase.value)

    @property
    def phase(self) -> ChallengePhase:
        return ChallengePhase(str(self.current_state.value))

    def try_send(self, event: str) -> bool:
        """Fire `event`; False if it is not allowed from the current phase."""

        try:
            self.send(event)
        except TransitionNotAllowed:
            return False
        return True
