from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Platform limit for a component custom_id.
MAX_CUSTOM_ID_LENGTH = 100


class CorrelationKind(StrEnum):
    accept = "accept"
    select_choice = "select_choice"


class Correlation(BaseModel):
    """Binds a UI component back to the session it was issued for.

    Serialised into the component's `custom_id` as compact JSON, e.g.
    `{"k":"accept","s":"1234"}`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: CorrelationKind = Field(..., alias="k")
    session_id: str = Field(..., alias="s", min_length=1)

    def encode(self) -> str:
        raw = self.model_dump_json(by_alias=True)
        if len(raw) > MAX_CUSTOM_ID_LENGTH:
            raise ValueError(f"custom_id too long ({len(raw)} > {MAX_CUSTOM_ID_LENGTH})")
        return raw

    @classmethod
    def decode(cls, raw: str | None) -> Correlation | None:
        if not raw:
            return None
        try:
            return cls.model_validate_json(raw)
        except ValidationError:
            return None


def accept_id(session_id: str) -> str:
    return Correlation(kind=CorrelationKind.accept, session_id=session_id).encode()


def select_choice_id(session_id: str) -> str:
    return Correlation(kind=CorrelationKind.select_choice, session_id=session_id).encode()
