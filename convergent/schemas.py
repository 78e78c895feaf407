"""Validated shapes of every serialized CRDT state.

Each ``from_dict`` passes its payload through one of these models before
touching replica state, so a missing field or a negative counter is
reported as a ``MalformedStateError`` instead of surfacing later as a
corrupt merge.
"""

from __future__ import annotations

from typing import Annotated, Any, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from convergent.exceptions import MalformedStateError
from convergent.token import Token, parse_edge_key

MAX_NODE_ID_LENGTH = 256

NodeIdentity = Annotated[str, Field(min_length=1, max_length=MAX_NODE_ID_LENGTH)]

TokenPair = tuple[str, NonNegativeInt]
Tiebreaker = int | str

StateT = TypeVar("StateT", bound=BaseModel)


class _State(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


# =============================================================================
# Counters and clocks
# =============================================================================


class GCounterState(_State):
    node_identity: NodeIdentity
    counts: dict[str, NonNegativeInt]


class PNCounterState(_State):
    node_identity: NodeIdentity
    base_value: int
    cached_value: int | None = None
    positive: dict[str, NonNegativeInt]
    negative: dict[str, NonNegativeInt]


class VectorClockState(_State):
    clocks: dict[str, NonNegativeInt]


class LWWRegisterState(_State):
    """Register payload. All five keys must be present; any may be null
    except ``tiebreaker``. The stamp fields are null only together, and a
    register without a stamp holds no value."""

    value: Any
    timestamp: NonNegativeInt | None
    timestamp_subsecond: NonNegativeInt | None
    timestamp_tiebreaker: Tiebreaker | None
    tiebreaker: Tiebreaker

    @field_validator("timestamp_tiebreaker")
    @classmethod
    def validate_stamp_complete(cls, v: Tiebreaker | None, info: ValidationInfo) -> Tiebreaker | None:
        stamp = (info.data.get("timestamp"), info.data.get("timestamp_subsecond"), v)
        if any(part is None for part in stamp) and any(part is not None for part in stamp):
            raise ValueError("timestamp fields must be all set or all null")
        if v is None and info.data.get("value") is not None:
            raise ValueError("value must be null when the register has no timestamp")
        return v


# =============================================================================
# Token ledgers
# =============================================================================


class LedgerState(_State):
    observed: list[TokenPair]
    removed: list[TokenPair]


class ORSetState(_State):
    node_identity: NodeIdentity
    token_counter: NonNegativeInt
    items: dict[str, LedgerState]


class VertexState(_State):
    incoming: list[TokenPair]
    outgoing: list[TokenPair]
    removed: bool


class ORGraphState(_State):
    node_identity: NodeIdentity
    token_counter: NonNegativeInt
    vertices: dict[str, VertexState]
    edges: dict[str, LedgerState]

    @field_validator("vertices")
    @classmethod
    def validate_vertex_keys(cls, v: dict[str, VertexState]) -> dict[str, VertexState]:
        for key in v:
            Token.from_key(key)
        return v

    @field_validator("edges")
    @classmethod
    def validate_edge_keys(cls, v: dict[str, LedgerState], info: ValidationInfo) -> dict[str, LedgerState]:
        vertices = info.data.get("vertices", {})
        for key in v:
            source, target = parse_edge_key(key)
            for endpoint in (source, target):
                if endpoint.to_key() not in vertices:
                    raise ValueError(f"edge {key!r} references unknown vertex {endpoint.to_key()!r}")
        return v


def validate_state(model: type[StateT], type_name: str, data: Any) -> StateT:
    """Validate ``data`` against ``model``.

    Raises:
        MalformedStateError: If validation fails.
    """
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedStateError(type_name, str(exc)) from exc
