"""Last-Writer-Wins Register (LWW-Register).

Holds a single value stamped with ``(timestamp, subsecond, tiebreaker)``:
whole seconds, nanoseconds within the second, and a value fixed per
writer. Stamps compare lexicographically, so any two distinct writers
produce a total order and merge keeps the greatest stamp.

Wall clocks of different replicas are assumed to be roughly
synchronized. A write made on a replica whose clock lags behind another
writer's loses to that writer's earlier write.

Example::

    r = LWWRegister(tiebreaker=1)
    r.set("hello")
    assert r.get() == "hello"
"""

from __future__ import annotations

import time
from typing import Any, Callable, Self

from convergent.schemas import LWWRegisterState, validate_state

NANOS_PER_SECOND = 1_000_000_000

Stamp = tuple[int, int, Any]


class LWWRegister:
    """Last-Writer-Wins register CRDT.

    Args:
        tiebreaker: Value unique to this writer, used to order writes
            stamped with the same instant. All registers that merge with
            each other must use mutually comparable tiebreakers (all
            ``int`` or all ``str``).
        wall_time: Callable returning the current time in integer
            nanoseconds since the epoch (default ``time.time_ns``).
    """

    __slots__ = ("_tiebreaker", "_value", "_stamp", "_wall_time")

    def __init__(
        self,
        tiebreaker: int | str,
        wall_time: Callable[[], int] = time.time_ns,
    ):
        self._tiebreaker = tiebreaker
        self._value: Any = None
        self._stamp: Stamp | None = None
        self._wall_time = wall_time

    @property
    def tiebreaker(self) -> int | str:
        """This writer's tiebreaker."""
        return self._tiebreaker

    @property
    def value(self) -> Any:
        """Current value of the register."""
        return self._value

    @property
    def stamp(self) -> Stamp | None:
        """``(timestamp, subsecond, tiebreaker)`` of the current value."""
        return self._stamp

    def get(self) -> Any:
        """Return the current value (alias for ``value``)."""
        return self._value

    def set(self, value: Any) -> None:
        """Replace the value, stamping it with the current time.

        If the wall clock has not moved past the current stamp, the new
        stamp is the current instant plus one nanosecond, so the local
        write always becomes the greatest stamp this replica has seen.
        """
        seconds, subsecond = divmod(self._wall_time(), NANOS_PER_SECOND)
        if self._stamp is not None and (seconds, subsecond) <= self._stamp[:2]:
            current_ns = self._stamp[0] * NANOS_PER_SECOND + self._stamp[1]
            seconds, subsecond = divmod(current_ns + 1, NANOS_PER_SECOND)
        self._value = value
        self._stamp = (seconds, subsecond, self._tiebreaker)

    def merge(self, other: LWWRegister) -> None:
        """Take the other register's value if its stamp is strictly greater.

        Stamps compare as whole tuples (lexicographically), never field
        by field. A never-written register loses to any written one.
        """
        if other._stamp is None:
            return
        if self._stamp is None or other._stamp > self._stamp:
            self._value = other._value
            self._stamp = other._stamp

    def to_dict(self) -> dict:
        """Serialize to a plain dict."""
        timestamp, subsecond, stamp_tiebreaker = self._stamp or (None, None, None)
        return {
            "value": self._value,
            "timestamp": timestamp,
            "timestamp_subsecond": subsecond,
            "timestamp_tiebreaker": stamp_tiebreaker,
            "tiebreaker": self._tiebreaker,
        }

    @classmethod
    def from_dict(cls, data: dict, wall_time: Callable[[], int] = time.time_ns) -> Self:
        """Deserialize from a plain dict.

        Args:
            data: Dict produced by ``to_dict()``.
            wall_time: Time source for the rebuilt register.

        Raises:
            MalformedStateError: If ``data`` is not a register payload.
        """
        state = validate_state(LWWRegisterState, "LWWRegister", data)
        register = cls(state.tiebreaker, wall_time=wall_time)
        if state.timestamp is not None:
            register._value = state.value
            register._stamp = (
                state.timestamp,
                state.timestamp_subsecond,
                state.timestamp_tiebreaker,
            )
        return register

    def __repr__(self) -> str:
        return f"LWWRegister(tiebreaker={self._tiebreaker!r}, value={self._value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LWWRegister):
            return NotImplemented
        return self._value == other._value and self._stamp == other._stamp
