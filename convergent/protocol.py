"""Protocol shared by every convergent type.

Each type is a state-based CRDT: replicas exchange their full state and
``merge`` it in. For the result to converge, merge must be:

- **Commutative**: ``merge(a, b) == merge(b, a)``
- **Associative**: ``merge(a, merge(b, c)) == merge(merge(a, b), c)``
- **Idempotent**: ``merge(a, a) == a``
"""

from __future__ import annotations

from typing import Any, Protocol, Self, runtime_checkable


@runtime_checkable
class CRDT(Protocol):
    """Structural interface of all convergent types.

    - ``value``: Read the current resolved value.
    - ``merge(other)``: Join another replica's state into this one.
    - ``to_dict()`` / ``from_dict()``: The canonical hash form used for
      persistence and transport.
    """

    @property
    def value(self) -> Any:
        """The current resolved value."""
        ...

    def merge(self, other: Self) -> None:
        """Merge another replica's state into this one (in-place).

        Args:
            other: Another instance of the same type.
        """
        ...

    def to_dict(self) -> dict:
        """Serialize to the canonical plain-dict form."""
        ...

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Rebuild an instance from the output of ``to_dict()``.

        Raises:
            MalformedStateError: If ``data`` does not have the expected shape.
        """
        ...
