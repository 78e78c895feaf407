"""Vector clock for causal comparison between replicas.

Each node owns one entry and is the only one expected to increment it.
Entries never decrease; merge takes the element-wise maximum.

Usage::

    a = VectorClock("node-a")
    a.increment_clock()
    a.increment_clock()
    b = VectorClock("node-b")
    b.increment_clock()

    a.is_concurrent(b)        # True
    a.merge(b)
    a.value                   # {"node-a": 2, "node-b": 1}
    a.dominates(b)            # True
"""

from __future__ import annotations

from enum import Enum
from typing import Self

from convergent.exceptions import CRDTError
from convergent.schemas import VectorClockState, validate_state
from convergent.token import NodeId


class ClockOrdering(Enum):
    """Causal relationship of one clock to another."""

    EQUAL = "equal"
    BEFORE = "before"
    AFTER = "after"
    CONCURRENT = "concurrent"


class VectorClock:
    """Per-node monotonic counters.

    The serialized form carries no owner, so a clock rebuilt with
    ``from_dict()`` and no ``node_id`` can only be incremented for an
    explicitly named node.

    Args:
        node_id: The owning replica (default for ``increment_clock``/``get``).
        clocks: Initial entries.
    """

    __slots__ = ("_node_id", "_clocks")

    def __init__(self, node_id: NodeId | None = None, clocks: dict[NodeId, int] | None = None):
        self._node_id = node_id
        self._clocks: dict[NodeId, int] = dict(clocks or {})

    @property
    def node_id(self) -> NodeId | None:
        """The owning replica, if any."""
        return self._node_id

    @property
    def value(self) -> dict[NodeId, int]:
        """Snapshot of all entries."""
        return dict(self._clocks)

    def _resolve(self, node: NodeId | None) -> NodeId:
        node = self._node_id if node is None else node
        if node is None:
            raise CRDTError("No node given and this clock has no owner")
        return node

    def increment_clock(self, node: NodeId | None = None) -> int:
        """Advance a node's entry by one and return the new value.

        Args:
            node: The node to advance (default: the owner).

        Raises:
            CRDTError: If no node is given and the clock has no owner.
        """
        node = self._resolve(node)
        self._clocks[node] = self._clocks.get(node, 0) + 1
        return self._clocks[node]

    def get(self, node: NodeId | None = None) -> int | None:
        """A node's entry, or ``None`` if it has never been incremented."""
        return self._clocks.get(self._resolve(node))

    def merge(self, other: VectorClock) -> None:
        """Pointwise max over the union of both clocks' nodes."""
        for node, counter in other._clocks.items():
            self._clocks[node] = max(self._clocks.get(node, 0), counter)

    def dominates(self, other: VectorClock) -> bool:
        """True if every entry here is >= the matching entry in ``other``.

        Missing entries count as 0. Equal clocks dominate each other.
        """
        return all(
            self._clocks.get(node, 0) >= counter
            for node, counter in other._clocks.items()
        )

    def happened_before(self, other: VectorClock) -> bool:
        """True if ``other`` dominates this clock and they differ."""
        return other.dominates(self) and not self.dominates(other)

    def is_concurrent(self, other: VectorClock) -> bool:
        """True if neither clock dominates the other."""
        return not self.dominates(other) and not other.dominates(self)

    def compare(self, other: VectorClock) -> ClockOrdering:
        """Classify the causal relationship of this clock to ``other``."""
        ahead = self.dominates(other)
        behind = other.dominates(self)
        if ahead and behind:
            return ClockOrdering.EQUAL
        if ahead:
            return ClockOrdering.AFTER
        if behind:
            return ClockOrdering.BEFORE
        return ClockOrdering.CONCURRENT

    def to_dict(self) -> dict:
        """Serialize to a plain dict."""
        return {"clocks": dict(self._clocks)}

    @classmethod
    def from_dict(cls, data: dict, node_id: NodeId | None = None) -> Self:
        """Deserialize from a plain dict.

        Args:
            data: Dict produced by ``to_dict()``.
            node_id: Owner to assign to the rebuilt clock.

        Raises:
            MalformedStateError: If ``data`` is not a vector clock payload.
        """
        state = validate_state(VectorClockState, "VectorClock", data)
        return cls(node_id, state.clocks)

    def __repr__(self) -> str:
        return f"VectorClock(node_id={self._node_id!r}, clocks={self._clocks!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorClock):
            return NotImplemented
        return self.compare(other) is ClockOrdering.EQUAL
