"""Grow-only counter (G-Counter).

Each node owns one monotonically increasing entry; the value is the sum
of all entries and merge takes the per-node maximum. ``PNCounter`` is
built from two of these.

Example::

    a = GCounter("node-a")
    b = GCounter("node-b")

    a.increment(5)
    b.increment(3)

    a.merge(b)
    assert a.value == 8
"""

from __future__ import annotations

from typing import Self

from convergent.exceptions import InvalidAmountError
from convergent.schemas import GCounterState, validate_state
from convergent.token import NodeId


class GCounter:
    """Grow-only counter CRDT.

    Args:
        node_id: Identifier for this replica. Used as the default source
            of increments.
    """

    __slots__ = ("_node_id", "_counts")

    def __init__(self, node_id: NodeId):
        self._node_id = node_id
        self._counts: dict[NodeId, int] = {}

    @property
    def node_id(self) -> NodeId:
        """This replica's identifier."""
        return self._node_id

    @property
    def value(self) -> int:
        """Total count across all nodes."""
        return sum(self._counts.values())

    @property
    def counts(self) -> dict[NodeId, int]:
        """Copy of the per-node entries."""
        return dict(self._counts)

    def increment(self, amount: int = 1, source: NodeId | None = None) -> None:
        """Add ``amount`` to the entry of ``source`` (default: this node).

        Raises:
            InvalidAmountError: If amount is negative.
        """
        if amount < 0:
            raise InvalidAmountError(f"Increment must be non-negative, got {amount}")
        source = self._node_id if source is None else source
        self._counts[source] = self._counts.get(source, 0) + amount

    def node_value(self, node_id: NodeId) -> int:
        """A single node's entry, or 0 if unknown."""
        return self._counts.get(node_id, 0)

    def merge(self, other: GCounter) -> None:
        """Merge another G-Counter into this one (element-wise max)."""
        for node_id, count in other._counts.items():
            self._counts[node_id] = max(self._counts.get(node_id, 0), count)

    def collect(self, node_id: NodeId) -> int:
        """Drop a node's entry and return the amount it held."""
        return self._counts.pop(node_id, 0)

    def to_dict(self) -> dict:
        """Serialize to a plain dict."""
        return {
            "node_identity": self._node_id,
            "counts": dict(self._counts),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Deserialize from a plain dict.

        Raises:
            MalformedStateError: If ``data`` is not a G-Counter payload.
        """
        state = validate_state(GCounterState, "GCounter", data)
        counter = cls(state.node_identity)
        counter._counts = dict(state.counts)
        return counter

    def __repr__(self) -> str:
        return f"GCounter(node_id={self._node_id!r}, value={self.value})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GCounter):
            return NotImplemented
        return self._counts == other._counts
