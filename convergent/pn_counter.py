"""Positive-Negative counter (PN-Counter).

Two G-Counters, one for increases and one for decreases, plus a base
value that absorbs the entries of garbage-collected nodes::

    value = base + sum(positive) - sum(negative)

Example::

    c = PNCounter("node-a")
    c.increase(5)
    c.decrease(2)
    assert c.value == 3
"""

from __future__ import annotations

import logging
from typing import Self

from convergent.g_counter import GCounter
from convergent.schemas import PNCounterState, validate_state
from convergent.token import NodeId

logger = logging.getLogger(__name__)


class PNCounter:
    """Positive-Negative counter CRDT.

    Args:
        node_id: Identifier for this replica; the default source of changes.
        base_value: Starting value, also the fold-in target of ``gc()``.
    """

    __slots__ = ("_node_id", "_base_value", "_cached_value", "_p", "_n")

    def __init__(self, node_id: NodeId, base_value: int = 0):
        self._node_id = node_id
        self._base_value = base_value
        self._cached_value = base_value
        self._p = GCounter(node_id)
        self._n = GCounter(node_id)

    @property
    def node_id(self) -> NodeId:
        """This replica's identifier."""
        return self._node_id

    @property
    def value(self) -> int:
        """Net count: base + increases - decreases."""
        return self._cached_value

    @property
    def base_value(self) -> int:
        """Amount folded in from collected nodes (plus the starting value)."""
        return self._base_value

    @property
    def increments(self) -> int:
        """Total increases across all live nodes."""
        return self._p.value

    @property
    def decrements(self) -> int:
        """Total decreases across all live nodes."""
        return self._n.value

    def increase(self, amount: int, source: NodeId | None = None) -> Self:
        """Add ``amount`` to the positive tally of ``source``.

        Args:
            amount: Non-negative amount.
            source: Node to credit (default: this node).

        Raises:
            InvalidAmountError: If amount is negative.
        """
        self._p.increment(amount, source)
        self._cached_value += amount
        return self

    def decrease(self, amount: int, source: NodeId | None = None) -> Self:
        """Add ``amount`` to the negative tally of ``source``.

        Args:
            amount: Non-negative amount.
            source: Node to debit (default: this node).

        Raises:
            InvalidAmountError: If amount is negative.
        """
        self._n.increment(amount, source)
        self._cached_value -= amount
        return self

    def merge(self, other: PNCounter) -> None:
        """Merge another PN-Counter into this one.

        The positive and negative G-Counters merge independently by
        per-node max. ``base_value`` is replica-local and is not merged.
        """
        self._p.merge(other._p)
        self._n.merge(other._n)
        self._recompute()

    def gc(self, node_id: NodeId) -> None:
        """Fold a node's entries into ``base_value`` and forget the node.

        Only safe once no future merge can carry state from ``node_id``
        again (for example, the node has permanently left the cluster).
        Otherwise its amounts are counted twice.
        """
        positive = self._p.collect(node_id)
        negative = self._n.collect(node_id)
        self._base_value += positive - negative
        self._recompute()
        logger.debug(
            "[%s] Collected node %s into base (+%d/-%d)",
            self._node_id, node_id, positive, negative,
        )

    def _recompute(self) -> None:
        self._cached_value = self._base_value + self._p.value - self._n.value

    def to_dict(self) -> dict:
        """Serialize to a plain dict."""
        return {
            "node_identity": self._node_id,
            "base_value": self._base_value,
            "cached_value": self._cached_value,
            "positive": self._p.counts,
            "negative": self._n.counts,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Deserialize from a plain dict.

        The cached total is recomputed from the tallies. A disagreeing
        ``cached_value`` in the payload is logged and ignored.

        Raises:
            MalformedStateError: If ``data`` is not a PN-Counter payload.
        """
        state = validate_state(PNCounterState, "PNCounter", data)
        counter = cls(state.node_identity, state.base_value)
        for source, amount in state.positive.items():
            counter._p.increment(amount, source)
        for source, amount in state.negative.items():
            counter._n.increment(amount, source)
        counter._recompute()
        if state.cached_value is not None and state.cached_value != counter._cached_value:
            logger.warning(
                "[%s] Stored cached_value %d disagrees with tallies; using %d",
                state.node_identity, state.cached_value, counter._cached_value,
            )
        return counter

    def __iadd__(self, amount: int) -> Self:
        if amount < 0:
            return self.decrease(-amount)
        return self.increase(amount)

    def __isub__(self, amount: int) -> Self:
        if amount < 0:
            return self.increase(-amount)
        return self.decrease(amount)

    def __int__(self) -> int:
        return int(self._cached_value)

    def __repr__(self) -> str:
        return f"PNCounter(node_id={self._node_id!r}, value={self.value})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PNCounter):
            return NotImplemented
        return (
            self._base_value == other._base_value
            and self._p == other._p
            and self._n == other._n
        )
