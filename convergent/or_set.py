"""Observed-Remove Set (OR-Set).

Every ``add`` issues a fresh token ``(node_id, counter)`` into the
item's *observed* ledger. ``remove`` moves the currently observed tokens
into the item's *removed* ledger. An item is present while it has at
least one observed token, so an add concurrent with a remove survives
the merge (add-wins).

Example::

    a = ORSet("node-a")
    a.add("apple")
    a.add("banana")
    a.remove("apple")
    assert a.elements == frozenset({"banana"})

Removed tokens are kept as tombstones until ``gc()`` is run for the
issuing node.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from convergent.schemas import ORSetState, validate_state
from convergent.token import NodeId, Token, decode_tokens, encode_tokens, highest_counter

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Record:
    observed: set[Token] = field(default_factory=set)
    removed: set[Token] = field(default_factory=set)


class ORSet:
    """Observed-Remove Set CRDT.

    Items must be hashable, but only string items can be reloaded:
    ``from_dict`` rejects a payload whose item keys are not strings.

    Args:
        node_id: Identifier for this replica. Must stay the same for as
            long as any state it issued tokens into is kept.
        token_counter: Last counter issued by this node (when reloading).
    """

    __slots__ = ("_node_id", "_token_counter", "_items")

    def __init__(self, node_id: NodeId, token_counter: int = 0):
        self._node_id = node_id
        self._token_counter = token_counter
        self._items: dict[Hashable, _Record] = {}

    @property
    def node_id(self) -> NodeId:
        """This replica's identifier."""
        return self._node_id

    @property
    def token_counter(self) -> int:
        """Counter of the last token this replica issued."""
        return self._token_counter

    @property
    def value(self) -> frozenset:
        """Current items (alias for ``elements``)."""
        return self.elements

    @property
    def elements(self) -> frozenset:
        """Frozenset of present items."""
        return frozenset(self)

    def add(self, item: Hashable) -> Token:
        """Add ``item`` under a newly issued token.

        Returns:
            The token recorded for this add.
        """
        self._token_counter += 1
        token = Token(self._node_id, self._token_counter)
        self._items.setdefault(item, _Record()).observed.add(token)
        return token

    def remove(self, item: Hashable) -> None:
        """Tombstone every observed token of ``item``.

        Tokens for the item that this replica has not seen yet are not
        affected. Removing an unknown item is a no-op.
        """
        record = self._items.get(item)
        if record is None:
            return
        record.removed |= record.observed
        record.observed.clear()

    def has(self, item: Hashable) -> bool:
        """True if ``item`` has at least one observed token."""
        record = self._items.get(item)
        return record is not None and bool(record.observed)

    def merge(self, other: ORSet) -> None:
        """Merge another OR-Set into this one.

        Per item, both ledgers are unioned first and the removed tokens
        are subtracted from the observed ones afterwards.
        """
        for item, theirs in other._items.items():
            ours = self._items.setdefault(item, _Record())
            ours.observed |= theirs.observed
            ours.removed |= theirs.removed
            ours.observed -= ours.removed

    def gc(self, node_to_collect: NodeId, until_counter: int) -> None:
        """Compact tokens issued by ``node_to_collect`` up to ``until_counter``.

        Tombstones from that range are dropped, and of the item's observed
        tokens from that range only the highest-counter one is kept.
        Tokens from every other node, and later tokens from this one, are
        left untouched. Items left with no tokens at all are forgotten.

        The caller must know that every replica has observed everything
        ``node_to_collect`` issued up to ``until_counter`` and that every
        replica runs the same collection. A later merge with a replica
        that still holds the collected tokens brings them back.
        """

        def collectible(token: Token) -> bool:
            return token.node_id == node_to_collect and token.counter <= until_counter

        dropped = 0
        for item in list(self._items):
            record = self._items[item]
            tombstones = {token for token in record.removed if collectible(token)}
            record.removed -= tombstones
            squashed = sorted(token for token in record.observed if collectible(token))[:-1]
            record.observed.difference_update(squashed)
            dropped += len(tombstones) + len(squashed)
            if not record.observed and not record.removed:
                del self._items[item]

        logger.debug(
            "[%s] GC of %s up to %d dropped %d tokens",
            self._node_id, node_to_collect, until_counter, dropped,
        )

    def to_dict(self) -> dict:
        """Serialize to a plain dict."""
        return {
            "node_identity": self._node_id,
            "token_counter": self._token_counter,
            "items": {
                item: {
                    "observed": encode_tokens(record.observed),
                    "removed": encode_tokens(record.removed),
                }
                for item, record in self._items.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Deserialize from a plain dict.

        Raises:
            MalformedStateError: If ``data`` is not an OR-Set payload.
        """
        state = validate_state(ORSetState, "ORSet", data)
        or_set = cls(state.node_identity, state.token_counter)
        for item, ledger in state.items.items():
            or_set._items[item] = _Record(
                observed=decode_tokens(ledger.observed) - decode_tokens(ledger.removed),
                removed=decode_tokens(ledger.removed),
            )

        issued = highest_counter(
            (token for record in or_set._items.values() for token in record.observed | record.removed),
            state.node_identity,
        )
        if issued > or_set._token_counter:
            logger.warning(
                "[%s] token_counter %d is behind issued token %d; advancing",
                state.node_identity, or_set._token_counter, issued,
            )
            or_set._token_counter = issued
        return or_set

    def _live_records(self) -> dict[Hashable, tuple[frozenset, frozenset]]:
        return {
            item: (frozenset(record.observed), frozenset(record.removed))
            for item, record in self._items.items()
            if record.observed or record.removed
        }

    def __contains__(self, item: Any) -> bool:
        return self.has(item)

    def __len__(self) -> int:
        return sum(1 for record in self._items.values() if record.observed)

    def __iter__(self) -> Iterator[Any]:
        return (item for item, record in self._items.items() if record.observed)

    def __repr__(self) -> str:
        return f"ORSet(node_id={self._node_id!r}, elements={self.elements!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ORSet):
            return NotImplemented
        return self._live_records() == other._live_records()
