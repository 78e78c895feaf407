"""Observed-Remove Graph (OR-Graph).

A directed graph whose vertices are tokens issued by the creating
replica and whose edges carry observed/removed token ledgers, the same
add-wins scheme as ``ORSet``. Vertex removal is sticky: once any replica
removes a vertex, it stays removed everywhere, and so do the edges
touching it.

Vertices are opaque tokens; mapping them to application data is left
to the caller.

Example::

    g = ORGraph("node-a")
    v1 = g.create_vertex()
    v2 = g.create_vertex()
    g.add_edge(v1, v2)
    assert g.has_edge(v1, v2)

    g.remove_vertex(v1)
    assert not g.has_edge(v1, v2)
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Self

from convergent.exceptions import UnknownVertexError
from convergent.schemas import ORGraphState, validate_state
from convergent.token import (
    NodeId,
    Token,
    decode_tokens,
    edge_key,
    encode_tokens,
    highest_counter,
    parse_edge_key,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

Edge = tuple[Token, Token]


@dataclass(slots=True)
class _Vertex:
    # adjacency index: neighbour -> number of live edge tokens
    incoming: Counter[Token] = field(default_factory=Counter)
    outgoing: Counter[Token] = field(default_factory=Counter)
    removed: bool = False


@dataclass(slots=True)
class _EdgeRecord:
    observed: set[Token] = field(default_factory=set)
    removed: set[Token] = field(default_factory=set)


class ORGraph:
    """Observed-Remove directed graph CRDT.

    Each ``add_edge`` call issues its own token, so adding the same edge
    twice gives it a multiplicity of two in ``outgoing_edges()`` and
    ``incoming_edges()``. ``remove_edge`` removes every observed copy.

    Args:
        node_id: Identifier for this replica. Must stay the same for as
            long as any state it issued tokens into is kept, and must
            not contain ``"->"``.
        token_counter: Last counter issued by this node (when reloading).
    """

    __slots__ = ("_node_id", "_token_counter", "_vertices", "_edges")

    def __init__(self, node_id: NodeId, token_counter: int = 0):
        self._node_id = node_id
        self._token_counter = token_counter
        self._vertices: dict[Token, _Vertex] = {}
        self._edges: dict[Edge, _EdgeRecord] = {}

    @property
    def node_id(self) -> NodeId:
        """This replica's identifier."""
        return self._node_id

    @property
    def token_counter(self) -> int:
        """Counter of the last token this replica issued."""
        return self._token_counter

    @property
    def value(self) -> tuple[frozenset[Token], frozenset[Edge]]:
        """Live vertices and present edges."""
        return frozenset(self.vertices()), frozenset(self.edges())

    def _issue(self) -> Token:
        self._token_counter += 1
        return Token(self._node_id, self._token_counter)

    def _require(self, vertex: Token) -> _Vertex:
        if not self.has_vertex(vertex):
            raise UnknownVertexError(vertex)
        return self._vertices[vertex]

    # -- queries ----------------------------------------------------------

    def has_vertex(self, vertex: Token) -> bool:
        """True if the vertex exists and has not been removed."""
        record = self._vertices.get(vertex)
        return record is not None and not record.removed

    def has_edge(self, source: Token, target: Token) -> bool:
        """True if the edge ``source -> target`` has a live observed token."""
        record = self._edges.get((source, target))
        return record is not None and bool(record.observed)

    def vertices(self) -> Iterator[Token]:
        """Iterate over live vertices."""
        return (token for token, record in self._vertices.items() if not record.removed)

    def edges(self) -> Iterator[Edge]:
        """Iterate over present edges as ``(source, target)`` pairs."""
        return (key for key, record in self._edges.items() if record.observed)

    def outgoing_edges(self, source: Token) -> list[Edge]:
        """Edges leaving ``source``, one entry per adjacency copy.

        Raises:
            UnknownVertexError: If this replica has never seen ``source``.
        """
        if source not in self._vertices:
            raise UnknownVertexError(source)
        return [(source, target) for target in self._vertices[source].outgoing.elements()]

    def incoming_edges(self, target: Token) -> list[Edge]:
        """Edges arriving at ``target``, one entry per adjacency copy.

        Raises:
            UnknownVertexError: If this replica has never seen ``target``.
        """
        if target not in self._vertices:
            raise UnknownVertexError(target)
        return [(source, target) for source in self._vertices[target].incoming.elements()]

    # -- mutation ---------------------------------------------------------

    def create_vertex(self) -> Token:
        """Add a new vertex and return its token."""
        token = self._issue()
        self._vertices[token] = _Vertex()
        return token

    def add_edge(self, source: Token, target: Token) -> Edge:
        """Add a directed edge under a newly issued token.

        Returns:
            The ``(source, target)`` key of the edge.

        Raises:
            UnknownVertexError: If either endpoint is unknown or removed.
        """
        source_vertex = self._require(source)
        target_vertex = self._require(target)
        source_vertex.outgoing[target] += 1
        target_vertex.incoming[source] += 1
        self._edges.setdefault((source, target), _EdgeRecord()).observed.add(self._issue())
        return source, target

    def remove_edge(self, source: Token, target: Token) -> None:
        """Tombstone every observed token of ``source -> target``.

        Removing an edge this replica has never seen is a no-op.
        """
        record = self._edges.get((source, target))
        if record is None:
            return
        record.removed |= record.observed
        record.observed.clear()
        self._unlink(source, target)

    def remove_vertex(self, vertex: Token) -> None:
        """Mark ``vertex`` removed and remove every edge touching it.

        Raises:
            UnknownVertexError: If this replica has never seen ``vertex``.
        """
        record = self._vertices.get(vertex)
        if record is None:
            raise UnknownVertexError(vertex)
        record.removed = True
        incident = {(source, vertex) for source in record.incoming}
        incident |= {(vertex, target) for target in record.outgoing}
        for source, target in incident:
            self.remove_edge(source, target)

    def _unlink(self, source: Token, target: Token) -> None:
        self._vertices[source].outgoing.pop(target, None)
        self._vertices[target].incoming.pop(source, None)

    # -- replication ------------------------------------------------------

    def merge(self, other: ORGraph) -> None:
        """Merge another OR-Graph into this one.

        Vertex ``removed`` flags are OR-ed. Edge ledgers are unioned, then
        removed tokens are subtracted from observed ones. Edges touching a
        removed vertex are tombstoned. Finally the adjacency index is
        rebuilt from the merged ledgers: the union of both replicas'
        adjacency with edges that ended up empty pruned from both ends.
        """
        for token, theirs in other._vertices.items():
            ours = self._vertices.setdefault(token, _Vertex())
            ours.removed = ours.removed or theirs.removed

        for key, theirs in other._edges.items():
            ours = self._edges.setdefault(key, _EdgeRecord())
            ours.observed |= theirs.observed
            ours.removed |= theirs.removed
            ours.observed -= ours.removed

        self._cascade_removals()
        self._reindex()

    def _cascade_removals(self) -> None:
        for (source, target), record in self._edges.items():
            if not record.observed:
                continue
            if self._vertices[source].removed or self._vertices[target].removed:
                record.removed |= record.observed
                record.observed.clear()

    def _reindex(self) -> None:
        for vertex in self._vertices.values():
            vertex.incoming.clear()
            vertex.outgoing.clear()
        for (source, target), record in self._edges.items():
            if record.observed:
                self._vertices[source].outgoing[target] = len(record.observed)
                self._vertices[target].incoming[source] = len(record.observed)

    def _adjacency(self) -> dict[Token, tuple[Counter, Counter]]:
        return {
            token: (Counter(vertex.incoming), Counter(vertex.outgoing))
            for token, vertex in self._vertices.items()
        }

    def to_dict(self) -> dict:
        """Serialize to a plain dict."""
        return {
            "node_identity": self._node_id,
            "token_counter": self._token_counter,
            "vertices": {
                token.to_key(): {
                    "incoming": encode_tokens(vertex.incoming.elements()),
                    "outgoing": encode_tokens(vertex.outgoing.elements()),
                    "removed": vertex.removed,
                }
                for token, vertex in self._vertices.items()
            },
            "edges": {
                edge_key(source, target): {
                    "observed": encode_tokens(record.observed),
                    "removed": encode_tokens(record.removed),
                }
                for (source, target), record in self._edges.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Deserialize from a plain dict.

        The adjacency index is rebuilt from the edge ledgers; a stored
        index that disagrees is logged and replaced.

        Raises:
            MalformedStateError: If ``data`` is not an OR-Graph payload.
        """
        state = validate_state(ORGraphState, "ORGraph", data)
        graph = cls(state.node_identity, state.token_counter)

        stored = {}
        for key, vertex in state.vertices.items():
            token = Token.from_key(key)
            graph._vertices[token] = _Vertex(removed=vertex.removed)
            stored[token] = (
                Counter(Token(node_id, counter) for node_id, counter in vertex.incoming),
                Counter(Token(node_id, counter) for node_id, counter in vertex.outgoing),
            )
        for key, ledger in state.edges.items():
            graph._edges[parse_edge_key(key)] = _EdgeRecord(
                observed=decode_tokens(ledger.observed) - decode_tokens(ledger.removed),
                removed=decode_tokens(ledger.removed),
            )

        graph._cascade_removals()
        graph._reindex()
        if graph._adjacency() != stored:
            logger.warning("[%s] Stored adjacency disagrees with edge ledgers; rebuilt", state.node_identity)

        issued = highest_counter(
            [*graph._vertices, *(t for r in graph._edges.values() for t in r.observed | r.removed)],
            state.node_identity,
        )
        if issued > graph._token_counter:
            logger.warning(
                "[%s] token_counter %d is behind issued token %d; advancing",
                state.node_identity, graph._token_counter, issued,
            )
            graph._token_counter = issued
        return graph

    def __repr__(self) -> str:
        vertices, edges = self.value
        return f"ORGraph(node_id={self._node_id!r}, vertices={len(vertices)}, edges={len(edges)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ORGraph):
            return NotImplemented
        return (
            {token: vertex.removed for token, vertex in self._vertices.items()}
            == {token: vertex.removed for token, vertex in other._vertices.items()}
            and {key: (r.observed, r.removed) for key, r in self._edges.items()}
            == {key: (r.observed, r.removed) for key, r in other._edges.items()}
        )
