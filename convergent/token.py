"""Replica identity and causality tokens.

A ``Token`` names one add/create event: the issuing node plus that
node's monotonic counter at the time. Tokens are plain two-field
values, never delimited strings, except where a mapping key has to be
a string on the wire::

    Token("node-a", 3).to_key()      # "node-a:3"
    Token.from_key("node-a:3")       # Token(node_id="node-a", counter=3)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from convergent.exceptions import MalformedStateError

if TYPE_CHECKING:
    from collections.abc import Iterable

NodeId: TypeAlias = str

EDGE_SEPARATOR = "->"


@dataclass(frozen=True, order=True, slots=True)
class Token:
    """Unique identifier of a single add/create event.

    Ordering is ``(node_id, counter)``, so tokens from one node sort by
    counter.

    Attributes:
        node_id: The replica that issued the token.
        counter: The issuing replica's counter value (starts at 1).
    """

    node_id: NodeId
    counter: int

    def to_key(self) -> str:
        """String form used where the token is a mapping key."""
        return f"{self.node_id}:{self.counter}"

    @classmethod
    def from_key(cls, key: str) -> Token:
        """Parse the output of ``to_key()``.

        The last ``:`` separates the counter, so node ids may contain colons.

        Raises:
            MalformedStateError: If the key has no counter part.
        """
        node_id, sep, counter = key.rpartition(":")
        if not sep or not counter.isdigit():
            raise MalformedStateError("Token", f"bad token key {key!r}")
        return cls(node_id, int(counter))

    def to_pair(self) -> list:
        return [self.node_id, self.counter]


def encode_tokens(tokens: Iterable[Token]) -> list[list]:
    """Serialize tokens as sorted ``[node_id, counter]`` pairs."""
    return [token.to_pair() for token in sorted(tokens)]


def decode_tokens(pairs: Iterable[tuple[NodeId, int]]) -> set[Token]:
    """Rebuild a token set from ``[node_id, counter]`` pairs."""
    return {Token(node_id, counter) for node_id, counter in pairs}


def edge_key(source: Token, target: Token) -> str:
    """String key for the directed edge ``source -> target``."""
    return f"{source.to_key()}{EDGE_SEPARATOR}{target.to_key()}"


def parse_edge_key(key: str) -> tuple[Token, Token]:
    """Inverse of ``edge_key()``.

    Raises:
        MalformedStateError: If the key does not hold exactly two tokens.
    """
    parts = key.split(EDGE_SEPARATOR)
    if len(parts) != 2:
        raise MalformedStateError("ORGraph", f"bad edge key {key!r}")
    return Token.from_key(parts[0]), Token.from_key(parts[1])


def highest_counter(tokens: Iterable[Token], node_id: NodeId) -> int:
    """Largest counter among ``tokens`` issued by ``node_id`` (0 if none)."""
    return max((token.counter for token in tokens if token.node_id == node_id), default=0)
