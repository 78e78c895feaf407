"""Exception types raised by convergent.

Preconditions that cannot be checked locally (stable node identity,
quiescence before garbage collection) are usage contracts and have no
exception here.
"""

from __future__ import annotations


class CRDTError(Exception):
    """Base class for all convergent errors."""


class InvalidAmountError(CRDTError, ValueError):
    """A counter was asked to move by a negative amount."""


class MalformedStateError(CRDTError, ValueError):
    """A serialized payload does not have the expected shape.

    Args:
        type_name: The CRDT type being reconstructed.
        detail: Human-readable description of the problem.
    """

    def __init__(self, type_name: str, detail: str):
        super().__init__(f"Malformed {type_name} state: {detail}")
        self.type_name = type_name
        self.detail = detail


class UnknownVertexError(CRDTError, KeyError):
    """An ORGraph operation referenced a vertex that is absent or removed."""
