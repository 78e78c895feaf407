"""convergent: state-based Convergent Replicated Data Types.

Each type is a self-contained value that replicas mutate locally and
reconcile with ``merge``, which is commutative, associative and
idempotent:

- **PNCounter**: counter that goes up and down (built on **GCounter**)
- **VectorClock**: per-node counters with causal comparison
- **LWWRegister**: single value, last writer wins
- **ORSet**: add-wins set with token ledgers and garbage collection
- **ORGraph**: directed graph with add-wins edges and sticky vertex removal

Every type serializes to a plain dict with ``to_dict()`` and is rebuilt
with ``from_dict()``. Moving those dicts between replicas is up to the
caller.
"""

import logging

from convergent.exceptions import (
    CRDTError,
    InvalidAmountError,
    MalformedStateError,
    UnknownVertexError,
)
from convergent.g_counter import GCounter
from convergent.logging_config import (
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    set_level,
)
from convergent.lww_register import LWWRegister
from convergent.or_graph import ORGraph
from convergent.or_set import ORSet
from convergent.pn_counter import PNCounter
from convergent.protocol import CRDT
from convergent.token import NodeId, Token
from convergent.vector_clock import ClockOrdering, VectorClock

logging.getLogger("convergent").addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Protocol and primitives
    "CRDT",
    "NodeId",
    "Token",
    # Types
    "GCounter",
    "PNCounter",
    "VectorClock",
    "ClockOrdering",
    "LWWRegister",
    "ORSet",
    "ORGraph",
    # Errors
    "CRDTError",
    "InvalidAmountError",
    "MalformedStateError",
    "UnknownVertexError",
    # Logging
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "set_level",
]
