"""Merge laws checked across every CRDT type.

Each scenario builds three replicas with overlapping, diverging
histories. Observable state is the serialized form minus the fields
that belong to the replica rather than to the shared value.
"""

import pytest

from convergent import GCounter, LWWRegister, ORGraph, ORSet, PNCounter, Token, VectorClock

REPLICA_LOCAL_KEYS = {"node_identity", "token_counter", "tiebreaker"}


def observable(crdt) -> dict:
    return {k: v for k, v in crdt.to_dict().items() if k not in REPLICA_LOCAL_KEYS}


def clone(crdt):
    return type(crdt).from_dict(crdt.to_dict())


def merged(*replicas):
    result = clone(replicas[0])
    for replica in replicas[1:]:
        result.merge(replica)
    return result


def g_counters():
    a, b, c = GCounter("a"), GCounter("b"), GCounter("c")
    a.increment(5)
    b.merge(a)
    b.increment(2)
    a.increment(1)
    c.increment(9)
    return a, b, c


def pn_counters():
    a, b, c = PNCounter("a"), PNCounter("b"), PNCounter("c")
    a.increase(5)
    b.merge(a)
    b.increase(2)
    a.decrease(1)
    c.decrease(7)
    c.merge(b)
    return a, b, c


def vector_clocks():
    a, b, c = VectorClock("a"), VectorClock("b"), VectorClock("c")
    a.increment_clock()
    a.increment_clock()
    b.merge(a)
    b.increment_clock()
    c.increment_clock()
    a.increment_clock()
    return a, b, c


def lww_registers():
    a = LWWRegister(1, wall_time=lambda: 2_000)
    b = LWWRegister(2, wall_time=lambda: 2_000)
    c = LWWRegister(3, wall_time=lambda: 1_000)
    a.set("a")
    b.set("b")
    c.set("c")
    return a, b, c


def partly_written_registers():
    a = LWWRegister(1)
    b = LWWRegister(2)
    c = LWWRegister(3, wall_time=lambda: 1_000)
    c.set("c")
    return a, b, c


def or_sets():
    a, b, c = ORSet("a"), ORSet("b"), ORSet("c")
    a.add("x")
    a.add("y")
    b.merge(a)
    b.remove("x")
    b.add("z")
    c.add("x")
    c.remove("x")
    c.add("w")
    a.remove("y")
    return a, b, c


def or_graphs():
    a = ORGraph("a")
    v1 = a.create_vertex()
    v2 = a.create_vertex()
    a.add_edge(v1, v2)

    b = ORGraph("b")
    b.merge(a)
    b.remove_edge(v1, v2)
    v3 = b.create_vertex()
    b.add_edge(v2, v3)

    c = ORGraph("c")
    c.merge(a)
    c.add_edge(v1, v2)
    c.add_edge(v2, v1)
    c.remove_vertex(v1)

    a.add_edge(v2, v2)
    a.add_edge(v1, v2)
    return a, b, c


SCENARIOS = [
    g_counters,
    pn_counters,
    vector_clocks,
    lww_registers,
    partly_written_registers,
    or_sets,
    or_graphs,
]


@pytest.fixture(params=SCENARIOS, ids=lambda f: f.__name__)
def replicas(request):
    return request.param()


class TestMergeLaws:
    """Commutativity, associativity and idempotence of merge."""

    def test_commutative(self, replicas):
        a, b, _ = replicas
        assert observable(merged(a, b)) == observable(merged(b, a))
        assert merged(a, b) == merged(b, a)

    def test_associative(self, replicas):
        a, b, c = replicas
        left = merged(merged(a, b), c)
        right = merged(a, merged(b, c))
        assert observable(left) == observable(right)
        assert left == right

    def test_idempotent(self, replicas):
        a, b, _ = replicas
        assert observable(merged(a, a)) == observable(a)
        ab = merged(a, b)
        assert observable(merged(ab, b)) == observable(ab)

    def test_all_orders_converge(self, replicas):
        a, b, c = replicas
        orders = [(a, b, c), (a, c, b), (b, a, c), (b, c, a), (c, a, b), (c, b, a)]
        states = [observable(merged(*order)) for order in orders]
        assert all(state == states[0] for state in states)

    def test_duplicate_delivery(self, replicas):
        a, b, c = replicas
        assert observable(merged(a, b, c, b, a, c)) == observable(merged(a, b, c))


class TestRoundTrip:
    """Serialization keeps merge behavior."""

    def test_round_trip_is_lossless(self, replicas):
        for replica in replicas:
            assert observable(clone(replica)) == observable(replica)
            assert clone(replica) == replica

    def test_reloaded_state_merges_the_same(self, replicas):
        a, b, _ = replicas
        assert observable(merged(clone(a), b)) == observable(merged(a, b))
        assert observable(merged(b, clone(a))) == observable(merged(b, a))


class TestScenarioOutcomes:
    """Spot checks of the converged values."""

    def test_pn_counter_value(self):
        assert merged(*pn_counters()).value == 5 + 2 - 1 - 7

    def test_vector_clock_value(self):
        assert merged(*vector_clocks()).value == {"a": 3, "b": 1, "c": 1}

    def test_lww_register_value(self):
        assert merged(*lww_registers()).value == "b"

    def test_unwritten_registers_agree_on_none(self):
        a, b, _ = partly_written_registers()
        assert merged(a, b).value is None
        assert merged(b, a).value is None
        assert merged(a, b).stamp is None

    def test_or_set_value(self):
        assert merged(*or_sets()).elements == frozenset({"z", "w"})

    def test_or_graph_value(self):
        result = merged(*or_graphs())
        v1, v2, v3 = Token("a", 1), Token("a", 2), Token("b", 1)
        assert set(result.vertices()) == {v2, v3}
        assert set(result.edges()) == {(v2, v3), (v2, v2)}
        assert sorted(result.outgoing_edges(v2)) == sorted([(v2, v3), (v2, v2)])
        assert result.outgoing_edges(v1) == []
