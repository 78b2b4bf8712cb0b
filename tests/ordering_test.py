import pytest

import devstages._ordering.order_siblings
from devstages._ordering.find_predecessor import find_predecessor
from devstages._ordering.last_term import last_term, restrict_group
from devstages._ordering.order_siblings import order_siblings
from devstages.errors import (
    ConflictingPrecedenceError,
    CycleError,
    MissingEdgeError,
    OrderingError,
)
from devstages.hierarchy import TermHierarchy


@pytest.fixture(autouse=True)
def debug_output(monkeypatch):
    # Debug outputs are a part of the test output, for this module only.
    monkeypatch.setattr(devstages._ordering.order_siblings, "DEBUG", True)


def test_debug_output(capsys):
    assert order_siblings(linear_chain(), {"S1", "S2"}) == ["S1", "S2"]
    assert "Ordered so far (2/2)" in capsys.readouterr().out


def linear_chain() -> TermHierarchy:
    return TermHierarchy.from_edges(
        part_of=[("S1", "P"), ("S2", "P"), ("S3", "P")],
        immediately_precedes=[("S1", "S2"), ("S2", "S3")],
    )


def test_linear_chain():
    h = linear_chain()

    assert last_term(h, {"S1", "S2", "S3"}) == "S3"
    assert find_predecessor(h, "S3", {"S1", "S2", "S3"}) == "S2"
    assert find_predecessor(h, "S1", {"S1", "S2", "S3"}) is None
    assert order_siblings(h, {"S3", "S1", "S2"}) == ["S1", "S2", "S3"]
    assert order_siblings(h, ["S2"]) == ["S2"]
    assert order_siblings(h, []) == []


def test_empty_group():
    h = linear_chain()

    with pytest.raises(ValueError):
        last_term(h, set())


def test_cycle():
    h = TermHierarchy.from_edges(precedes=[("A", "B"), ("B", "A")])

    with pytest.raises(CycleError):
        last_term(h, {"A", "B"})
    with pytest.raises(OrderingError):
        order_siblings(h, {"A", "B"})


def test_cycle_found_by_consistency_check():
    # `C` is the only last term, but the chain does not stop at `A`.
    h = TermHierarchy.from_edges(
        immediately_precedes=[("A", "B"), ("B", "C"), ("B", "A")],
    )

    assert last_term(h, {"A", "B", "C"}) == "C"
    with pytest.raises(CycleError) as exc_info:
        order_siblings(h, {"A", "B", "C"})
    assert exc_info.value.term == "B"
    assert exc_info.value.group == frozenset({"A", "B", "C"})


def test_missing_edge():
    h = TermHierarchy.from_edges(part_of=[("A", "P"), ("B", "P"), ("C", "P")])

    with pytest.raises(MissingEdgeError) as exc_info:
        order_siblings(h, {"A", "B", "C"})
    assert exc_info.value.terms == frozenset({"A", "B", "C"})

    h = TermHierarchy.from_edges(terms=["C"], precedes=[("A", "B")])
    with pytest.raises(MissingEdgeError) as exc_info:
        order_siblings(h, {"A", "B", "C"})
    assert exc_info.value.terms == frozenset({"B", "C"})


def test_several_plain_predecessors():
    h = TermHierarchy.from_edges(precedes=[("A", "C"), ("B", "C"), ("A", "B")])

    # Both `A` and `B` precede `C`, but `B` is the last of them.
    assert find_predecessor(h, "C", {"A", "B", "C"}) == "B"
    assert order_siblings(h, {"A", "B", "C"}) == ["A", "B", "C"]


def test_conflicting_immediate_predecessors():
    h = TermHierarchy.from_edges(
        immediately_precedes=[("A", "C"), ("B", "C")],
        precedes=[("A", "B")],
    )

    with pytest.raises(ConflictingPrecedenceError) as exc_info:
        order_siblings(h, {"A", "B", "C"})
    assert exc_info.value.term == "C"
    assert exc_info.value.predecessors == frozenset({"A", "B"})


def test_indirect_relations():
    # `X` is not a member of the group, so `A` only precedes `C` transitively.
    h = TermHierarchy.from_edges(precedes=[("A", "X"), ("X", "C")])

    assert find_predecessor(h, "C", {"A", "C"}) is None
    assert find_predecessor(h, "C", {"A", "C"}, indirect=True) == "A"
    assert last_term(h, {"A", "C"}) == "C"
    assert order_siblings(h, {"C", "A"}) == ["A", "C"]


def test_relations_of_parts():
    # The relation is stated on a part of `A`, and counts for `A` itself.
    h = TermHierarchy.from_edges(
        part_of=[("A", "P"), ("B", "P"), ("A2", "A")],
        immediately_precedes=[("A2", "B")],
    )

    assert order_siblings(h, {"A", "B"}) == ["A", "B"]


def test_temporal_order_fallback():
    h = TermHierarchy.from_edges(
        part_of=[("A", "P"), ("B", "P"), ("C", "P")],
        comments={
            "A": "Temporal ordering number - 30",
            "B": "Temporal ordering number - 10",
            "C": "Temporal ordering number - 20",
        },
    )

    assert order_siblings(h, {"A", "B", "C"}) == ["B", "C", "A"]
    with pytest.raises(MissingEdgeError):
        order_siblings(h, {"A", "B", "C"}, temporal_order_fallback=False)


def test_taxon_restriction():
    h = TermHierarchy.from_edges(
        part_of=[("H1", "P"), ("H2", "P"), ("M1", "P")],
        immediately_precedes=[("H1", "H2")],
        taxon_constraints={"H1": [9606], "H2": [9606], "M1": [10090]},
    )

    assert restrict_group(h, {"H1", "H2", "M1"}, 9606) == frozenset({"H1", "H2"})
    assert restrict_group(h, {"H1", "H2", "M1"}, None) == frozenset({"H1", "H2", "M1"})
    assert order_siblings(h, {"H1", "H2", "M1"}, 9606) == ["H1", "H2"]
    assert order_siblings(h, {"H1", "H2", "M1"}, 10090) == ["M1"]
    assert order_siblings(h, {"H1", "H2"}, 10090) == []
    with pytest.raises(MissingEdgeError):
        order_siblings(h, {"H1", "H2", "M1"})
