import networkx as nx  # type: ignore
import pytest

from devstages.errors import TermNotFoundError
from devstages.hierarchy import TermHierarchy


def test_hierarchy_structure():
    h = TermHierarchy.from_edges(
        part_of=[("A", "R"), ("B", "R"), ("A1", "A")],
        precedes=[("A", "B")],
        labels={"A": "stage A"},
        comments={"B": "Temporal ordering number - 4"},
    )

    assert len(h) == 4
    assert "A1" in h
    assert "X" not in h
    assert set(h.terms()) == {"R", "A", "B", "A1"}
    assert h.children_of("R") == {"A", "B"}
    assert h.parents_of("A1") == {"A"}
    assert h.parents_of("R") == set()
    assert h.containment_ancestors("A1") == {"A", "R"}

    assert h.label("A") == "stage A"
    assert h.label("B") == "B"
    assert h.comment("A") is None
    assert h.temporal_order_annotation("B") == 4
    assert h.temporal_order_annotation("A") is None

    assert h.precedence_edges_from("A") == {("B", "precedes")}
    assert h.predecessor_edges("B") == {("A", "precedes")}
    assert h.predecessor_edges("R") == set()


def test_unknown_terms():
    h = TermHierarchy.from_edges(part_of=[("A", "R")])

    with pytest.raises(TermNotFoundError):
        h.children_of("X")
    with pytest.raises(KeyError):
        h.validity_taxa("X")

    # Precedence relations must only use known terms.
    containment = nx.DiGraph()
    containment.add_node("A", label="A", comment=None, taxa=None)
    precedence = nx.DiGraph()
    precedence.add_edge("A", "Z", kind="precedes")
    with pytest.raises(TermNotFoundError):
        TermHierarchy(containment, precedence)


def test_hierarchy_is_frozen():
    h = TermHierarchy.from_edges(part_of=[("A", "R")], precedes=[("A", "R")])

    with pytest.raises(nx.NetworkXError):
        h.containment.add_edge("X", "Y")
    with pytest.raises(nx.NetworkXError):
        h.precedence.add_edge("X", "Y")


def test_immediate_relation_wins():
    h = TermHierarchy.from_edges(
        terms=["A", "B"],
        precedes=[("A", "B")],
        immediately_precedes=[("A", "B")],
    )
    assert h.predecessor_edges("B") == {("A", "immediately_precedes")}


def test_least_common_ancestors():
    h = TermHierarchy.from_edges(
        part_of=[("A", "R"), ("B", "R"), ("A1", "A"), ("X", "R2")],
    )
    assert h.least_common_ancestors("A1", "B") == {"R"}
    assert h.least_common_ancestors("A1", "A") == {"A"}
    assert h.least_common_ancestors("A", "A1") == {"A"}
    assert h.least_common_ancestors("A", "X") == set()

    dag = TermHierarchy.from_edges(
        part_of=[("C", "A"), ("C", "B"), ("D", "A"), ("D", "B")],
    )
    assert dag.least_common_ancestors("C", "D") == {"A", "B"}


def test_members_equal_or_containing():
    h = TermHierarchy.from_edges(part_of=[("A", "R"), ("B", "R"), ("A1", "A")])

    assert h.members_equal_or_containing("A1", {"A", "B"}) == {"A"}
    assert h.members_equal_or_containing("A", {"A", "R"}) == {"A"}
    assert h.members_equal_or_containing("B", {"A"}) == set()


def test_predecessor_closure():
    h = TermHierarchy.from_edges(
        part_of=[("A1", "A"), ("B1", "B"), ("A", "P"), ("B", "P")],
        immediately_precedes=[("A", "B"), ("Z", "A1"), ("A1", "B1")],
    )

    # Relations of `B` are inherited by its parts.
    assert h.predecessor_closure("B1") == {
        ("A", "precedes"),
        ("A1", "immediately_precedes"),
        ("Z", "precedes"),
    }
    assert h.predecessor_closure("A") == set()
    # Only direct relations are used by `predecessor_edges`.
    assert h.predecessor_edges("B1") == {("A1", "immediately_precedes")}


def test_taxa():
    h = TermHierarchy.from_edges(
        terms=["H", "V", "N", "U", "X"],
        taxon_constraints={"H": [9606], "V": [7742], "N": [], "X": [9606, 10090]},
        taxonomy=[(9606, 7742), (10090, 7742)],
    )

    assert h.taxon_lineage(9606) == {9606, 7742}
    assert h.taxon_lineage(7742) == {7742}
    assert h.taxon_lineage(1) == {1}

    assert h.validity_taxa("H") == frozenset({9606})
    assert h.validity_taxa("U") is None

    assert h.is_valid_in("H", 9606)
    assert not h.is_valid_in("H", 10090)
    assert not h.is_valid_in("H", 7742)
    assert h.is_valid_in("H", None)
    # Terms of an ancestor taxon exist in every descendant taxon.
    assert h.is_valid_in("V", 9606)
    assert h.is_valid_in("V", 10090)
    assert h.is_valid_in("U", 10090)
    assert h.is_valid_in("X", 10090)
    assert not h.is_valid_in("N", None)
    assert not h.is_valid_in("N", 9606)


def test_with_precedence_edges():
    h = TermHierarchy.from_edges(
        terms=["A", "B", "C"], immediately_precedes=[("A", "B")]
    )

    h2 = h.with_precedence_edges([("A", "B", "precedes"), ("B", "C", "precedes")])

    assert h2.predecessor_edges("B") == {("A", "immediately_precedes")}
    assert h2.predecessor_edges("C") == {("B", "precedes")}
    # The first snapshot is unchanged.
    assert h.predecessor_edges("C") == set()
    assert h2.containment is h.containment


def test_input_graphs_stay_modifiable():
    containment = nx.DiGraph()
    containment.add_node("A", label="A", comment=None, taxa=None)
    precedence = nx.DiGraph()
    h = TermHierarchy(containment, precedence)

    containment.add_node("B", label="B", comment=None, taxa=None)
    precedence.add_edge("A", "B", kind="precedes")

    assert "B" not in h
    assert h.precedence_edges_from("A") == set()
    with pytest.raises(nx.NetworkXError):
        h.containment.add_node("C")
