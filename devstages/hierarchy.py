"""
An immutable snapshot of the term hierarchy consumed by the ordering engine.

The snapshot stores three `networkx.DiGraph` objects:

 - the *containment* graph, with one node per term (node attributes follow
   :class:`TermData<devstages.types.TermData>`) and `child -> parent` edges for
   `part_of` (and `is_a`) relations;
 - the *precedence* graph, with `earlier -> later` edges annotated with a
   `kind` attribute (`"precedes"` or `"immediately_precedes"`);
 - an optional *taxonomy* graph, with `taxon -> parent taxon` edges.

All graphs are frozen. Derived relations (e.g. precedence relations
inferred from temporal ordering comments) are added with
:meth:`TermHierarchy.with_precedence_edges`, which returns a new snapshot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from typing import Callable, Iterable, Iterator, Mapping

    from devstages.types import PrecedenceEdge, PrecedenceKind, TaxonId, TermId

import networkx as nx  # type: ignore

from devstages.errors import TermNotFoundError
from devstages.temporal import temporal_order_from_comment

PRECEDES: PrecedenceKind = "precedes"
IMMEDIATELY_PRECEDES: PrecedenceKind = "immediately_precedes"


def _frozen(graph: nx.DiGraph) -> nx.DiGraph:
    """
    A frozen copy of `graph`, or `graph` itself if it is already frozen. The
    graphs given by the caller stay modifiable.
    """
    if nx.is_frozen(graph):  # type: ignore
        return graph
    return nx.freeze(graph.copy())  # type: ignore


class TermHierarchy:
    """
    Read-only view of terms, their containment relations, their precedence
    relations, and the taxa they are valid in.

    Examples
    --------
    >>> from devstages.hierarchy import TermHierarchy
    >>> h = TermHierarchy.from_edges(
    ...     part_of=[("S1", "P"), ("S2", "P")],
    ...     immediately_precedes=[("S1", "S2")],
    ... )
    >>> sorted(h.children_of("P"))
    ['S1', 'S2']
    >>> sorted(h.predecessor_edges("S2"))
    [('S1', 'immediately_precedes')]
    """

    __slots__ = (
        "containment",
        "precedence",
        "taxonomy",
        "temporal_order",
    )

    def __init__(
        self,
        containment: nx.DiGraph,
        precedence: nx.DiGraph | None = None,
        taxonomy: nx.DiGraph | None = None,
        temporal_order: Callable[[str | None], int | None] | None = None,
    ):
        if precedence is None:
            precedence = nx.DiGraph()

        for term in precedence.nodes():  # type: ignore
            if term not in containment:
                raise TermNotFoundError(term)

        self.containment: nx.DiGraph = _frozen(containment)
        """
        Containment relations as a frozen `networkx.DiGraph` (`child -> parent`).
        """

        self.precedence: nx.DiGraph = _frozen(precedence)
        """
        Precedence relations as a frozen `networkx.DiGraph` (`earlier -> later`).
        """

        self.taxonomy: nx.DiGraph | None = (
            None if taxonomy is None else _frozen(taxonomy)
        )
        """
        Taxonomy as a frozen `networkx.DiGraph` (`taxon -> parent taxon`), or `None`.
        """

        if temporal_order is None:
            temporal_order = temporal_order_from_comment
        self.temporal_order: Callable[[str | None], int | None] = temporal_order
        """
        The function extracting a temporal ordering number from a term comment.
        """

    @staticmethod
    def from_edges(
        part_of: Iterable[tuple[TermId, TermId]] = (),
        precedes: Iterable[tuple[TermId, TermId]] = (),
        immediately_precedes: Iterable[tuple[TermId, TermId]] = (),
        terms: Iterable[TermId] = (),
        labels: Mapping[TermId, str] | None = None,
        comments: Mapping[TermId, str] | None = None,
        taxon_constraints: Mapping[TermId, Iterable[TaxonId]] | None = None,
        taxonomy: Iterable[tuple[TaxonId, TaxonId]] | None = None,
        temporal_order: Callable[[str | None], int | None] | None = None,
    ) -> TermHierarchy:
        """
        Build a hierarchy from plain edge lists.

        Every term mentioned in an edge (or listed in `terms`) becomes a node
        of the hierarchy. Terms missing from `taxon_constraints` are
        unconstrained (valid in every taxon).

        Parameters
        ----------
        part_of : Iterable[tuple[TermId, TermId]]
            `(child, parent)` containment pairs.
        precedes : Iterable[tuple[TermId, TermId]]
            `(earlier, later)` pairs.
        immediately_precedes : Iterable[tuple[TermId, TermId]]
            `(earlier, later)` pairs. If a pair is listed in both `precedes`
            and `immediately_precedes`, the immediate relation is kept.
        terms : Iterable[TermId]
            Additional terms without any relation.
        labels : Mapping[TermId, str] | None
            Human readable names. Defaults to the term identifier.
        comments : Mapping[TermId, str] | None
            Free-text comments.
        taxon_constraints : Mapping[TermId, Iterable[TaxonId]] | None
            The taxa each term is valid in.
        taxonomy : Iterable[tuple[TaxonId, TaxonId]] | None
            `(taxon, parent taxon)` pairs.
        temporal_order : Callable[[str | None], int | None] | None
            See :attr:`TermHierarchy.temporal_order`.

        Returns
        -------
        TermHierarchy
            The new hierarchy snapshot.
        """
        part_of = list(part_of)
        precedence = nx.DiGraph()
        for earlier, later in precedes:
            precedence.add_edge(earlier, later, kind=PRECEDES)
        for earlier, later in immediately_precedes:
            precedence.add_edge(earlier, later, kind=IMMEDIATELY_PRECEDES)

        all_terms: set[TermId] = set(terms)
        all_terms.update(t for edge in part_of for t in edge)
        all_terms.update(precedence.nodes())  # type: ignore

        containment = nx.DiGraph()
        for term in sorted(all_terms):
            taxa = None
            if taxon_constraints is not None and term in taxon_constraints:
                taxa = frozenset(taxon_constraints[term])
            containment.add_node(
                term,
                label=term if labels is None else labels.get(term, term),
                comment=None if comments is None else comments.get(term),
                taxa=taxa,
            )
        containment.add_edges_from(part_of)

        taxonomy_graph = None
        if taxonomy is not None:
            taxonomy_graph = nx.DiGraph()
            taxonomy_graph.add_edges_from(taxonomy)

        return TermHierarchy(containment, precedence, taxonomy_graph, temporal_order)

    def __contains__(self, term: object) -> bool:
        return term in self.containment

    def __len__(self) -> int:
        """
        Returns the number of terms in this `TermHierarchy`.
        """
        return self.containment.number_of_nodes()

    def terms(self) -> Iterator[TermId]:
        """
        Iterator over all term identifiers, in no particular order.
        """
        yield from self.containment.nodes()

    def _node(self, term: TermId) -> dict[str, object]:
        if term not in self.containment:
            raise TermNotFoundError(term)
        return cast(dict[str, object], self.containment.nodes[term])

    def label(self, term: TermId) -> str:
        return cast(str, self._node(term)["label"])

    def comment(self, term: TermId) -> str | None:
        return cast("str | None", self._node(term)["comment"])

    def validity_taxa(self, term: TermId) -> frozenset[TaxonId] | None:
        """
        The taxa `term` is valid in, or `None` if the term is unconstrained.
        """
        return cast("frozenset[TaxonId] | None", self._node(term)["taxa"])

    def temporal_order_annotation(self, term: TermId) -> int | None:
        """
        The temporal ordering number of `term` extracted by
        :attr:`TermHierarchy.temporal_order`, or `None`.
        """
        return self.temporal_order(self.comment(term))

    def children_of(self, term: TermId) -> set[TermId]:
        """
        Direct children of `term` over containment relations.
        """
        self._node(term)
        return set(self.containment.predecessors(term))  # type: ignore

    def parents_of(self, term: TermId) -> set[TermId]:
        """
        Direct parents of `term` over containment relations.
        """
        self._node(term)
        return set(self.containment.successors(term))  # type: ignore

    def containment_ancestors(self, term: TermId) -> set[TermId]:
        """
        All terms containing `term`, directly or indirectly (excluding `term`).
        """
        self._node(term)
        # Edges go from child to parent, so graph descendants are term ancestors.
        return cast("set[TermId]", nx.descendants(self.containment, term))

    def least_common_ancestors(self, a: TermId, b: TermId) -> set[TermId]:
        """
        The least common containment ancestors of `a` and `b`.

        If one term contains the other, the containing term is the only
        least common ancestor. In a tree, the result has exactly one element
        (or none if the terms belong to different trees of the forest).

        Parameters
        ----------
        a : TermId
            The first term.
        b : TermId
            The second term.

        Returns
        -------
        set[TermId]
            The common ancestors of `a` and `b` that are not an ancestor of
            another common ancestor.

        Examples
        --------
        >>> from devstages.hierarchy import TermHierarchy
        >>> h = TermHierarchy.from_edges(part_of=[("A", "R"), ("B", "R"), ("A1", "A")])
        >>> h.least_common_ancestors("A1", "B")
        {'R'}
        >>> h.least_common_ancestors("A1", "A")
        {'A'}
        """
        common = (self.containment_ancestors(a) | {a}) & (
            self.containment_ancestors(b) | {b}
        )
        result = set(common)
        for ancestor in common:
            result -= self.containment_ancestors(ancestor)
        return result

    def members_equal_or_containing(
        self, term: TermId, group: set[TermId] | frozenset[TermId]
    ) -> set[TermId]:
        """
        The members of `group` that are equal to `term` or contain it.

        Precedence relations are often asserted between fine-grained terms,
        so a relation leading to a child of a group member counts as a
        relation leading to that member.
        """
        if term in group:
            return {term}
        return self.containment_ancestors(term) & group

    def precedence_edges_from(self, term: TermId) -> set[PrecedenceEdge]:
        """
        Precedence relations where `term` is the earlier term, as
        `(later, kind)` pairs.
        """
        self._node(term)
        if term not in self.precedence:
            return set()
        return {
            (later, data["kind"])
            for _, later, data in self.precedence.out_edges(term, data=True)  # type: ignore
        }

    def predecessor_edges(self, term: TermId) -> set[PrecedenceEdge]:
        """
        Direct precedence relations where `term` is the later term, as
        `(earlier, kind)` pairs (i.e. the `preceded_by` relations of `term`).
        """
        self._node(term)
        if term not in self.precedence:
            return set()
        return {
            (earlier, data["kind"])
            for earlier, _, data in self.precedence.in_edges(term, data=True)  # type: ignore
        }

    def predecessor_closure(self, term: TermId) -> set[PrecedenceEdge]:
        """
        Direct and inferred precedence relations where `term` is the later term.

        Relations are combined the way super-properties compose:
        `immediately_precedes` implies `precedes`, `precedes` is transitive,
        and a term is preceded by everything preceding one of its containment
        ancestors. Only the direct `immediately_precedes` relations of `term`
        keep their kind, every inferred relation is a plain `"precedes"`.

        Parameters
        ----------
        term : TermId
            The later term.

        Returns
        -------
        set[PrecedenceEdge]
            `(earlier, kind)` pairs.

        Examples
        --------
        >>> from devstages.hierarchy import TermHierarchy
        >>> h = TermHierarchy.from_edges(
        ...     immediately_precedes=[("A", "B"), ("B", "C")],
        ... )
        >>> sorted(h.predecessor_closure("C"))
        [('A', 'precedes'), ('B', 'immediately_precedes')]
        """
        sources = self.containment_ancestors(term) | {term}

        earlier: set[TermId] = set()
        stack = [s for s in sources if s in self.precedence]
        seen: set[TermId] = set(stack)
        while len(stack) > 0:
            current = stack.pop()
            for p in self.precedence.predecessors(current):  # type: ignore
                earlier.add(p)
                if p not in seen:
                    seen.add(p)
                    stack.append(p)

        earlier.discard(term)
        result: set[PrecedenceEdge] = {(p, PRECEDES) for p in earlier}
        for p, kind in self.predecessor_edges(term):
            if kind == IMMEDIATELY_PRECEDES:
                result.discard((p, PRECEDES))
                result.add((p, IMMEDIATELY_PRECEDES))
        return result

    def taxon_lineage(self, taxon: TaxonId) -> set[TaxonId]:
        """
        The taxon itself and all its ancestor taxa (if a taxonomy is known).
        """
        if self.taxonomy is None or taxon not in self.taxonomy:
            return {taxon}
        return cast("set[TaxonId]", nx.descendants(self.taxonomy, taxon)) | {taxon}

    def is_valid_in(self, term: TermId, taxon: TaxonId | None) -> bool:
        """
        Check if `term` exists in `taxon`.

        Unconstrained terms are valid everywhere. A constrained term is valid
        in a taxon if it is valid in that taxon or in one of its ancestors.
        If no taxon is given, a term is valid unless it exists in no taxon
        at all.

        Parameters
        ----------
        term : TermId
            The term to check.
        taxon : TaxonId | None
            The taxon, or `None` for no taxon filter.

        Returns
        -------
        bool
            `True` if the term is valid.
        """
        taxa = self.validity_taxa(term)
        if taxa is None:
            return True
        if taxon is None:
            return len(taxa) > 0
        return not taxa.isdisjoint(self.taxon_lineage(taxon))

    def with_precedence_edges(
        self, edges: Iterable[tuple[TermId, TermId, PrecedenceKind]]
    ) -> TermHierarchy:
        """
        Create a new snapshot with additional `(earlier, later, kind)`
        precedence relations. Existing relations between the same terms are
        kept unchanged. This snapshot is not modified.
        """
        precedence = nx.DiGraph(self.precedence)
        for earlier, later, kind in edges:
            if not precedence.has_edge(earlier, later):
                precedence.add_edge(earlier, later, kind=kind)
        return TermHierarchy(
            self.containment, precedence, self.taxonomy, self.temporal_order
        )
