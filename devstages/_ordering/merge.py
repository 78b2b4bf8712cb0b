from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Iterable, Mapping

    from devstages.hierarchy import TermHierarchy
    from devstages.types import PartitionKey, TaxonId, TermId


def partition_key(hierarchy: TermHierarchy, term: TermId) -> PartitionKey:
    """
    The single taxon `term` is valid in, or `None` for terms valid in
    several taxa (or unconstrained).
    """
    taxa = hierarchy.validity_taxa(term)
    if taxa is not None and len(taxa) == 1:
        return next(iter(taxa))
    return None


def partition_siblings(
    hierarchy: TermHierarchy,
    terms: Iterable[TermId],
    taxon: TaxonId | None = None,
) -> dict[PartitionKey, set[TermId]]:
    """
    Split sibling terms into the groups that are ordered independently.

    Terms valid in a single taxon are grouped by that taxon, all other terms
    share the `None` group. With a `taxon` filter, the groups of every taxon
    that is an ancestor or a descendant of the filter are folded into the
    group of the filter, since their terms all describe the same organism.

    Parameters
    ----------
    hierarchy : TermHierarchy
        The hierarchy providing taxon constraints and the taxonomy.
    terms : Iterable[TermId]
        The sibling terms.
    taxon : TaxonId | None
        The taxon filter. Terms are not filtered here, see
        :func:`restrict_group<devstages._ordering.last_term.restrict_group>`.

    Returns
    -------
    dict[PartitionKey, set[TermId]]
        The non-empty groups, by partition key.

    Examples
    --------
    >>> from devstages.hierarchy import TermHierarchy
    >>> h = TermHierarchy.from_edges(
    ...     terms=["A", "B", "C"],
    ...     taxon_constraints={"A": [9606], "B": [10090], "C": [9606, 10090]},
    ... )
    >>> groups = partition_siblings(h, ["A", "B", "C"])
    >>> sorted(groups, key=lambda k: (k is not None, k or 0))
    [None, 9606, 10090]
    """
    filter_lineage = None if taxon is None else hierarchy.taxon_lineage(taxon)

    result: dict[PartitionKey, set[TermId]] = {}
    for term in terms:
        key = partition_key(hierarchy, term)
        if key is not None and filter_lineage is not None:
            if key in filter_lineage or taxon in hierarchy.taxon_lineage(key):
                key = taxon
        result.setdefault(key, set()).add(term)
    return result


def ordered_partitions(
    groups: Mapping[PartitionKey, Iterable[TermId]],
) -> list[tuple[PartitionKey, Iterable[TermId]]]:
    """
    The `(key, group)` pairs sorted by partition key: `None` first, then
    ascending taxon identifiers.
    """

    def sort_key(item: tuple[PartitionKey, Iterable[TermId]]) -> tuple[int, int]:
        key = item[0]
        return (0, 0) if key is None else (1, key)

    return sorted(groups.items(), key=sort_key)


def merge_ordered_groups(groups: Iterable[Iterable[TermId]]) -> list[TermId]:
    """
    Merge independently ordered groups into one sequence.

    Groups are emitted one after the other, in the given order, so the
    internal order of every group is preserved and the result only depends
    on the input. Empty groups are skipped.

    Parameters
    ----------
    groups : Iterable[Iterable[TermId]]
        Ordered groups, usually produced by
        :func:`order_siblings<devstages._ordering.order_siblings.order_siblings>`
        for each item of :func:`ordered_partitions`.

    Returns
    -------
    list[TermId]
        The merged sequence (always a new list).

    Raises
    ------
    ValueError
        If a term appears in more than one group.

    Examples
    --------
    >>> merge_ordered_groups([["X1", "X2"], [], ["Y1", "Y2"]])
    ['X1', 'X2', 'Y1', 'Y2']
    """
    merged: list[TermId] = []
    seen: set[TermId] = set()
    for group in groups:
        for term in group:
            if term in seen:
                raise ValueError(f"Term `{term}` appears in several groups.")
            seen.add(term)
            merged.append(term)
    return merged
