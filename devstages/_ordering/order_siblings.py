from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Iterable

    from devstages.hierarchy import TermHierarchy
    from devstages.types import TaxonId, TermId

from devstages._ordering.find_predecessor import find_predecessor
from devstages._ordering.last_term import last_term, restrict_group
from devstages.errors import CycleError, MissingEdgeError
from devstages.temporal import with_temporal_precedence

# Enables debug logging to stdout.
DEBUG = False


def order_siblings(
    hierarchy: TermHierarchy,
    group: Iterable[TermId],
    taxon: TaxonId | None = None,
    temporal_order_fallback: bool = True,
) -> list[TermId]:
    """
    See `StageOntology.order_siblings` for documentation.
    """
    members = restrict_group(hierarchy, group, taxon)
    if len(members) == 0:
        return []

    if temporal_order_fallback:
        extended = with_temporal_precedence(hierarchy, [members])
        if DEBUG and extended is not hierarchy:
            print(f"Ordering {sorted(members)} using temporal ordering numbers.")
        hierarchy = extended

    ordered: list[TermId] = []
    current: TermId | None = last_term(hierarchy, members, taxon)
    while current is not None:
        if current in ordered:
            raise CycleError(members, current)
        ordered.insert(0, current)

        # Once every member is ordered, we still look for a predecessor of
        # the first one: finding one means there is a cycle.
        chain_complete = len(ordered) == len(members)
        predecessor = find_predecessor(
            hierarchy, current, members, taxon, chain_complete=chain_complete
        )
        if predecessor is None and not chain_complete:
            predecessor = find_predecessor(
                hierarchy, current, members, taxon, indirect=True
            )
            if predecessor is None:
                raise MissingEdgeError(members, [current])

        if DEBUG:
            print(f"Ordered so far ({len(ordered)}/{len(members)}): {ordered}")
        current = predecessor

    return ordered
