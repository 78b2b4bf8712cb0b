from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Iterable

    from devstages.hierarchy import TermHierarchy
    from devstages.types import TaxonId, TermId

from devstages._ordering.last_term import last_term, restrict_group
from devstages.errors import ConflictingPrecedenceError
from devstages.hierarchy import IMMEDIATELY_PRECEDES, PRECEDES

# Enables debug logging to stdout.
DEBUG = False


def find_predecessor(
    hierarchy: TermHierarchy,
    term: TermId,
    group: Iterable[TermId],
    taxon: TaxonId | None = None,
    chain_complete: bool = False,
    indirect: bool = False,
) -> TermId | None:
    """
    Find the member of `group` occurring just before `term`.

    An `immediately_precedes` relation leading to exactly one member wins
    right away. Otherwise, all `precedes` relations leading to members are
    collected, and if there are several of them, the last occurring one
    among them is the predecessor.

    Parameters
    ----------
    hierarchy : TermHierarchy
        The hierarchy providing precedence relations.
    term : TermId
        The term whose predecessor is searched.
    group : Iterable[TermId]
        The sibling terms `term` is ordered against.
    taxon : TaxonId | None
        If given, only members valid in this taxon are considered.
    chain_complete : bool
        Set when all members are already ordered. The search is then only a
        consistency check, and plain `precedes` relations are not inspected.
    indirect : bool
        If `True`, use inferred relations (see
        :meth:`TermHierarchy.predecessor_closure<devstages.hierarchy.TermHierarchy.predecessor_closure>`)
        instead of direct ones.

    Returns
    -------
    TermId | None
        The predecessor, or `None` if none was found (which is only
        valid for the earliest member of the group).

    Raises
    ------
    ConflictingPrecedenceError
        If `term` is immediately preceded by several members.
    """
    members = restrict_group(hierarchy, group, taxon)
    if indirect:
        edges = hierarchy.predecessor_closure(term)
    else:
        edges = hierarchy.predecessor_edges(term)

    immediate: TermId | None = None
    for earlier, kind in sorted(edges):
        if kind != IMMEDIATELY_PRECEDES:
            continue
        matches = hierarchy.members_equal_or_containing(earlier, members) - {term}
        if len(matches) == 0:
            continue
        if len(matches) > 1 or (immediate is not None and immediate not in matches):
            if immediate is not None:
                matches.add(immediate)
            raise ConflictingPrecedenceError(members, term, matches)
        immediate = matches.pop()

    if immediate is not None:
        if DEBUG:
            print(f"[{term}] Immediate predecessor (indirect={indirect}): {immediate}")
        return immediate

    if chain_complete:
        return None

    candidates: set[TermId] = set()
    for earlier, kind in edges:
        if kind != PRECEDES:
            continue
        candidates |= hierarchy.members_equal_or_containing(earlier, members)
    candidates.discard(term)

    if len(candidates) == 0:
        return None
    if len(candidates) == 1:
        predecessor = candidates.pop()
    else:
        # Preceded by several members: the predecessor is the last of them.
        predecessor = last_term(hierarchy, candidates, taxon)

    if DEBUG:
        print(f"[{term}] Predecessor (indirect={indirect}): {predecessor}")
    return predecessor
