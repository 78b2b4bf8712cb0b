from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Iterable

    from devstages.hierarchy import TermHierarchy
    from devstages.types import TaxonId, TermId

from devstages.errors import CycleError, MissingEdgeError

# Enables debug logging to stdout.
DEBUG = False


def restrict_group(
    hierarchy: TermHierarchy, group: Iterable[TermId], taxon: TaxonId | None
) -> frozenset[TermId]:
    """
    The members of `group` that are valid in `taxon`.
    """
    if taxon is None:
        return frozenset(group)
    return frozenset(t for t in group if hierarchy.is_valid_in(t, taxon))


def last_term(
    hierarchy: TermHierarchy,
    group: Iterable[TermId],
    taxon: TaxonId | None = None,
) -> TermId:
    """
    See `StageOntology.last_term` for documentation.
    """
    members = restrict_group(hierarchy, group, taxon)
    if len(members) == 0:
        raise ValueError("Cannot find the last term of an empty group.")

    candidates: set[TermId] = set()
    # Direct relations are tried first, inferred relations are much slower
    # and only needed when the direct ones are not conclusive.
    for indirect in (False, True):
        with_successors: set[TermId] = set()
        for term in sorted(members):
            if indirect:
                edges = hierarchy.predecessor_closure(term)
            else:
                edges = hierarchy.predecessor_edges(term)
            for earlier, _ in edges:
                matches = hierarchy.members_equal_or_containing(earlier, members)
                with_successors |= matches - {term}

        candidates = set(members - with_successors)
        if DEBUG:
            print(
                f"Last term candidates (indirect={indirect}): {sorted(candidates)}"
            )
        if len(candidates) == 1:
            return candidates.pop()

    if len(candidates) == 0:
        raise CycleError(members)
    raise MissingEdgeError(members, candidates)
