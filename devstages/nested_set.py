"""
Nested set numbering of a containment tree.

A nested set model assigns to every term of a tree an interval
`[left, right]` such that the interval of a term strictly contains the
intervals of all its descendants, and sibling intervals never overlap. Once
siblings are ordered chronologically, left bounds also give the
chronological order of all terms.
"""

from __future__ import annotations

from collections import deque
from threading import Lock
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Mapping

    from devstages.hierarchy import TermHierarchy
    from devstages.types import NestedSetModel, TaxonId, TermId

from devstages._ordering.last_term import restrict_group
from devstages._ordering.merge import (
    merge_ordered_groups,
    ordered_partitions,
    partition_siblings,
)
from devstages._ordering.order_siblings import order_siblings
from devstages.errors import AmbiguousAncestorError, TermNotFoundError
from devstages.temporal import with_temporal_precedence

# Enables debug logging to stdout.
DEBUG = False


def ordered_children(
    hierarchy: TermHierarchy,
    root: TermId,
    taxon: TaxonId | None = None,
    temporal_order_fallback: bool = True,
) -> dict[TermId, list[TermId]]:
    """
    Compute the chronologically ordered children of every term below `root`.

    The tree is walked level by level. At each term, the valid children are
    split with :func:`partition_siblings<devstages._ordering.merge.partition_siblings>`,
    each group is ordered independently, and the ordered groups are merged.
    Relations inferred from temporal ordering numbers are computed for all
    groups at once, before any group is ordered.
    Children that are not valid for `taxon` are discarded together with
    their whole subtree.

    Parameters
    ----------
    hierarchy : TermHierarchy
        The hierarchy to walk.
    root : TermId
        The term the walk starts from.
    taxon : TaxonId | None
        The taxon filter.
    temporal_order_fallback : bool
        See :attr:`StageOntologyConfiguration.temporal_order_fallback<devstages.types.StageOntologyConfiguration.temporal_order_fallback>`.

    Returns
    -------
    dict[TermId, list[TermId]]
        Ordered children of every reached term (leaves map to an empty list).

    Raises
    ------
    TermNotFoundError
        If `root` is unknown.
    AmbiguousAncestorError
        If a term is reached twice, i.e. containment is not a tree.
    OrderingError
        If a group of siblings cannot be ordered.
    """
    if root not in hierarchy:
        raise TermNotFoundError(root)

    groups: dict[TermId, list[frozenset[TermId]]] = {}
    seen: set[TermId] = {root}
    queue: deque[TermId] = deque([root])
    while len(queue) > 0:
        term = queue.popleft()
        valid = restrict_group(hierarchy, hierarchy.children_of(term), taxon)
        # An empty validity set is excluded even without a taxon filter.
        valid = frozenset(t for t in valid if hierarchy.is_valid_in(t, None))

        for child in sorted(valid):
            if child in seen:
                raise AmbiguousAncestorError(
                    f"Term `{child}` is reached through several parents below `{root}`."
                )
            seen.add(child)
            queue.append(child)

        partitions = ordered_partitions(partition_siblings(hierarchy, valid, taxon))
        groups[term] = [frozenset(group) for _, group in partitions]

    if temporal_order_fallback:
        # Relations inferred for every sibling group go into a single snapshot.
        extended = with_temporal_precedence(
            hierarchy, (group for term_groups in groups.values() for group in term_groups)
        )
        if DEBUG and extended is not hierarchy:
            print(f"[{root}] Using temporal ordering numbers.")
        hierarchy = extended

    children: dict[TermId, list[TermId]] = {}
    for term, term_groups in groups.items():
        children[term] = merge_ordered_groups(
            order_siblings(hierarchy, group, taxon, temporal_order_fallback=False)
            for group in term_groups
        )

        if DEBUG:
            print(f"[{term}] Ordered children: {children[term]}")

    return children


def number_nested_sets(
    root: TermId, children: Mapping[TermId, list[TermId]]
) -> NestedSetModel:
    """
    Assign nested set parameters using a depth-first walk over
    pre-ordered children.

    The root has left bound `1` and level `0`. Every term gets its left
    bound when it is first visited and its right bound once all its
    descendants are numbered.

    Parameters
    ----------
    root : TermId
        The root of the tree.
    children : Mapping[TermId, list[TermId]]
        Ordered children of every term (terms missing from the mapping are
        leaves).

    Returns
    -------
    NestedSetModel
        The nested set parameters of every term of the tree.

    Examples
    --------
    >>> model = number_nested_sets("P", {"P": ["S1", "S2"]})
    >>> model["P"]
    {'left': 1, 'right': 6, 'level': 0}
    >>> model["S1"], model["S2"]
    ({'left': 2, 'right': 3, 'level': 1}, {'left': 4, 'right': 5, 'level': 1})
    """
    model: NestedSetModel = {}
    counter = 1
    model[root] = {"left": counter, "right": 0, "level": 0}

    # Each stack item is a term with an iterator over its unvisited children.
    stack = [(root, iter(children.get(root, [])))]
    while len(stack) > 0:
        term, remaining = stack[-1]
        child = next(remaining, None)
        if child is None:
            counter += 1
            model[term]["right"] = counter
            stack.pop()
            continue

        counter += 1
        model[child] = {"left": counter, "right": 0, "level": len(stack)}
        stack.append((child, iter(children.get(child, []))))

    return model


def build_nested_set_model(
    hierarchy: TermHierarchy,
    root: TermId,
    taxon: TaxonId | None = None,
    temporal_order_fallback: bool = True,
) -> NestedSetModel:
    """
    See `StageOntology.nested_set_model` for documentation.
    """
    children = ordered_children(hierarchy, root, taxon, temporal_order_fallback)
    return number_nested_sets(root, children)


class NestedSetCache:
    """
    Nested set models indexed by `(root, taxon)`.

    A model built for a containment ancestor of a root contains the entries
    of every term below that root, so a lookup can fall back to the models
    of ancestors. The lookup order is: the exact key, then the ancestors of
    the root from the nearest to the farthest (ancestors at the same
    distance are tried by identifier).

    All accesses are guarded by a lock, and models are built under a second
    lock so that concurrent requests do not build the same model twice.
    Stored models must be treated as read-only.
    """

    __slots__ = ("models", "_lock", "_build_lock")

    def __init__(
        self, models: dict[tuple[TermId, TaxonId | None], NestedSetModel] | None = None
    ):
        self.models: dict[tuple[TermId, TaxonId | None], NestedSetModel] = (
            {} if models is None else dict(models)
        )
        self._lock = Lock()
        self._build_lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self.models)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self.models

    def snapshot(self) -> dict[tuple[TermId, TaxonId | None], NestedSetModel]:
        """
        A shallow copy of the stored models.
        """
        with self._lock:
            return dict(self.models)

    def lookup(
        self,
        hierarchy: TermHierarchy,
        root: TermId,
        taxon: TaxonId | None = None,
        include_ancestors: bool = True,
    ) -> NestedSetModel | None:
        """
        Find a stored model usable for `root` and `taxon`, or `None`.
        """
        with self._lock:
            model = self.models.get((root, taxon))
            if model is not None or not include_ancestors:
                return model

            level = sorted(hierarchy.parents_of(root))
            seen = set(level)
            while len(level) > 0:
                for ancestor in level:
                    model = self.models.get((ancestor, taxon))
                    if model is not None and root in model:
                        if DEBUG:
                            print(f"[{root}] Reusing model of ancestor `{ancestor}`.")
                        return model
                next_level: set[TermId] = set()
                for ancestor in level:
                    next_level |= hierarchy.parents_of(ancestor) - seen
                seen |= next_level
                level = sorted(next_level)
            return None

    def store(
        self, root: TermId, taxon: TaxonId | None, model: NestedSetModel
    ) -> NestedSetModel:
        """
        Store `model` unless a model already exists for `(root, taxon)`.
        Returns the stored model.
        """
        with self._lock:
            return self.models.setdefault((root, taxon), model)

    def get_or_build(
        self,
        hierarchy: TermHierarchy,
        root: TermId,
        taxon: TaxonId | None = None,
        include_ancestors: bool = True,
        temporal_order_fallback: bool = True,
    ) -> NestedSetModel:
        """
        Return a stored model (see :meth:`lookup`), or build, store and
        return a new one.
        """
        model = self.lookup(hierarchy, root, taxon, include_ancestors)
        if model is not None:
            return model
        with self._build_lock:
            # Another thread may have built it in the meantime.
            model = self.lookup(hierarchy, root, taxon, include_ancestors)
            if model is not None:
                return model
            model = build_nested_set_model(
                hierarchy, root, taxon, temporal_order_fallback
            )
            return self.store(root, taxon, model)
