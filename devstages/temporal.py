"""
Ordering of terms by their temporal ordering annotation.

Some stage ontologies (notably FBdv) do not provide precedence relations
between sibling stages. Instead, each stage has a comment of the form
`Temporal ordering number - 42`. When a group of siblings has no precedence
relation at all, these numbers are used to infer them.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Iterable

    from devstages.hierarchy import TermHierarchy
    from devstages.types import PrecedenceKind, TermId

TEMPORAL_COMMENT_PATTERN = re.compile(r".*?Temporal ordering number - ([0-9]+?)\D*?")
"""
The pattern a whole comment must match to carry a temporal ordering number
(captured by the first group).
"""


def temporal_order_from_comment(comment: str | None) -> int | None:
    """
    Extract the temporal ordering number from a term comment.

    Parameters
    ----------
    comment : str | None
        The comment of a term.

    Returns
    -------
    int | None
        The ordering number, or `None` if the comment does not carry one.

    Examples
    --------
    >>> temporal_order_from_comment("Temporal ordering number - 12")
    12
    >>> temporal_order_from_comment("Stage 3. Temporal ordering number - 7.")
    7
    >>> temporal_order_from_comment("No ordering here.") is None
    True
    """
    if comment is None or len(comment.strip()) == 0:
        return None
    match = TEMPORAL_COMMENT_PATTERN.fullmatch(comment)
    if match is None:
        return None
    return int(match.group(1))


def temporal_precedence_edges(
    hierarchy: TermHierarchy, group: Iterable[TermId]
) -> list[tuple[TermId, TermId, PrecedenceKind]]:
    """
    Infer `precedes` relations between the terms of a group from their
    temporal ordering annotations.

    Relations are only inferred when there is no direct precedence relation
    between any two members of the group. Annotated terms are sorted by their
    ordering number and each one is said to precede the next one. Terms
    without annotation are ignored.

    Parameters
    ----------
    hierarchy : TermHierarchy
        The hierarchy providing precedence relations and annotations.
    group : Iterable[TermId]
        The terms to order.

    Returns
    -------
    list[tuple[TermId, TermId, PrecedenceKind]]
        `(earlier, later, "precedes")` triples. Empty if the group already has
        precedence relations or fewer than two annotated terms.
    """
    members = set(group)
    for term in members:
        for later, _ in hierarchy.precedence_edges_from(term):
            if later in members:
                return []

    annotated: list[tuple[int, TermId]] = []
    for term in members:
        order = hierarchy.temporal_order_annotation(term)
        if order is not None:
            annotated.append((order, term))
    annotated.sort()

    return [
        (earlier, later, "precedes")
        for (_, earlier), (_, later) in zip(annotated, annotated[1:])
    ]


def with_temporal_precedence(
    hierarchy: TermHierarchy, groups: Iterable[Iterable[TermId]]
) -> TermHierarchy:
    """
    The hierarchy extended with the relations inferred by
    :func:`temporal_precedence_edges` for each of the `groups`, all in one
    new snapshot (or `hierarchy` itself if nothing is inferred).

    Examples
    --------
    >>> from devstages.hierarchy import TermHierarchy
    >>> h = TermHierarchy.from_edges(
    ...     part_of=[("A", "P"), ("B", "P"), ("A1", "A"), ("A2", "A")],
    ...     comments={
    ...         "A": "Temporal ordering number - 2",
    ...         "B": "Temporal ordering number - 1",
    ...         "A1": "Temporal ordering number - 4",
    ...         "A2": "Temporal ordering number - 3",
    ...     },
    ... )
    >>> extended = with_temporal_precedence(h, [{"A", "B"}, {"A1", "A2"}])
    >>> sorted(extended.predecessor_edges("A")), sorted(extended.predecessor_edges("A1"))
    ([('B', 'precedes')], [('A2', 'precedes')])
    >>> with_temporal_precedence(h, [{"A1"}]) is h
    True
    """
    inferred = [
        edge for group in groups for edge in temporal_precedence_edges(hierarchy, group)
    ]
    if len(inferred) == 0:
        return hierarchy
    return hierarchy.with_precedence_edges(inferred)
