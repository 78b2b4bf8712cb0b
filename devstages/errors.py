"""
Exceptions raised while ordering stages and querying stage ranges.

All of them describe deterministic problems with the input ontology or the
query, so none of them is worth retrying.

Hierarchy::

    StageOntologyError
      ├── OrderingError                 ── sibling terms cannot be ordered
      │     ├── CycleError                ── circular precedence relations
      │     ├── MissingEdgeError          ── not enough precedence relations
      │     └── ConflictingPrecedenceError ── several immediate predecessors
      ├── AmbiguousAncestorError        ── containment is not a tree
      ├── TermNotFoundError             ── unknown term, or excluded by taxon
      └── InvalidRangeError             ── start occurs after end
"""

from __future__ import annotations

from typing import Iterable


def _format_terms(terms: Iterable[str]) -> str:
    return ", ".join(sorted(terms))


class StageOntologyError(Exception):
    """Base exception for all errors raised by `devstages`."""

    pass


class OrderingError(StageOntologyError):
    """Raised when a group of sibling terms cannot be totally ordered."""

    def __init__(self, message: str, group: Iterable[str]):
        self.message = message
        self.group = frozenset(group)
        super().__init__(f"{message} Group: [{_format_terms(self.group)}].")

    def __reduce__(self):
        return (type(self), (self.message, self.group))


class CycleError(OrderingError):
    """Raised when the precedence relations among sibling terms are circular."""

    def __init__(self, group: Iterable[str], term: str | None = None):
        self.term = term
        if term is None:
            message = "Cycle of precedence relations, no term occurs last."
        else:
            message = f"Cycle of precedence relations going through `{term}`."
        super().__init__(message, group)

    def __reduce__(self):
        return (type(self), (self.group, self.term))


class MissingEdgeError(OrderingError):
    """Raised when precedence relations are insufficient to order sibling terms."""

    def __init__(self, group: Iterable[str], terms: Iterable[str]):
        self.terms = frozenset(terms)
        super().__init__(
            f"Missing precedence relations around: [{_format_terms(self.terms)}].",
            group,
        )

    def __reduce__(self):
        return (type(self), (self.group, self.terms))


class ConflictingPrecedenceError(OrderingError):
    """Raised when a term is immediately preceded by several terms of its group."""

    def __init__(self, group: Iterable[str], term: str, predecessors: Iterable[str]):
        self.term = term
        self.predecessors = frozenset(predecessors)
        super().__init__(
            f"Term `{term}` is immediately preceded by several terms: "
            f"[{_format_terms(self.predecessors)}].",
            group,
        )

    def __reduce__(self):
        return (type(self), (self.group, self.term, self.predecessors))


class AmbiguousAncestorError(StageOntologyError):
    """Raised when the containment relations do not form a tree."""

    pass


class TermNotFoundError(StageOntologyError, KeyError):
    """Raised when a term is unknown, or not valid for the requested taxon."""

    def __init__(self, term: str, taxon: int | None = None):
        self.term = term
        self.taxon = taxon
        if taxon is None:
            message = f"Unknown term: `{term}`."
        else:
            message = f"Term `{term}` does not exist in taxon {taxon}."
        super().__init__(message)

    def __str__(self) -> str:
        # `KeyError` would quote the message otherwise.
        return str(self.args[0])

    def __reduce__(self):
        return (type(self), (self.term, self.taxon))


class InvalidRangeError(StageOntologyError, ValueError):
    """Raised when the start of a stage range occurs after its end."""

    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"Start stage `{start}` occurs after end stage `{end}`.")

    def __reduce__(self):
        return (type(self), (self.start, self.end))
