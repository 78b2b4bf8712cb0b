from __future__ import annotations

from typing import Callable, Literal, TypeAlias, TypedDict

import networkx as nx  # type: ignore

TermId: TypeAlias = str
"""Type alias for `str`. An OBO-like identifier of an ontology term, e.g. `UBERON:0000068`."""
TaxonId: TypeAlias = int
"""Type alias for `int`. An NCBI taxonomy identifier, e.g. `9606`."""
PrecedenceKind: TypeAlias = Literal["precedes", "immediately_precedes"]
"""Type alias for the two supported precedence relations."""
PrecedenceEdge: TypeAlias = tuple[TermId, PrecedenceKind]
"""Type alias for `tuple[TermId, PrecedenceKind]`. The other end of a precedence edge, with its kind."""
PartitionKey: TypeAlias = TaxonId | None
"""
Type alias for `TaxonId | None`. The taxon-partition of a term among its
siblings: the single taxon it is valid in, or `None` for terms that are
valid in several taxa (or unconstrained).
"""


class NestedSetEntry(TypedDict):
    """
    A `TypedDict` storing the nested set parameters of one term.

    Returned as values of a :data:`NestedSetModel`.
    """

    left: int
    """
    Left bound of the term interval. Assigned on pre-visit during the
    depth-first walk, so it also gives the chronological order of terms.
    """

    right: int
    """
    Right bound of the term interval. Always greater than `left`, and greater
    than the right bound of every descendant.
    """

    level: int
    """
    Depth of the term below the root the model was built from (the root has
    level `0`).
    """


NestedSetModel: TypeAlias = dict[TermId, NestedSetEntry]
"""
Type alias for `dict[TermId, NestedSetEntry]`. Maps every term reachable
from a root (and valid for a taxon filter) to its nested set parameters.
"""


class TermData(TypedDict):
    """
    A `TypedDict` class that stores the data of a term in a
    :class:`TermHierarchy<devstages.hierarchy.TermHierarchy>`.

    However, this class is not directly used at runtime, and only exists for static type-checking.
    Instead, at runtime, an untyped dictionary is used because that is what is returned by `networkx.DiGraph.nodes(data=True)`.
    """

    label: str
    """
    The human readable name of the term.
    """

    comment: str | None
    """
    Free-text comment of the term. FBdv stores temporal ordering numbers
    in these comments.
    """

    taxa: frozenset[TaxonId] | None
    """
    The taxa in which the term is valid. `None` if the term is unconstrained
    (valid everywhere). An empty set means the term exists in no taxon.
    """


class StageRecord(TypedDict):
    """
    One row describing a developmental stage, ready to be persisted
    (see :meth:`StageOntology.stage_records<devstages.StageOntology.stage_records>`).
    """

    stage_id: TermId
    name: str
    left: int
    right: int
    level: int
    taxa: list[TaxonId] | None
    """
    The requested taxa the stage exists in, or `None` if it exists in all of them.
    """


class StageOntologyState(TypedDict):
    """
    A `TypedDict` class that stores the state of a stage ontology (see :class:`devstages.StageOntology`).
    """

    containment: nx.DiGraph
    """
    The containment graph of the underlying hierarchy (child -> parent edges).
    """

    precedence: nx.DiGraph
    """
    The precedence graph of the underlying hierarchy (earlier -> later edges).
    """

    taxonomy: nx.DiGraph | None
    """
    The taxonomy graph (taxon -> parent taxon edges), if any.
    """

    temporal_order: Callable[[str | None], int | None]
    """
    The temporal ordering number extractor of the hierarchy. It must be
    picklable (i.e. a module level function).
    """

    models: dict[tuple[TermId, TaxonId | None], NestedSetModel]
    """
    Nested set models computed so far, keyed by `(root, taxon)`.
    """

    config: StageOntologyConfiguration
    """
    "Global" configuration of the stage ontology.
    """


class StageOntologyConfiguration(TypedDict):
    """
    Describes the configuration options of a `StageOntology`.

    Use :meth:`StageOntology.default_config` to create a
    configuration dictionary pre-populated with default values.
    """

    debug: bool
    """
    If `True`, the `StageOntology` will print messages
    describing the progress of the running operations.

    [Default: False]
    """

    temporal_order_fallback: bool
    """
    If `True`, sibling terms without any precedence relation between them are
    ordered using their temporal ordering annotation (see
    :mod:`devstages.temporal`), when they carry one.

    [Default: True]
    """

    reuse_ancestor_models: bool
    """
    If `True`, a nested set model computed for a containment ancestor of the
    requested root (with the same taxon filter) is returned instead of
    computing a new one. The ancestor model contains every entry of the
    smaller one, but levels are relative to the ancestor.

    [Default: True]
    """
