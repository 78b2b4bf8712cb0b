from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Iterable, Mapping

from devstages._ordering.last_term import last_term, restrict_group
from devstages._ordering.order_siblings import order_siblings
from devstages.errors import (
    AmbiguousAncestorError,
    InvalidRangeError,
    TermNotFoundError,
)
from devstages.hierarchy import TermHierarchy
from devstages.nested_set import NestedSetCache
from devstages.obo import hierarchy_from_obo, parse_obo_file, taxonomy_from_obo
from devstages.taxon_constraints import read_taxon_constraints
from devstages.temporal import with_temporal_precedence
from devstages.types import (
    NestedSetEntry,
    NestedSetModel,
    StageOntologyConfiguration,
    StageOntologyState,
    StageRecord,
    TaxonId,
    TermId,
)

logger = logging.getLogger(__name__)


def _contains(outer: NestedSetEntry, inner: NestedSetEntry) -> bool:
    return outer["left"] < inner["left"] and inner["right"] < outer["right"]


class StageOntology:
    """
    Chronological ordering of the stages of a developmental stage ontology.

    Sibling stages are ordered using their precedence relations, then every
    subtree of the containment hierarchy can be numbered as a nested set
    model. Nested set models are computed lazily and kept for the lifetime
    of the object, so that stage range queries are cheap.

    Examples
    --------
    >>> from devstages import StageOntology, TermHierarchy
    >>> ontology = StageOntology(TermHierarchy.from_edges(
    ...     part_of=[("S1", "P"), ("S2", "P"), ("S3", "P")],
    ...     immediately_precedes=[("S1", "S2"), ("S2", "S3")],
    ... ))
    >>> ontology.order_siblings({"S3", "S1", "S2"})
    ['S1', 'S2', 'S3']
    >>> ontology.nested_set_model("P")["S2"]
    {'left': 4, 'right': 5, 'level': 1}
    >>> ontology.stage_range("S1", "S3")
    ['S1', 'S2', 'S3']
    """

    __slots__ = (
        "hierarchy",
        "models",
        "config",
    )

    def __init__(
        self,
        hierarchy: TermHierarchy,
        config: StageOntologyConfiguration | None = None,
    ):
        if config is None:
            config = StageOntology.default_config()
        self.config = config

        self.hierarchy: TermHierarchy = hierarchy
        """
        The term hierarchy (see :class:`TermHierarchy<devstages.hierarchy.TermHierarchy>`).
        """

        self.models: NestedSetCache = NestedSetCache()
        """
        The nested set models computed so far (see :class:`NestedSetCache<devstages.nested_set.NestedSetCache>`).
        """

        if self.config["debug"]:
            print(
                f"Loaded hierarchy with {len(self.hierarchy)} terms and {self.hierarchy.precedence.number_of_edges()} precedence relations."
            )

    def __getstate__(self) -> StageOntologyState:
        return {
            "containment": self.hierarchy.containment,
            "precedence": self.hierarchy.precedence,
            "taxonomy": self.hierarchy.taxonomy,
            "temporal_order": self.hierarchy.temporal_order,
            "models": self.models.snapshot(),
            "config": self.config,
        }

    def __setstate__(self, state: StageOntologyState):
        self.hierarchy = TermHierarchy(
            state["containment"],
            state["precedence"],
            state["taxonomy"],
            state["temporal_order"],
        )
        # The cache locks are not picklable, so the cache is recreated.
        self.models = NestedSetCache(state["models"])
        self.config = state["config"]

    def __len__(self) -> int:
        """
        Returns the number of terms in this `StageOntology`.
        """
        return len(self.hierarchy)

    @staticmethod
    def default_config() -> StageOntologyConfiguration:
        return {
            "debug": False,
            "temporal_order_fallback": True,
            "reuse_ancestor_models": True,
        }

    @staticmethod
    def from_obo(
        path: str,
        taxon_constraints: str | Mapping[TermId, Iterable[TaxonId]] | None = None,
        taxonomy: str | None = None,
        config: StageOntologyConfiguration | None = None,
    ) -> StageOntology:
        """
        Load a stage ontology from an OBO file.

        Parameters
        ----------
        path : str
            Path to the OBO file with the stage terms.
        taxon_constraints : str | Mapping[TermId, Iterable[TaxonId]] | None
            The taxa each term is valid in, or the path to a taxon constraint
            table (see :mod:`devstages.taxon_constraints`). Terms missing
            from the constraints are valid in every taxon.
        taxonomy : str | None
            Path to an OBO file with `NCBITaxon:` terms. If not given, the
            `NCBITaxon:` terms of the stage ontology file are used, if any.
        config : StageOntologyConfiguration | None
            An optional configuration object with internal settings
            and default values.

        Returns
        -------
        StageOntology
            The loaded stage ontology. No nested set model is computed yet.
        """
        if isinstance(taxon_constraints, str):
            taxon_constraints = read_taxon_constraints(taxon_constraints)
        taxonomy_pairs = None
        if taxonomy is not None:
            taxonomy_pairs = taxonomy_from_obo(parse_obo_file(taxonomy))

        hierarchy = hierarchy_from_obo(
            parse_obo_file(path), taxon_constraints, taxonomy_pairs
        )
        return StageOntology(hierarchy, config)

    def last_term(self, group: Iterable[TermId], taxon: TaxonId | None = None) -> TermId:
        """
        Find the member of `group` occurring last.

        The last term is the only member that no other member is preceded by.
        Direct precedence relations are tried first, and inferred relations
        (see :meth:`TermHierarchy.predecessor_closure<devstages.hierarchy.TermHierarchy.predecessor_closure>`)
        only if the direct ones do not identify a single term. Temporal
        ordering numbers are used as in :meth:`order_siblings`.

        Parameters
        ----------
        group : Iterable[TermId]
            Sibling terms.
        taxon : TaxonId | None
            If given, members that are not valid in this taxon are ignored.

        Returns
        -------
        TermId
            The last member of the group.

        Raises
        ------
        CycleError
            If every member is followed by another member.
        MissingEdgeError
            If several members are followed by no other member.
        ValueError
            If the (restricted) group is empty.
        """
        members = restrict_group(self.hierarchy, group, taxon)
        hierarchy = self.hierarchy
        if self.config["temporal_order_fallback"]:
            hierarchy = with_temporal_precedence(hierarchy, [members])
        return last_term(hierarchy, members, taxon)

    def order_siblings(
        self, group: Iterable[TermId], taxon: TaxonId | None = None
    ) -> list[TermId]:
        """
        Order a group of sibling terms chronologically.

        The group is walked backwards, starting from its last term (see
        :meth:`last_term`), and finding the predecessor of every term with
        :func:`find_predecessor<devstages._ordering.find_predecessor.find_predecessor>`.
        If the members have no precedence relation between them at all and
        `temporal_order_fallback` is enabled, relations are first inferred
        from their temporal ordering annotations (see :mod:`devstages.temporal`).

        Parameters
        ----------
        group : Iterable[TermId]
            Sibling terms that are all ordered relative to each other.
        taxon : TaxonId | None
            If given, members that are not valid in this taxon are ignored.

        Returns
        -------
        list[TermId]
            The members, from the earliest to the latest. Empty if the
            (restricted) group is empty.

        Raises
        ------
        CycleError
            If precedence relations are circular.
        MissingEdgeError
            If precedence relations are not sufficient to order the group.
        ConflictingPrecedenceError
            If a member is immediately preceded by several members.
        """
        return order_siblings(
            self.hierarchy, group, taxon, self.config["temporal_order_fallback"]
        )

    def nested_set_model(
        self,
        root: TermId,
        taxon: TaxonId | None = None,
        reuse_ancestors: bool | None = None,
    ) -> NestedSetModel:
        """
        The nested set model of the subtree of `root`.

        The subtree is first walked level by level to order the children of
        every term: children are split by taxon (see
        :func:`partition_siblings<devstages._ordering.merge.partition_siblings>`),
        each group is ordered, and groups are merged. A depth-first walk then
        assigns the nested set parameters (the root has left bound `1` and
        level `0`).

        The model is cached under `(root, taxon)`. If the model of an
        ancestor of `root` with the same taxon filter is already known, it is
        returned instead (it contains every term of the subtree of `root`,
        with levels relative to that ancestor).

        Parameters
        ----------
        root : TermId
            The root of the subtree.
        taxon : TaxonId | None
            If given, only terms valid in this taxon are numbered.
        reuse_ancestors : bool | None
            Overrides :attr:`StageOntologyConfiguration.reuse_ancestor_models<devstages.types.StageOntologyConfiguration.reuse_ancestor_models>`.

        Returns
        -------
        NestedSetModel
            The nested set model. It must not be modified.

        Raises
        ------
        TermNotFoundError
            If `root` is unknown.
        AmbiguousAncestorError
            If the containment relations below `root` do not form a tree.
        OrderingError
            If a group of siblings cannot be ordered.
        """
        if reuse_ancestors is None:
            reuse_ancestors = self.config["reuse_ancestor_models"]

        if self.config["debug"]:
            print(f"[{root}] Requested nested set model (taxon={taxon}).")

        model = self.models.get_or_build(
            self.hierarchy,
            root,
            taxon,
            include_ancestors=reuse_ancestors,
            temporal_order_fallback=self.config["temporal_order_fallback"],
        )

        if self.config["debug"]:
            print(f"[{root}] Nested set model with {len(model)} terms.")

        return model

    def stage_range(
        self,
        start: TermId,
        end: TermId,
        taxon: TaxonId | None = None,
        model: NestedSetModel | None = None,
    ) -> list[TermId]:
        """
        The stages occurring from `start` to `end`.

        The range is computed in the nested set model of the least common
        ancestor of `start` and `end`. The selected stages are those valid in
        `taxon`, with left and right bounds between the bounds of `start` and
        `end`, and that are not deeper than the deepest of `start` and `end`.
        Stages containing another selected stage are then removed, so only
        the most precise stages remain.

        If one of the two stages contains the other one, only the containing
        stage is returned (and a warning is logged).

        Parameters
        ----------
        start : TermId
            The first stage of the range.
        end : TermId
            The last stage of the range.
        taxon : TaxonId | None
            If given, only stages valid in this taxon are returned.
        model : NestedSetModel | None
            A nested set model to use instead of the model of the least common
            ancestor. It must contain both `start` and `end`.

        Returns
        -------
        list[TermId]
            The stages, in chronological order.

        Raises
        ------
        TermNotFoundError
            If `start` or `end` is unknown or not valid in `taxon`.
        AmbiguousAncestorError
            If `start` and `end` do not have exactly one least common
            ancestor.
        InvalidRangeError
            If `start` occurs after `end`.
        """
        for term in (start, end):
            if term not in self.hierarchy:
                raise TermNotFoundError(term)
            if not self.hierarchy.is_valid_in(term, taxon):
                raise TermNotFoundError(term, taxon)

        if start == end:
            return [start]

        if model is None:
            ancestors = self.hierarchy.least_common_ancestors(start, end)
            if len(ancestors) != 1:
                raise AmbiguousAncestorError(
                    f"Stages `{start}` and `{end}` have {len(ancestors)} least common ancestors: {sorted(ancestors)}."
                )
            model = self.nested_set_model(ancestors.pop(), taxon)

        for term in (start, end):
            if term not in model:
                raise TermNotFoundError(term, taxon)
        start_entry = model[start]
        end_entry = model[end]

        if _contains(start_entry, end_entry) or _contains(end_entry, start_entry):
            parent = start if _contains(start_entry, end_entry) else end
            logger.warning(
                "Stages `%s` and `%s` are related by containment, only `%s` is returned.",
                start,
                end,
                parent,
            )
            return [parent]

        if start_entry["left"] > end_entry["left"]:
            raise InvalidRangeError(start, end)

        max_level = max(start_entry["level"], end_entry["level"])
        selected = [
            term
            for term, entry in model.items()
            if start_entry["left"] <= entry["left"] <= end_entry["left"]
            and start_entry["right"] <= entry["right"] <= end_entry["right"]
            and entry["level"] <= max_level
            and term in self.hierarchy
            and self.hierarchy.is_valid_in(term, taxon)
        ]
        selected.sort(key=lambda t: model[t]["left"])

        # Descendants directly follow their ancestors in left bound order, so
        # a term contains another selected term iff it contains the next one.
        result: list[TermId] = []
        for i, term in enumerate(selected):
            if i + 1 < len(selected) and _contains(model[term], model[selected[i + 1]]):
                continue
            result.append(term)

        if self.config["debug"]:
            print(f"Range from `{start}` to `{end}` (taxon={taxon}): {result}")

        return result

    def stage_records(
        self, root: TermId, taxa: Iterable[TaxonId] | None = None
    ) -> list[StageRecord]:
        """
        Describe every stage below `root` as a :class:`StageRecord<devstages.types.StageRecord>`.

        The nested set model of `root` is computed without taxon filter (and
        without reusing ancestor models, so that levels are relative to
        `root`). If `taxa` is given, stages that exist in none of them are
        left out, and the `taxa` field of every record lists the requested
        taxa the stage exists in (or is `None` if it exists in all of them).

        Parameters
        ----------
        root : TermId
            The root stage, usually the whole life cycle.
        taxa : Iterable[TaxonId] | None
            The taxa of interest, or `None` to keep every stage.

        Returns
        -------
        list[StageRecord]
            The records, sorted by left bound.
        """
        model = self.nested_set_model(root, None, reuse_ancestors=False)
        requested = None if taxa is None else sorted(set(taxa))

        records: list[StageRecord] = []
        for term in sorted(model, key=lambda t: model[t]["left"]):
            valid_in = None
            if requested is not None:
                valid_in = [t for t in requested if self.hierarchy.is_valid_in(term, t)]
                if len(valid_in) == 0:
                    continue
                if len(valid_in) == len(requested):
                    valid_in = None
            entry = model[term]
            records.append(
                {
                    "stage_id": term,
                    "name": self.hierarchy.label(term),
                    "left": entry["left"],
                    "right": entry["right"],
                    "level": entry["level"],
                    "taxa": valid_in,
                }
            )
        return records
