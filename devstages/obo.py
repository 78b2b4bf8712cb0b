"""
Minimal reader for developmental stage ontologies in OBO format.

Only `[Term]` stanzas are read, and only the tags the stage ordering engine
needs: `id`, `name`, `comment`, `is_a`, `relationship` and `is_obsolete`.
Relations can be given by name (`part_of`) or by identifier (`BFO:0000050`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Callable, Iterable, Mapping

    from devstages.types import TaxonId, TermId

from devstages.hierarchy import TermHierarchy

PART_OF = {"part_of", "BFO:0000050"}
PRECEDED_BY = {"preceded_by", "BFO:0000062"}
IMMEDIATELY_PRECEDED_BY = {"immediately_preceded_by", "RO:0002087"}
PRECEDES = {"precedes", "BFO:0000063"}
IMMEDIATELY_PRECEDES = {"immediately_precedes", "RO:0002090"}

TAXON_PREFIX = "NCBITaxon:"


@dataclass
class OboTerm:
    """A `[Term]` stanza of an OBO file."""

    term_id: TermId
    name: str = ""
    comment: str | None = None
    obsolete: bool = False
    parents: list[TermId] = field(default_factory=list)
    """Targets of `is_a` tags."""
    relationships: list[tuple[str, TermId]] = field(default_factory=list)
    """`(relation, target)` pairs of `relationship` tags."""


def _tag_value(value: str) -> str:
    # Drop the trailing `! label` comment and `{...}` qualifiers.
    if " !" in value:
        value = value.split(" !", 1)[0]
    if " {" in value:
        value = value.split(" {", 1)[0]
    return value.strip()


def parse_obo(text: str) -> list[OboTerm]:
    """
    Parse the `[Term]` stanzas of an OBO document.

    Parameters
    ----------
    text : str
        The content of an OBO file.

    Returns
    -------
    list[OboTerm]
        The terms, in file order (obsolete terms included).

    Raises
    ------
    ValueError
        If a `[Term]` stanza has no `id` tag.

    Examples
    --------
    >>> terms = parse_obo(\"""
    ... [Term]
    ... id: S:2
    ... name: second stage
    ... relationship: part_of S:0 ! life cycle
    ... relationship: preceded_by S:1
    ... \""")
    >>> terms[0].term_id, terms[0].relationships
    ('S:2', [('part_of', 'S:0'), ('preceded_by', 'S:1')])
    """
    terms: list[OboTerm] = []
    current: OboTerm | None = None
    in_term = False

    def close_stanza():
        if current is None and in_term:
            raise ValueError("Found a [Term] stanza without an `id` tag.")
        if current is not None:
            terms.append(current)

    for line in text.splitlines():
        line = line.strip()
        if len(line) == 0 or line.startswith("!"):
            continue

        if line.startswith("[") and line.endswith("]"):
            close_stanza()
            current = None
            in_term = line == "[Term]"
            continue

        if not in_term or ":" not in line:
            continue

        tag, value = line.split(":", 1)
        value = value.strip()
        if tag == "id":
            current = OboTerm(_tag_value(value))
            continue
        if current is None:
            raise ValueError(f"Tag `{tag}` found before the `id` of a [Term] stanza.")

        if tag == "name":
            current.name = value
        elif tag == "comment":
            current.comment = value
        elif tag == "is_obsolete":
            current.obsolete = value.lower() == "true"
        elif tag == "is_a":
            current.parents.append(_tag_value(value))
        elif tag == "relationship":
            parts = _tag_value(value).split()
            if len(parts) >= 2:
                current.relationships.append((parts[0], parts[1]))

    close_stanza()
    return terms


def parse_obo_file(path: str) -> list[OboTerm]:
    """
    Read and parse an OBO file (see :func:`parse_obo`).
    """
    with open(path, encoding="utf-8") as f:
        return parse_obo(f.read())


def taxon_id(term_id: TermId) -> TaxonId:
    """
    Convert an `NCBITaxon:` identifier to an integer taxon identifier.

    >>> taxon_id("NCBITaxon:9606")
    9606
    """
    if not term_id.startswith(TAXON_PREFIX):
        raise ValueError(f"Not a taxon identifier: `{term_id}`.")
    return int(term_id[len(TAXON_PREFIX) :])


def taxonomy_from_obo(terms: Iterable[OboTerm]) -> list[tuple[TaxonId, TaxonId]]:
    """
    The `(taxon, parent taxon)` pairs given by the `is_a` tags of
    `NCBITaxon:` terms.
    """
    pairs: list[tuple[TaxonId, TaxonId]] = []
    for term in terms:
        if term.obsolete or not term.term_id.startswith(TAXON_PREFIX):
            continue
        for parent in term.parents:
            if parent.startswith(TAXON_PREFIX):
                pairs.append((taxon_id(term.term_id), taxon_id(parent)))
    return pairs


def hierarchy_from_obo(
    terms: Iterable[OboTerm],
    taxon_constraints: Mapping[TermId, Iterable[TaxonId]] | None = None,
    taxonomy: Iterable[tuple[TaxonId, TaxonId]] | None = None,
    temporal_order: Callable[[str | None], int | None] | None = None,
) -> TermHierarchy:
    """
    Build a :class:`TermHierarchy<devstages.hierarchy.TermHierarchy>` from
    parsed OBO terms.

    `is_a` and `part_of` give containment relations. `preceded_by` and
    `immediately_preceded_by` are read backwards, so that every precedence
    relation is stored from the earlier to the later term. Obsolete terms and
    `NCBITaxon:` terms are ignored. If `taxonomy` is not given, it is taken
    from the `NCBITaxon:` terms of `terms` (when there are any).

    Parameters
    ----------
    terms : Iterable[OboTerm]
        The parsed terms (see :func:`parse_obo`).
    taxon_constraints : Mapping[TermId, Iterable[TaxonId]] | None
        The taxa each term is valid in (see
        :func:`read_taxon_constraints<devstages.taxon_constraints.read_taxon_constraints>`).
    taxonomy : Iterable[tuple[TaxonId, TaxonId]] | None
        `(taxon, parent taxon)` pairs.
    temporal_order : Callable[[str | None], int | None] | None
        See :attr:`TermHierarchy.temporal_order<devstages.hierarchy.TermHierarchy.temporal_order>`.

    Returns
    -------
    TermHierarchy
        The new hierarchy.
    """
    terms = list(terms)
    if taxonomy is None:
        taxonomy = taxonomy_from_obo(terms) or None

    stages = [
        t
        for t in terms
        if not t.obsolete and not t.term_id.startswith(TAXON_PREFIX)
    ]
    obsolete = {t.term_id for t in terms if t.obsolete}

    part_of: list[tuple[TermId, TermId]] = []
    precedes: list[tuple[TermId, TermId]] = []
    immediately_precedes: list[tuple[TermId, TermId]] = []
    for term in stages:
        for parent in term.parents:
            if parent not in obsolete:
                part_of.append((term.term_id, parent))
        for relation, target in term.relationships:
            if target in obsolete:
                continue
            if relation in PART_OF:
                part_of.append((term.term_id, target))
            elif relation in PRECEDED_BY:
                precedes.append((target, term.term_id))
            elif relation in IMMEDIATELY_PRECEDED_BY:
                immediately_precedes.append((target, term.term_id))
            elif relation in PRECEDES:
                precedes.append((term.term_id, target))
            elif relation in IMMEDIATELY_PRECEDES:
                immediately_precedes.append((term.term_id, target))

    return TermHierarchy.from_edges(
        part_of=part_of,
        precedes=precedes,
        immediately_precedes=immediately_precedes,
        terms=[t.term_id for t in stages],
        labels={t.term_id: t.name for t in stages if len(t.name) > 0},
        comments={t.term_id: t.comment for t in stages if t.comment is not None},
        taxon_constraints=taxon_constraints,
        taxonomy=taxonomy,
        temporal_order=temporal_order,
    )
