"""
Reader for taxon constraint tables.

A taxon constraint table is a tab-separated file with one row per term. It
has an `Uberon ID` column, an optional `Uberon name` column, and one
boolean column per taxon, named after the NCBI identifier of the taxon::

    Uberon ID	Uberon name	7955	9606
    UBERON:0000068	embryo stage	T	T
    HsapDv:0000002	Carnegie stage 01	F	T

Lines starting with `//` or `#` are comments.
"""

from __future__ import annotations

import csv
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Iterable

    from devstages.types import TaxonId, TermId

ID_COLUMN = "Uberon ID"
NAME_COLUMN = "Uberon name"

COMMENT_PREFIXES = ("//", "#")

TRUE_VALUES = {"true", "t", "1", "y", "yes"}
FALSE_VALUES = {"false", "f", "0", "n", "no"}


def parse_bool(value: str) -> bool:
    """
    Parse a boolean cell of a taxon constraint table.

    >>> parse_bool("T"), parse_bool("false")
    (True, False)
    """
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean value: `{value}`.")


def _data_lines(lines: Iterable[str]) -> Iterable[str]:
    for line in lines:
        if line.lstrip().startswith(COMMENT_PREFIXES) or len(line.strip()) == 0:
            continue
        yield line


def parse_taxon_constraints(lines: Iterable[str]) -> dict[TermId, set[TaxonId]]:
    """
    Parse the lines of a taxon constraint table.

    Parameters
    ----------
    lines : Iterable[str]
        The lines of the table, header included.

    Returns
    -------
    dict[TermId, set[TaxonId]]
        The taxa every listed term is valid in (possibly none).

    Raises
    ------
    ValueError
        If the `Uberon ID` column is missing, a term is listed twice, a
        taxon column name is not an integer, or a cell is not a boolean.
    """
    reader = csv.DictReader(_data_lines(lines), delimiter="\t")
    header = reader.fieldnames
    if header is None or ID_COLUMN not in header:
        raise ValueError(f"Missing `{ID_COLUMN}` column.")

    taxa: dict[str, TaxonId] = {}
    for column in header:
        if column in (ID_COLUMN, NAME_COLUMN):
            continue
        try:
            taxa[column] = int(column)
        except ValueError:
            raise ValueError(f"Not a taxon identifier column: `{column}`.") from None

    constraints: dict[TermId, set[TaxonId]] = {}
    for row in reader:
        term = (row[ID_COLUMN] or "").strip()
        if len(term) == 0:
            raise ValueError(f"Empty `{ID_COLUMN}` on line {reader.line_num}.")
        if term in constraints:
            raise ValueError(f"Term `{term}` is listed twice.")
        constraints[term] = {
            taxon
            for column, taxon in taxa.items()
            if parse_bool(row[column] or "")
        }
    return constraints


def read_taxon_constraints(path: str) -> dict[TermId, set[TaxonId]]:
    """
    Read a taxon constraint file (see :func:`parse_taxon_constraints`).
    """
    with open(path, newline="", encoding="utf-8") as f:
        return parse_taxon_constraints(f)
