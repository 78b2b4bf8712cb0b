import os

import pytest

from devstages.taxon_constraints import (
    parse_bool,
    parse_taxon_constraints,
    read_taxon_constraints,
)

ONTOLOGY_DIR = os.path.join(os.path.dirname(__file__), "ontologies")


def test_read_taxon_constraints():
    constraints = read_taxon_constraints(os.path.join(ONTOLOGY_DIR, "multi_species.tsv"))

    assert len(constraints) == 9
    assert constraints["UB:0000000"] == {9606, 10090}
    assert constraints["HS:0000001"] == {9606}
    assert constraints["MM:0000002"] == {10090}


def test_parse_taxon_constraints():
    lines = [
        "# Generated table.\n",
        "Uberon ID\t9606\t10090\n",
        "A\ttrue\t0\n",
        "// Comments can be anywhere.\n",
        "B\tY\tn\n",
        "C\tF\tfalse\n",
    ]

    assert parse_taxon_constraints(lines) == {
        "A": {9606},
        "B": {9606},
        "C": set(),
    }


def test_parse_bool():
    assert parse_bool("T")
    assert parse_bool(" TRUE ")
    assert not parse_bool("f")
    assert not parse_bool("0")
    with pytest.raises(ValueError):
        parse_bool("maybe")
    with pytest.raises(ValueError):
        parse_bool("")


def test_malformed_tables():
    with pytest.raises(ValueError):
        parse_taxon_constraints(["Uberon ID\t9606\n", "A\tmaybe\n"])
    with pytest.raises(ValueError):
        parse_taxon_constraints(["Uberon ID\t9606\n", "A\tT\n", "A\tF\n"])
    with pytest.raises(ValueError):
        parse_taxon_constraints(["Term\t9606\n", "A\tT\n"])
    with pytest.raises(ValueError):
        parse_taxon_constraints(["Uberon ID\thuman\n", "A\tT\n"])
    with pytest.raises(ValueError):
        parse_taxon_constraints(["Uberon ID\t9606\n", "A\n"])
    with pytest.raises(ValueError):
        parse_taxon_constraints([])
