# type: ignore
import os

# The purpose of this file is to detect tests with `ontology_file` as input and
# then supply these tests with the OBO ontologies in `tests/ontologies`. The
# selection can be narrowed using `--ontology`, which only keeps files whose
# name contains the given string.

# Every ontology in that directory must be fully orderable. An ontology can
# come with a taxon constraint table of the same name (`.tsv` extension).

ONTOLOGY_DIR = os.path.join(os.path.dirname(__file__), "tests", "ontologies")


def pytest_addoption(parser):
    parser.addoption(
        "--ontology",
        action="store",
        default="",
        help="Only check ontologies whose file name contains this string.",
    )


def pytest_generate_tests(metafunc):
    if "ontology_file" in metafunc.fixturenames:
        selection = metafunc.config.getoption("ontology")
        ontologies = []
        for ontology in sorted(os.listdir(ONTOLOGY_DIR)):
            if not ontology.endswith(".obo"):
                # Taxon constraint tables live in the same directory.
                continue
            if selection not in ontology:
                continue
            ontologies.append(os.path.join(ONTOLOGY_DIR, ontology))
        metafunc.parametrize("ontology_file", ontologies)
