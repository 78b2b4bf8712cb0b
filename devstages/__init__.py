from devstages.hierarchy import TermHierarchy
from devstages.stage_ontology import StageOntology

__all__ = ["StageOntology", "TermHierarchy"]
