"""
HitGFF: sequence alignment hits to GFF3 match annotations.
"""

__version__ = "0.1.0"

from .core.errors import HitGFFError, ParseError, ValidationError
from .core.evalue import EValue
from .core.models import Axis, HitRecord
from .core.io import AlignmentReader, HitFormat
from .alignment.clustering import cluster, cluster_hits
from .gff.feature import Feature, Region, compare
from .gff.builder import FeatureTreeBuilder, read_features
from .gff.writer import GFFWriter
from .pipeline import HitAnnotator

__all__ = [
    "HitGFFError",
    "ParseError",
    "ValidationError",
    "EValue",
    "Axis",
    "HitRecord",
    "AlignmentReader",
    "HitFormat",
    "cluster",
    "cluster_hits",
    "Feature",
    "Region",
    "compare",
    "FeatureTreeBuilder",
    "read_features",
    "GFFWriter",
    "HitAnnotator",
]
