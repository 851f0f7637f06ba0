"""
Alignment hits to GFF3 annotations.

Query groups are read from an alignment file, clustered per (query, subject,
orientation), converted to match Features and written as GFF3. Clustering is
independent per query group, so groups are split into disjoint slices and
processed by a pool of worker processes when more than one thread is
configured.
"""
import logging
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from tqdm import tqdm

from hitgff.alignment.clustering import cluster_hits
from hitgff.config import Config
from hitgff.core.io import AlignmentReader, HitFormat
from hitgff.core.models import Axis, Cluster, HitRecord
from hitgff.gff.builder import read_features
from hitgff.gff.feature import Feature, sort_features
from hitgff.gff.writer import GFFWriter

logger = logging.getLogger(__name__)

# Protein hits of a translated genome (BLASTX) are located on the query,
# transcript hits against a genome on the subject.
DEFAULT_SOURCES = {Axis.QUERY: 'BLASTX', Axis.SUBJECT: 'BLASTN'}
DEFAULT_FEATURE_TYPES = {Axis.QUERY: 'match', Axis.SUBJECT: 'nucleotide_match'}


def chunk_tasks(tasks: List[Any], num_chunks: int) -> List[List[Any]]:
    """
    Divide tasks into a specified number of contiguous chunks.

    Args:
        tasks: List of tasks to divide
        num_chunks: Number of chunks to divide into

    Returns:
        Non-empty chunks whose sizes differ by at most one
    """
    if not tasks:
        return []
    num_chunks = max(1, min(num_chunks, len(tasks)))

    chunk_size, remainder = divmod(len(tasks), num_chunks)
    chunks = []
    start = 0
    for i in range(num_chunks):
        # The first 'remainder' chunks take one extra task
        end = start + chunk_size + (1 if i < remainder else 0)
        chunks.append(tasks[start:end])
        start = end
    return chunks


def cluster_to_feature(hit_cluster: Cluster, axis: Axis = Axis.SUBJECT,
                       source: Optional[str] = None, feature_type: Optional[str] = None) -> Feature:
    """
    Build a match Feature out of a cluster of hits.

    The feature sits on the sequence of the clustering axis and is named
    after the sequence on the other axis. Each hit becomes a region scored
    by its bit score, carrying its e-value and a ``Target`` attribute with
    the aligned coordinates on the other sequence.

    Args:
        hit_cluster: Non-empty cluster from a single (query, subject, orientation) group
        axis: Clustering axis
        source: GFF3 source column; defaults by axis
        feature_type: GFF3 type column; defaults by axis

    Returns:
        A Feature without an ID
    """
    first = hit_cluster[0]
    if axis is Axis.QUERY:
        seqid, target = first.query, first.subject
    else:
        seqid, target = first.subject, first.query

    feature = Feature(
        seqid,
        source or DEFAULT_SOURCES[axis],
        feature_type or DEFAULT_FEATURE_TYPES[axis],
        strand='+' if first.is_forward(axis) else '-',
        attributes={'Name': target},
    )

    for hit in hit_cluster:
        start, end = hit.span(axis)
        target_start, target_end = hit.coordinates(axis.other)
        feature.add_region(start, end, score=hit.bit_score, attributes={
            'EValue': str(hit.e_value),
            'Target': f"{target} {target_start} {target_end}",
        })

    return feature


def _annotate_groups(groups: List[List[HitRecord]], settings: Dict[str, Any]) -> List[Feature]:
    """Worker: cluster each query group and convert the clusters to Features."""
    axis = Axis(settings["cluster_on"])
    features = []
    for hits in groups:
        for hit_cluster in cluster_hits(hits, axis=axis, cutoff=settings["cutoff"],
                                        alignment_error=settings["alignment_error"]):
            features.append(cluster_to_feature(hit_cluster, axis, settings["source"], settings["feature_type"]))
    return features


class HitAnnotator:
    """Turns an alignment result file into GFF3 match annotations."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or Config()
        self.format = HitFormat(self.config.get("format"))
        self.axis = Axis(str(self.config.get("cluster_on")).lower())
        self.threads = self.config.get("threads")
        self.progress = self.config.get("progress")

    def _settings(self) -> Dict[str, Any]:
        # Plain values only; this is sent to worker processes
        return {
            "cluster_on": self.axis.value,
            "cutoff": self.config.get("cutoff"),
            "alignment_error": self.config.get("alignment_error"),
            "source": self.config.get("source"),
            "feature_type": self.config.get("feature_type"),
        }

    def annotate(self, alignment: Union[str, Path]) -> List[Feature]:
        """
        Cluster every query group of an alignment file.

        Args:
            alignment: Path to the alignment file

        Returns:
            Match features ordered by seqid, start and type

        Raises:
            FileNotFoundError: If the alignment file doesn't exist
            ParseError: If the alignment file is malformed
        """
        reader = AlignmentReader(alignment, self.format, max_e_value=self.config.get("e_value"))
        groups = [hits for _, hits in reader.each_query()]
        logger.info(f"Read {len(groups)} query groups from {alignment}")

        settings = self._settings()
        features: List[Feature] = []

        if self.threads > 1 and len(groups) > 1:
            chunks = chunk_tasks(groups, self.threads)
            logger.info(f"Clustering {len(groups)} query groups in {len(chunks)} worker processes")
            with ProcessPoolExecutor(max_workers=len(chunks)) as executor:
                futures = [executor.submit(_annotate_groups, chunk, settings) for chunk in chunks]
                for future in tqdm(as_completed(futures), total=len(futures), desc="Clustering hits",
                                   unit=" slices", disable=not self.progress):
                    features.extend(future.result())
        else:
            for hits in tqdm(groups, desc="Clustering hits", unit=" queries", disable=not self.progress):
                features.extend(_annotate_groups([hits], settings))

        # Slices complete in any order
        return sort_features(features)

    def write(self, features: List[Feature], output: Union[str, Path]) -> int:
        """Write features to a GFF3 file and return how many were written."""
        with GFFWriter.open(output, id_prefix=self.config.get("id_prefix")) as writer:
            writer.write(features)
        return writer.features_written

    def run(self, alignment: Union[str, Path], output: Union[str, Path]) -> int:
        """Annotate an alignment file and write the result; returns the number of features written."""
        return self.write(self.annotate(alignment), output)


def normalize_gff(path: Union[str, Path], output: Union[str, Path], id_prefix: str = "") -> int:
    """
    Re-read a GFF3 file into Feature trees and write it back sorted.

    Features without an ID are given one.

    Returns:
        Number of features written, descendants included
    """
    features = list(read_features(path))
    logger.info(f"Read {len(features)} top-level features from {path}")
    with GFFWriter.open(output, id_prefix=id_prefix) as writer:
        writer.write(features)
    return writer.features_written
