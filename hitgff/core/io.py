import logging
import os
import xml.etree.ElementTree as ET
from collections import OrderedDict
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from hitgff.alignment.clustering import DEFAULT_ALIGNMENT_ERROR, cluster_hits
from hitgff.core.errors import ParseError
from hitgff.core.evalue import EValue
from hitgff.core.models import Axis, Cluster, HitRecord

logger = logging.getLogger(__name__)

NO_DEFINITION = "No definition line"


class HitFormat(Enum):
    """Supported alignment result formats."""
    TABULAR = "tabular"  # BLAST -outfmt 6/7
    XML = "xml"          # BLAST -outfmt 5

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            name = value.lower()
            if name == "tree":
                return cls.XML
            for member in cls:
                if member.value == name:
                    return member
        return None


class AlignmentReader:
    """
    Streams alignment hits out of a BLAST result file.

    Iteration is lazy and forward-only; every pass reopens the file and the
    handle is closed when the pass ends, whether it completes or fails.
    """

    def __init__(self, path: Union[str, Path], fmt: Union[HitFormat, str] = HitFormat.TABULAR,
                 max_e_value: Optional[Union[EValue, float, str]] = None):
        """
        Args:
            path: Path to the alignment file
            fmt: Format of the file
            max_e_value: If set, ``each_query`` and the grouping helpers drop
                         hits with a larger e-value

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        self.path = Path(path)
        self.format = HitFormat(fmt)
        self.max_e_value = EValue(max_e_value) if max_e_value is not None else None

        if not os.path.exists(self.path):
            raise FileNotFoundError(f"Alignment file not found: {self.path}")

    def __iter__(self) -> Iterator[HitRecord]:
        return self.each()

    def each(self) -> Iterator[HitRecord]:
        """Yield every hit in file order."""
        logger.info(f"Reading {self.format.value} alignments from {self.path}")
        if self.format is HitFormat.XML:
            return self._each_xml()
        return self._each_tabular()

    def _each_tabular(self) -> Iterator[HitRecord]:
        with open(self.path, 'r') as f:
            for line_number, line in enumerate(f, start=1):
                if line.startswith('#') or not line.strip():
                    continue
                row = [field.strip() for field in line.rstrip('\n').split('\t')]
                try:
                    yield HitRecord.from_tabular(row)
                except ParseError as e:
                    raise ParseError(str(e), source=self.path, line_number=line_number) from e

    def _each_xml(self) -> Iterator[HitRecord]:
        with open(self.path, 'rb') as f:
            # Open elements, outermost first
            path: List[ET.Element] = []
            try:
                for event, element in ET.iterparse(f, events=("start", "end")):
                    if event == "start":
                        path.append(element)
                        continue
                    path.pop()
                    if element.tag != "Iteration":
                        continue
                    query = self._query_id(element)
                    for hit in element.iter("Hit"):
                        subject = self._subject_id(hit)
                        for hsp in hit.iter("Hsp"):
                            try:
                                yield HitRecord.from_xml(query, subject, hsp)
                            except ParseError as e:
                                raise ParseError(str(e), source=self.path) from e
                    # Detach the finished iteration so the tree stays one iteration deep
                    element.clear()
                    if path:
                        path[-1].remove(element)
            except ET.ParseError as e:
                raise ParseError(f"Malformed XML: {e}", source=self.path) from e

    @staticmethod
    def _first_token(element: ET.Element, tag: str) -> Optional[str]:
        node = element.find(tag)
        if node is None or not node.text or not node.text.strip():
            return None
        return node.text.split()[0]

    def _query_id(self, iteration: ET.Element) -> str:
        definition = iteration.find("Iteration_query-def")
        query = None
        if definition is not None and definition.text and definition.text.strip() != NO_DEFINITION:
            query = definition.text.split()[0]
        if query is None:
            query = self._first_token(iteration, "Iteration_query-ID")
        if query is None:
            raise ParseError("Iteration without a query identifier", source=self.path)
        return query

    def _subject_id(self, hit: ET.Element) -> str:
        definition = hit.find("Hit_def")
        if definition is not None and definition.text and definition.text.strip() != NO_DEFINITION:
            return definition.text.split()[0]
        subject = self._first_token(hit, "Hit_id")
        if subject is None:
            raise ParseError("Hit without a subject identifier", source=self.path)
        return subject

    def accepts(self, hit: HitRecord) -> bool:
        """Whether the hit passes the ``max_e_value`` filter."""
        return self.max_e_value is None or hit.e_value <= self.max_e_value

    def each_query(self) -> Iterator[Tuple[str, List[HitRecord]]]:
        """
        Group consecutive hits that share a query.

        The file is assumed to be ordered by query: hits of one query that are
        separated by another query's hits are yielded as separate groups.

        Yields:
            (query id, hits) tuples
        """
        current_query = None
        current_hits: List[HitRecord] = []

        for hit in self.each():
            if not self.accepts(hit):
                continue
            if hit.query == current_query:
                current_hits.append(hit)
            else:
                if current_query is not None:
                    yield current_query, current_hits
                current_query, current_hits = hit.query, [hit]

        if current_query is not None:
            yield current_query, current_hits

    def each_cluster(self, axis: Axis = Axis.SUBJECT, cutoff: Optional[float] = None,
                     alignment_error: int = DEFAULT_ALIGNMENT_ERROR) -> Iterator[Tuple[str, str, Cluster]]:
        """
        Yield hit clusters for every query.

        Yields:
            (query id, subject id, cluster) tuples
        """
        for query, hits in self.each_query():
            for hit_cluster in cluster_hits(hits, axis=axis, cutoff=cutoff, alignment_error=alignment_error):
                yield query, hit_cluster[0].subject, hit_cluster

    def hits(self, sort: bool = False, transpose: bool = False) -> List[HitRecord]:
        """
        Return all hits in the file.

        Args:
            sort: Order by decreasing bit score
            transpose: Interchange the query and subject of every hit
        """
        hits = [hit for hit in self.each() if self.accepts(hit)]
        if transpose:
            hits = [hit.transpose() for hit in hits]
        if sort:
            hits.sort(key=lambda hit: hit.bit_score, reverse=True)
        return hits

    def aggregate(self) -> Dict[str, Dict[str, List[HitRecord]]]:
        """Return hits keyed by query and then by subject."""
        aggregated: Dict[str, Dict[str, List[HitRecord]]] = OrderedDict()
        for hit in self.each():
            if not self.accepts(hit):
                continue
            aggregated.setdefault(hit.query, OrderedDict()).setdefault(hit.subject, []).append(hit)
        return aggregated

    def clustered_hits(self, axis: Axis = Axis.SUBJECT, sort: bool = False, transpose: bool = False,
                       cutoff: Optional[float] = None,
                       alignment_error: int = DEFAULT_ALIGNMENT_ERROR) -> Dict[str, Dict[str, List[Cluster]]]:
        """
        Return clusters keyed by query and then by subject.

        Args:
            axis: Sequence whose positions decide proximity
            sort: Order subjects, and clusters within a subject, by their best bit score
            transpose: Interchange the query and subject of every clustered hit
            cutoff: Explicit clustering cutoff
            alignment_error: Contiguity tolerance

        Returns:
            Nested dictionary of clusters
        """
        result: Dict[str, Dict[str, List[Cluster]]] = OrderedDict()
        for query, subject, hit_cluster in self.each_cluster(axis, cutoff, alignment_error):
            if transpose:
                hit_cluster = [hit.transpose() for hit in hit_cluster]
            result.setdefault(query, OrderedDict()).setdefault(subject, []).append(hit_cluster)

        if not sort:
            return result

        def best(hit_cluster: Cluster) -> float:
            return max(hit.bit_score for hit in hit_cluster)

        sorted_result: Dict[str, Dict[str, List[Cluster]]] = OrderedDict()
        for query, subjects in result.items():
            ordered = sorted(subjects.items(), key=lambda item: -max(best(c) for c in item[1]))
            sorted_result[query] = OrderedDict(
                (subject, sorted(clusters, key=best, reverse=True)) for subject, clusters in ordered
            )
        return sorted_result
