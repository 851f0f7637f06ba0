"""
Reconstruction of Feature trees from GFF3 rows.

Rows are consumed in a single pass. A stack holds the features that are
still open, innermost last, whether they were attached as children or as
derivatives. Each row either extends one of them (as a new child, an
additional region or a derivative) or closes the current tree and starts a
new one.

The stream is expected to keep each top-level feature and its descendants
together. Rows of unrelated top-level features that are interleaved with
each other end up attached to the wrong tree or split into several trees.
"""
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Union

from hitgff.core.errors import ParseError
from hitgff.gff.attributes import AttributeValue, decode_attributes
from hitgff.gff.feature import FEATURE_ATTRIBUTES, Feature

logger = logging.getLogger(__name__)

GFF_COLUMNS = 9
FASTA_DIRECTIVE = '##FASTA'


class GFFRow(NamedTuple):
    """One line of a GFF3 file with its columns converted."""
    seqid: str
    source: str
    type: str
    start: int
    end: int
    score: Optional[float]
    strand: str
    phase: Optional[int]
    attributes: str


def parse_row(line: str, line_number: Optional[int] = None, source: Optional[Union[str, Path]] = None) -> GFFRow:
    """
    Split a GFF3 line into its nine columns.

    Raises:
        ParseError: If the line is short or a numeric column does not convert
    """
    fields = line.rstrip('\r\n').split('\t')
    if len(fields) < GFF_COLUMNS:
        raise ParseError(f"Expected {GFF_COLUMNS} columns, found {len(fields)}", source=source, line_number=line_number)

    seqid, feature_source, feature_type, start, end, score, strand, phase, attributes = fields[:GFF_COLUMNS]
    try:
        return GFFRow(
            seqid=seqid,
            source=feature_source,
            type=feature_type,
            start=int(start),
            end=int(end),
            score=None if score == '.' else float(score),
            strand=strand,
            phase=None if phase == '.' else int(phase),
            attributes=attributes,
        )
    except ValueError as e:
        raise ParseError(f"Invalid numeric column: {e}", source=source, line_number=line_number) from e


def _as_list(value: Optional[AttributeValue]) -> List[str]:
    if value is None:
        return []
    return list(value) if isinstance(value, list) else [value]


def _split_attributes(attributes: Dict[str, AttributeValue]):
    feature_attributes = {key: value for key, value in attributes.items() if key in FEATURE_ATTRIBUTES}
    region_attributes = {key: value for key, value in attributes.items() if key not in FEATURE_ATTRIBUTES}
    return feature_attributes, region_attributes


class FeatureTreeBuilder:
    """Stack based reconstruction of Feature trees from a stream of rows."""

    def __init__(self):
        self._stack: List[Feature] = []

    @property
    def open_features(self) -> List[Feature]:
        """The currently open features, outermost first."""
        return list(self._stack)

    def _create(self, row: GFFRow, attributes: Dict[str, AttributeValue]) -> Feature:
        feature_attributes, region_attributes = _split_attributes(attributes)
        return Feature(row.seqid, row.source, row.type, row.strand, attributes=feature_attributes,
                       start=row.start, end=row.end, score=row.score, phase=row.phase,
                       region_attributes=region_attributes)

    @staticmethod
    def _extend(feature: Feature, row: GFFRow, attributes: Dict[str, AttributeValue]):
        _, region_attributes = _split_attributes(attributes)
        feature.add_region(row.start, row.end, score=row.score, phase=row.phase, attributes=region_attributes)

    def feed(self, row: GFFRow) -> List[Feature]:
        """
        Consume one row.

        Args:
            row: The parsed row

        Returns:
            Top-level features closed by this row (at most one)
        """
        attributes = decode_attributes(row.attributes)
        row_id = attributes.get('ID')
        parents = _as_list(attributes.get('Parent'))
        derives_from = _as_list(attributes.get('Derives_from'))

        if row_id is None:
            logger.warning(f"{row.type} at {row.seqid}:{row.start}-{row.end} has no ID")

        for depth in range(len(self._stack) - 1, -1, -1):
            candidate = self._stack[depth]
            candidate_id = candidate.id
            if candidate_id is None:
                continue

            if candidate_id in parents:
                child = candidate.find_child(row_id)
                if child is not None:
                    self._extend(child, row, attributes)
                else:
                    child = candidate.add_feature(self._create(row, attributes))
                logger.debug(f"Attached {row_id} as a child of {candidate_id}")
                del self._stack[depth + 1:]
                self._stack.append(child)
                return []

            if row_id is not None and candidate_id == row_id:
                self._extend(candidate, row, attributes)
                del self._stack[depth + 1:]
                return []

            if candidate_id in derives_from:
                derivative = candidate.find_derivative(row_id)
                if derivative is not None:
                    self._extend(derivative, row, attributes)
                else:
                    derivative = candidate.add_derivative(self._create(row, attributes))
                logger.debug(f"Attached {row_id} as a derivative of {candidate_id}")
                del self._stack[depth + 1:]
                self._stack.append(derivative)
                return []

        if parents or derives_from:
            logger.warning(f"{row_id or row.type} references {', '.join(parents + derives_from)} "
                           f"which is not open; starting a new top-level feature")

        closed = self._stack[:1]
        self._stack = [self._create(row, attributes)]
        return closed

    def close(self) -> List[Feature]:
        """Finish the stream and return the last top-level feature, if any."""
        closed = self._stack[:1]
        self._stack = []
        return closed

    def build(self, rows: Iterable[GFFRow]) -> Iterator[Feature]:
        """Yield every top-level feature reconstructed from the rows."""
        for row in rows:
            yield from self.feed(row)
        yield from self.close()


def iter_rows(path: Union[str, Path]) -> Iterator[GFFRow]:
    """
    Yield the feature rows of a GFF3 file.

    Directives, comments and blank lines are skipped; reading stops at a
    ``##FASTA`` directive.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ParseError: On the first malformed row
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"GFF3 file not found: {path}")
    return _iter_rows(path)


def _iter_rows(path: Union[str, Path]) -> Iterator[GFFRow]:
    with open(path, 'r') as f:
        for line_number, line in enumerate(f, start=1):
            if line.startswith(FASTA_DIRECTIVE):
                break
            if line.startswith('#') or not line.strip():
                continue
            yield parse_row(line, line_number=line_number, source=path)


def read_features(path: Union[str, Path]) -> Iterator[Feature]:
    """Stream the top-level features of a GFF3 file."""
    logger.info(f"Reading features from {path}")
    return FeatureTreeBuilder().build(iter_rows(path))
