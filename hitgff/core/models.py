from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple, List
import xml.etree.ElementTree as ET

from hitgff.core.errors import ParseError
from hitgff.core.evalue import EValue


class Axis(Enum):
    """Which sequence of a hit positions are read from."""
    QUERY = "query"
    SUBJECT = "subject"

    @property
    def other(self) -> 'Axis':
        return Axis.SUBJECT if self is Axis.QUERY else Axis.QUERY


TABULAR_COLUMNS = 12


@dataclass(frozen=True)
class HitRecord:
    """
    One local alignment (HSP) between a query and a subject sequence.

    Coordinates are 1-based and either endpoint may be the larger one; the
    orientation on each sequence is derived from ``end > start``. Fields that
    the originating format does not report are left as ``None``.
    """
    query: str
    subject: str
    query_start: int
    query_end: int
    subject_start: int
    subject_end: int
    e_value: EValue
    bit_score: float

    # Tabular only
    percentage_identity: Optional[float] = None
    mismatches: Optional[int] = None
    gap_openings: Optional[int] = None

    # Tabular and XML
    alignment_length: Optional[int] = None

    # XML only
    query_frame: Optional[int] = None
    subject_frame: Optional[int] = None
    identities: Optional[int] = None
    positives: Optional[int] = None
    gaps: Optional[int] = None
    query_sequence: Optional[str] = None
    subject_sequence: Optional[str] = None
    midline: Optional[str] = None

    @classmethod
    def from_tabular(cls, row: Sequence[str]) -> 'HitRecord':
        """
        Build a hit from the twelve columns of BLAST tabular output.

        Args:
            row: qseqid, sseqid, pident, length, mismatch, gapopen,
                 qstart, qend, sstart, send, evalue, bitscore

        Raises:
            ParseError: If the row is short or a numeric column does not convert
        """
        if len(row) < TABULAR_COLUMNS:
            raise ParseError(f"Expected {TABULAR_COLUMNS} columns, found {len(row)}")

        try:
            return cls(
                query=row[0],
                subject=row[1],
                percentage_identity=float(row[2]),
                alignment_length=int(row[3]),
                mismatches=int(row[4]),
                gap_openings=int(row[5]),
                query_start=int(row[6]),
                query_end=int(row[7]),
                subject_start=int(row[8]),
                subject_end=int(row[9]),
                e_value=EValue(row[10]),
                bit_score=float(row[11]),
            )
        except ValueError as e:
            raise ParseError(f"Invalid numeric field in row {list(row)!r}: {e}") from e

    @classmethod
    def from_xml(cls, query: str, subject: str, hsp: ET.Element) -> 'HitRecord':
        """
        Build a hit from a BLAST XML ``Hsp`` element.

        Args:
            query: Query identifier taken from the enclosing Iteration
            subject: Subject identifier taken from the enclosing Hit
            hsp: The ``Hsp`` element

        Raises:
            ParseError: If a coordinate or score is missing or does not convert
        """
        def text(tag: str) -> Optional[str]:
            node = hsp.find(tag)
            if node is None or node.text is None:
                return None
            return node.text.strip()

        def required(tag: str) -> str:
            value = text(tag)
            if value is None:
                raise ParseError(f"Hsp for {query} vs {subject} is missing <{tag}>")
            return value

        def optional_int(tag: str) -> Optional[int]:
            value = text(tag)
            return int(value) if value is not None else None

        try:
            return cls(
                query=query,
                subject=subject,
                bit_score=float(required("Hsp_bit-score")),
                e_value=EValue(required("Hsp_evalue")),
                query_start=int(required("Hsp_query-from")),
                query_end=int(required("Hsp_query-to")),
                subject_start=int(required("Hsp_hit-from")),
                subject_end=int(required("Hsp_hit-to")),
                query_frame=optional_int("Hsp_query-frame"),
                subject_frame=optional_int("Hsp_hit-frame"),
                identities=optional_int("Hsp_identity"),
                positives=optional_int("Hsp_positive"),
                gaps=optional_int("Hsp_gaps"),
                alignment_length=optional_int("Hsp_align-len"),
                query_sequence=text("Hsp_qseq"),
                subject_sequence=text("Hsp_hseq"),
                midline=text("Hsp_midline"),
            )
        except ValueError as e:
            if isinstance(e, ParseError):
                raise
            raise ParseError(f"Invalid numeric field in Hsp for {query} vs {subject}: {e}") from e

    def coordinates(self, on: Axis = Axis.SUBJECT) -> Tuple[int, int]:
        """Start and end on the given sequence, as reported."""
        if on is Axis.QUERY:
            return self.query_start, self.query_end
        return self.subject_start, self.subject_end

    def span(self, on: Axis = Axis.SUBJECT) -> Tuple[int, int]:
        """Lowest and highest position on the given sequence."""
        start, end = self.coordinates(on)
        return (start, end) if start <= end else (end, start)

    def is_forward(self, on: Axis = Axis.SUBJECT) -> bool:
        start, end = self.coordinates(on)
        return end > start

    def length(self, on: Axis = Axis.SUBJECT) -> int:
        low, high = self.span(on)
        return high - low + 1

    def transpose(self) -> 'HitRecord':
        """Return a copy with the query and subject roles interchanged."""
        return replace(
            self,
            query=self.subject,
            subject=self.query,
            query_start=self.subject_start,
            query_end=self.subject_end,
            subject_start=self.query_start,
            subject_end=self.query_end,
            query_frame=self.subject_frame,
            subject_frame=self.query_frame,
            query_sequence=self.subject_sequence,
            subject_sequence=self.query_sequence,
        )


# A cluster is an ordered, non-empty run of hits from one (query, subject, strand) group.
Cluster = List[HitRecord]
