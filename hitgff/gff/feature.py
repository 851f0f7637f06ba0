"""
Hierarchical GFF3 feature model.

A Feature owns the Regions (coordinate spans) it is located by, the child
Features linked to it by ``Parent`` and the derivative Features linked to it
by ``Derives_from``.
"""
import re
from functools import cmp_to_key
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from hitgff.core.errors import ValidationError
from hitgff.gff.attributes import AttributeValue, encode_attributes

VALID_STRANDS = ('+', '-', '.', '?')
VALID_PHASES = (0, 1, 2)

# Attributes that describe the feature as a whole; all others belong to its regions
FEATURE_ATTRIBUTES = ('ID', 'Name', 'Note', 'Alias', 'Parent', 'Derives_from')
REGION_EXCLUDED_ATTRIBUTES = ('ID', 'Name')

TYPE_ORDER = (
    'exon',
    'intron',
    'CDS',
    'five_prime_UTR',
    'three_prime_UTR',
    'transcription_start_site',
    'transcription_end_site',
    'start_codon',
    'stop_codon',
)

_NUMERIC_SUFFIX = re.compile(r'^(.*?)(\d+)$')


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def compare_seqids(a: str, b: str) -> int:
    """
    Compare landmark identifiers, ordering trailing numbers numerically.

    'scaffold_9' sorts before 'scaffold_10'. Identifiers without a shared
    non-digit prefix and a trailing number compare lexically.
    """
    match_a = _NUMERIC_SUFFIX.match(a)
    match_b = _NUMERIC_SUFFIX.match(b)
    if match_a and match_b and match_a.group(1) == match_b.group(1):
        numeric = _cmp(int(match_a.group(2)), int(match_b.group(2)))
        if numeric:
            return numeric
    return _cmp(a, b)


def compare_types(a: str, b: str) -> int:
    rank_a = TYPE_ORDER.index(a) if a in TYPE_ORDER else len(TYPE_ORDER)
    rank_b = TYPE_ORDER.index(b) if b in TYPE_ORDER else len(TYPE_ORDER)
    if rank_a != rank_b:
        return _cmp(rank_a, rank_b)
    if rank_a == len(TYPE_ORDER):
        return _cmp(a, b)
    return 0


def compare(a: 'Feature', b: 'Feature') -> int:
    """Order features by seqid, then start, then type."""
    result = compare_seqids(a.seqid, b.seqid)
    if result:
        return result
    result = _cmp(a.start or 0, b.start or 0)
    if result:
        return result
    return compare_types(a.type, b.type)


feature_sort_key = cmp_to_key(compare)


def sort_features(features: Iterable['Feature']) -> List['Feature']:
    return sorted(features, key=feature_sort_key)


class Region:
    """A contiguous span of a Feature on the Feature's landmark."""

    def __init__(self, start: int, end: int, score: Optional[float] = None, phase: Optional[int] = None,
                 attributes: Optional[Mapping[str, AttributeValue]] = None):
        if phase is not None and phase not in VALID_PHASES:
            raise ValidationError(f"Invalid phase {phase!r}; expected one of {VALID_PHASES} or None")
        attributes = dict(attributes or {})
        excluded = [key for key in REGION_EXCLUDED_ATTRIBUTES if key in attributes]
        if excluded:
            raise ValidationError(f"Region attributes may not include {', '.join(excluded)}")

        self.start, self.end = (start, end) if start <= end else (end, start)
        self.score = score
        self.phase = phase
        self.attributes: Dict[str, AttributeValue] = attributes

    def __lt__(self, other: 'Region') -> bool:
        return self.start < other.start

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __repr__(self) -> str:
        return f"Region({self.start}, {self.end}, score={self.score!r}, phase={self.phase!r})"


class Feature:
    """
    A genomic annotation made of one or more Regions.

    Attributes on the feature itself are limited to FEATURE_ATTRIBUTES;
    everything else is carried by the individual regions.
    """

    def __init__(self, seqid: str, source: str, type: str, strand: str = '.',
                 attributes: Optional[Mapping[str, AttributeValue]] = None,
                 start: Optional[int] = None, end: Optional[int] = None,
                 score: Optional[float] = None, phase: Optional[int] = None,
                 region_attributes: Optional[Mapping[str, AttributeValue]] = None):
        for name, value in (('seqid', seqid), ('source', source), ('type', type)):
            if not value:
                raise ValidationError(f"Missing attribute {name}")

        attributes = dict(attributes or {})
        unsupported = [key for key in attributes if key not in FEATURE_ATTRIBUTES]
        if unsupported:
            raise ValidationError(f"Unsupported feature attributes: {', '.join(unsupported)}")

        self.seqid = seqid
        self.source = source
        self.type = type
        self.strand = strand
        self.attributes: Dict[str, AttributeValue] = attributes
        self._regions: List[Region] = []
        self.features: List['Feature'] = []
        self.derivatives: List['Feature'] = []

        if start is not None and end is not None:
            self.add_region(start, end, score=score, phase=phase, attributes=region_attributes)

    @property
    def strand(self) -> str:
        return self._strand

    @strand.setter
    def strand(self, new_strand: str):
        if new_strand not in VALID_STRANDS:
            raise ValidationError(f"Invalid strand {new_strand!r}; expected one of {VALID_STRANDS}")
        self._strand = new_strand

    @property
    def id(self) -> Optional[str]:
        return self.attributes.get('ID')

    @id.setter
    def id(self, new_id: str):
        """Set the ID, rewriting references to the old ID held by children and derivatives."""
        if not isinstance(new_id, str) or not new_id:
            raise ValidationError(f"Feature ID must be a non-empty string, got {new_id!r}")

        old_id = self.id
        self.attributes['ID'] = new_id
        if old_id is None or old_id == new_id:
            return

        for child in self.features:
            child._replace_reference('Parent', old_id, new_id)
        for derivative in self.derivatives:
            derivative._replace_reference('Derives_from', old_id, new_id)

    def _replace_reference(self, key: str, old_id: str, new_id: str):
        value = self.attributes.get(key)
        if value is None:
            return
        if isinstance(value, list):
            self.attributes[key] = [new_id if item == old_id else item for item in value]
        elif value == old_id:
            self.attributes[key] = new_id

    @property
    def name(self) -> Optional[str]:
        return self.attributes.get('Name')

    @staticmethod
    def _as_list(value: Optional[AttributeValue]) -> List[str]:
        if value is None:
            return []
        return list(value) if isinstance(value, list) else [value]

    @property
    def parents(self) -> List[str]:
        return self._as_list(self.attributes.get('Parent'))

    @property
    def derives_from(self) -> List[str]:
        return self._as_list(self.attributes.get('Derives_from'))

    @property
    def regions(self) -> List[Region]:
        """Regions in increasing position."""
        return sorted(self._regions, key=lambda region: region.start)

    def add_region(self, start: int, end: int, score: Optional[float] = None, phase: Optional[int] = None,
                   attributes: Optional[Mapping[str, AttributeValue]] = None) -> Region:
        region = Region(start, end, score=score, phase=phase, attributes=attributes)
        self._regions.append(region)
        return region

    def add_feature(self, child: 'Feature') -> 'Feature':
        self.features.append(child)
        return child

    def add_derivative(self, derivative: 'Feature') -> 'Feature':
        self.derivatives.append(derivative)
        return derivative

    def find_child(self, feature_id: Optional[str]) -> Optional['Feature']:
        if feature_id is None:
            return None
        for child in self.features:
            if child.id == feature_id:
                return child
        return None

    def find_derivative(self, feature_id: Optional[str]) -> Optional['Feature']:
        if feature_id is None:
            return None
        for derivative in self.derivatives:
            if derivative.id == feature_id:
                return derivative
        return None

    @property
    def start(self) -> Optional[int]:
        return min((region.start for region in self._regions), default=None)

    @property
    def end(self) -> Optional[int]:
        return max((region.end for region in self._regions), default=None)

    @property
    def score(self) -> Optional[float]:
        """Largest score among the regions."""
        scores = [region.score for region in self._regions if region.score is not None]
        return max(scores) if scores else None

    @property
    def forward_strand(self) -> bool:
        return self._strand == '+'

    @property
    def reverse_strand(self) -> bool:
        return self._strand == '-'

    def iter_features(self) -> Iterator['Feature']:
        """Yield this feature, then its descendants and derivatives depth-first."""
        yield self
        for child in self.features:
            yield from child.iter_features()
        for derivative in self.derivatives:
            yield from derivative.iter_features()

    def __lt__(self, other: 'Feature') -> bool:
        return compare(self, other) < 0

    def to_gff(self) -> List[str]:
        """
        Render the regions of this feature (not its descendants) as GFF3 rows.

        Returns:
            One tab-separated row per region, in increasing position
        """
        rows = []
        for region in self.regions:
            attributes: Dict[str, Any] = dict(region.attributes)
            attributes.update(self.attributes)
            rows.append('\t'.join([
                self.seqid,
                self.source,
                self.type,
                str(region.start),
                str(region.end),
                '.' if region.score is None else _format_score(region.score),
                self._strand,
                '.' if region.phase is None else str(region.phase),
                encode_attributes(attributes),
            ]))
        return rows

    def __repr__(self) -> str:
        return (f"Feature({self.seqid!r}, {self.source!r}, {self.type!r}, strand={self._strand!r}, "
                f"id={self.id!r}, regions={len(self._regions)}, features={len(self.features)}, "
                f"derivatives={len(self.derivatives)})")


def _format_score(score: float) -> str:
    if isinstance(score, float) and score.is_integer():
        return str(int(score)) if abs(score) < 1e15 else repr(score)
    return str(score)
