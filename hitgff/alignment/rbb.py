"""
Reciprocal best hits between two alignment result files.

A pair (a, b) is reciprocal when b is among the best hits of a in the first
file and a is among the best hits of b in the second one.
"""
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from tqdm import tqdm

from hitgff.core.evalue import EValue
from hitgff.core.io import AlignmentReader, HitFormat
from hitgff.core.models import HitRecord

logger = logging.getLogger(__name__)


def best_hits(path: Union[str, Path], fmt: Union[HitFormat, str] = HitFormat.TABULAR,
              max_e_value: Optional[Union[EValue, float, str]] = None) -> Dict[str, List[HitRecord]]:
    """
    Collect the highest scoring hits of every query.

    Args:
        path: Alignment file
        fmt: Format of the file
        max_e_value: Ignore hits with a larger e-value

    Returns:
        Query id mapped to its hits with the top bit score; ties are all kept
    """
    best: Dict[str, List[HitRecord]] = {}
    reader = AlignmentReader(path, fmt, max_e_value=max_e_value)
    for hit in reader:
        if not reader.accepts(hit):
            continue
        current = best.get(hit.query)
        if current is None or current[0].bit_score < hit.bit_score:
            best[hit.query] = [hit]
        elif current[0].bit_score == hit.bit_score:
            current.append(hit)
    return best


def reciprocal_best_hits(path_a: Union[str, Path], path_b: Union[str, Path],
                         fmt: Union[HitFormat, str] = HitFormat.TABULAR,
                         max_e_value: Optional[Union[EValue, float, str]] = None,
                         progress: bool = False) -> List[Tuple[str, str]]:
    """
    Identify pairs that are each other's best hit.

    Args:
        path_a: Alignments of the first set against the second
        path_b: Alignments of the second set against the first
        fmt: Format of both files
        max_e_value: Ignore hits with a larger e-value
        progress: Show a progress bar

    Returns:
        Sorted, de-duplicated (query, subject) pairs
    """
    forward = best_hits(path_a, fmt, max_e_value)
    reverse = best_hits(path_b, fmt, max_e_value)

    pairs = set()
    for query, hits in tqdm(forward.items(), total=len(forward), desc="Reciprocal hits", disable=not progress):
        for hit in hits:
            if any(back.subject == query for back in reverse.get(hit.subject, [])):
                pairs.add((query, hit.subject))

    logger.info(f"Found {len(pairs)} reciprocal best hits among {len(forward)} queries")
    return sorted(pairs)


def write_pairs(pairs: Iterable[Tuple[str, str]], path: Union[str, Path]) -> int:
    """Write pairs as tab-separated lines and return how many were written."""
    count = 0
    with open(path, 'w') as f:
        for query, subject in pairs:
            f.write(f"{query}\t{subject}\n")
            count += 1
    return count
