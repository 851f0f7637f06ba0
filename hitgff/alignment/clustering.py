"""
Clustering of alignment hits into discontiguous matches.

Hits between one query and one subject are grouped into clusters that
approximate exon/intron structure: hits join a cluster when they are close
on the clustering axis, or when they continue the alignment exactly on the
other axis even though a large gap (an intron) separates them on the
clustering axis.
"""
import logging
from collections import OrderedDict
from typing import Iterable, List, Optional, Sequence

from hitgff.core.models import Axis, Cluster, HitRecord

logger = logging.getLogger(__name__)

DEFAULT_ALIGNMENT_ERROR = 3
CUTOFF_SCALE = 10


def derive_cutoff(hits: Sequence[HitRecord], axis: Axis = Axis.SUBJECT) -> float:
    """
    Distance cutoff scaled to the hits being clustered.

    Args:
        hits: Hits the cutoff will apply to
        axis: Sequence on which lengths are measured

    Returns:
        Ten times the average hit length on the axis (0 for no hits)
    """
    if not hits:
        return 0.0
    average_length = sum(hit.length(axis) for hit in hits) / float(len(hits))
    return average_length * CUTOFF_SCALE


def _is_contiguous(open_cluster: List[HitRecord], hit: HitRecord, alternate: Axis, alignment_error: int) -> bool:
    """Check whether the hit continues the open cluster on the alternate axis."""
    last = open_cluster[-1]
    last_low, last_high = last.span(alternate)
    low, high = hit.span(alternate)

    increasing = low > last_low
    if len(open_cluster) > 1:
        previous_low = open_cluster[-2].span(alternate)[0]
        trend = last_low > previous_low
        if increasing != trend:
            return False

    if increasing:
        expected, observed = last_high + 1, low
    else:
        expected, observed = last_low - 1, high

    return expected - alignment_error <= observed <= expected + alignment_error


def _bucket(hits: Iterable[HitRecord], axis: Axis, by_pair: bool) -> List[List[HitRecord]]:
    """Sort along the axis and split into orientation buckets, forward buckets first."""
    buckets = {True: OrderedDict(), False: OrderedDict()}
    for hit in sorted(hits, key=lambda h: h.span(axis)[0]):
        key = (hit.query, hit.subject) if by_pair else None
        buckets[hit.is_forward(axis)].setdefault(key, []).append(hit)
    return [bucket for forward in (True, False) for bucket in buckets[forward].values()]


def _cluster_bucket(hits: List[HitRecord], axis: Axis, cutoff: float, alignment_error: int) -> List[Cluster]:
    """Single pass over hits sharing one orientation, in increasing position along the axis."""
    alternate = axis.other
    clusters: List[Cluster] = []
    open_cluster: List[HitRecord] = []

    for hit in hits:
        if not open_cluster:
            open_cluster.append(hit)
            continue

        gap = hit.span(axis)[0] - open_cluster[-1].span(axis)[1]
        if gap < cutoff:
            open_cluster.append(hit)
        elif _is_contiguous(open_cluster, hit, alternate, alignment_error):
            logger.debug(f"Joining {hit.query}/{hit.subject} across gap {gap} by contiguity on the {alternate.value}")
            open_cluster.append(hit)
        else:
            clusters.append(open_cluster)
            open_cluster = [hit]

    if open_cluster:
        clusters.append(open_cluster)

    return clusters


def _cluster_buckets(buckets: List[List[HitRecord]], axis: Axis, cutoff: Optional[float],
                     alignment_error: int) -> List[Cluster]:
    clusters: List[Cluster] = []
    for bucket in buckets:
        bucket_cutoff = cutoff if cutoff is not None else derive_cutoff(bucket, axis)
        clusters.extend(_cluster_bucket(bucket, axis, bucket_cutoff, alignment_error))
    return clusters


def cluster(hits: Iterable[HitRecord],
            axis: Axis = Axis.SUBJECT,
            cutoff: Optional[float] = None,
            alignment_error: int = DEFAULT_ALIGNMENT_ERROR) -> List[Cluster]:
    """
    Cluster the hits of one (query, subject) pair.

    Hits are sorted along the axis and split into forward and reverse
    orientation buckets, so every cluster runs in a single direction.

    Args:
        hits: Hits between one query and one subject
        axis: Sequence whose positions decide proximity
        cutoff: Maximum separation on the axis; derived per bucket if None
        alignment_error: Tolerance when checking contiguity on the other axis

    Returns:
        Clusters of the forward bucket followed by those of the reverse bucket
    """
    return _cluster_buckets(_bucket(hits, axis, by_pair=False), axis, cutoff, alignment_error)


def cluster_hits(hits: Iterable[HitRecord],
                 axis: Axis = Axis.SUBJECT,
                 cutoff: Optional[float] = None,
                 alignment_error: int = DEFAULT_ALIGNMENT_ERROR) -> List[Cluster]:
    """
    Cluster all hits of a query, separating them by subject and orientation.

    Hits are sorted along the axis, split into forward and reverse buckets
    per (query, subject) pair, and each bucket is clustered with its own
    cutoff unless an explicit one is given.

    Args:
        hits: Hits for one query (possibly against several subjects)
        axis: Sequence whose positions decide proximity
        cutoff: Explicit maximum separation applied to every bucket
        alignment_error: Tolerance when checking contiguity on the other axis

    Returns:
        Clusters from forward buckets followed by reverse buckets
    """
    return _cluster_buckets(_bucket(hits, axis, by_pair=True), axis, cutoff, alignment_error)
