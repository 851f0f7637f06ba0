"""
GFF3 serialisation of Feature trees.
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterable, Iterator, Set, Union

from hitgff.gff.feature import Feature, sort_features

logger = logging.getLogger(__name__)

GFF_VERSION_PRAGMA = '##gff-version 3'


class GFFWriter:
    """
    Writes Features, with their children and derivatives, as GFF3 rows.

    Features written without an ID receive ``id_prefix`` followed by a
    counter. The counter belongs to the writer, so two writers never share
    it and every new writer starts again from 1. Values already used as an ID
    by a feature passed to the writer are skipped.
    """

    def __init__(self, handle: IO[str], id_prefix: str = ""):
        self.handle = handle
        self.id_prefix = id_prefix
        self._last_id = 0
        self._taken_ids: Set[str] = set()
        self.features_written = 0

    @classmethod
    @contextmanager
    def open(cls, path: Union[str, Path], id_prefix: str = "", header: bool = True) -> Iterator['GFFWriter']:
        """
        Open a file for writing and yield a writer on it.

        Args:
            path: Output path
            id_prefix: Prefix of assigned IDs
            header: Write the ``##gff-version 3`` pragma first
        """
        with open(path, 'w') as handle:
            writer = cls(handle, id_prefix=id_prefix)
            if header:
                writer.write_header()
            yield writer
        logger.info(f"Wrote {writer.features_written} features to {path}")

    def write_header(self):
        self.handle.write(GFF_VERSION_PRAGMA + '\n')

    def next_id(self) -> str:
        while True:
            self._last_id += 1
            candidate = f"{self.id_prefix}{self._last_id}"
            if candidate not in self._taken_ids:
                self._taken_ids.add(candidate)
                return candidate

    def _assign_ids(self, feature: Feature):
        if feature.id is None:
            feature.id = self.next_id()
        for child in feature.features:
            self._assign_ids(child)
            if not child.parents:
                child.attributes['Parent'] = feature.id
        for derivative in feature.derivatives:
            self._assign_ids(derivative)
            if not derivative.derives_from:
                derivative.attributes['Derives_from'] = feature.id

    def _write_tree(self, feature: Feature):
        for row in feature.to_gff():
            self.handle.write(row + '\n')
        self.features_written += 1
        for child in sort_features(feature.features):
            self._write_tree(child)
        for derivative in sort_features(feature.derivatives):
            self._write_tree(derivative)

    def write(self, features: Union[Feature, Iterable[Feature]]):
        """
        Write one or more top-level features.

        Features are sorted by seqid, start and type before writing. Missing
        IDs are assigned depth-first, skipping IDs already in use, and
        children or derivatives that do not yet reference their owner are
        linked to it.

        Args:
            features: A Feature or an iterable of Features
        """
        if isinstance(features, Feature):
            features = [features]

        features = sort_features(features)
        # Reserve existing IDs before any is assigned
        for feature in features:
            for descendant in feature.iter_features():
                if isinstance(descendant.id, str):
                    self._taken_ids.add(descendant.id)

        for feature in features:
            self._assign_ids(feature)
            self._write_tree(feature)
