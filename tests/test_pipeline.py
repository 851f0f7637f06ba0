import pytest

from hitgff.config import Config
from hitgff.core.models import Axis
from hitgff.core.io import AlignmentReader
from hitgff.gff.builder import read_features
from hitgff.pipeline import HitAnnotator, chunk_tasks, cluster_to_feature, normalize_gff


def test_chunk_tasks():
    assert chunk_tasks([], 3) == []
    assert chunk_tasks([1, 2, 3, 4, 5], 2) == [[1, 2, 3], [4, 5]]
    assert chunk_tasks([1, 2], 5) == [[1], [2]]
    assert chunk_tasks([1, 2, 3], 0) == [[1, 2, 3]]


def test_cluster_to_feature_on_subject(make_hit):
    hits = [
        make_hit(101, 200, 400, 301, query="est1", subject="chr1", e_value="1e-40", bit_score=180),
        make_hit(1, 100, 500, 401, query="est1", subject="chr1", e_value="1e-50", bit_score=200),
    ]
    feature = cluster_to_feature(hits, Axis.SUBJECT)

    assert feature.seqid == "chr1"
    assert feature.source == "BLASTN"
    assert feature.type == "nucleotide_match"
    assert feature.strand == "-"
    assert feature.name == "est1"
    assert feature.id is None
    assert [(r.start, r.end, r.score) for r in feature.regions] == [(301, 400, 180), (401, 500, 200)]
    assert feature.regions[1].attributes == {"EValue": "1.00e-50", "Target": "est1 1 100"}


def test_cluster_to_feature_on_query(make_hit):
    hits = [make_hit(100, 399, 1, 100, query="contig1", subject="protA")]
    feature = cluster_to_feature(hits, Axis.QUERY, source="custom", feature_type="protein_match")

    assert feature.seqid == "contig1"
    assert feature.source == "custom"
    assert feature.type == "protein_match"
    assert feature.strand == "+"
    assert feature.name == "protA"
    assert feature.regions[0].attributes["Target"] == "protA 1 100"


def test_annotate_tabular(tabular_file):
    features = HitAnnotator(Config()).annotate(tabular_file)

    # q3 is dropped by the default e-value threshold
    assert [(f.seqid, f.start, f.name, f.strand) for f in features] == [
        ("s1", 301, "q1", "-"),
        ("s1", 5000, "q2", "+"),
        ("s2", 1000, "q1", "+"),
    ]


def test_annotate_xml_on_query(xml_file):
    annotator = HitAnnotator(Config(format="xml", cluster_on="query", e_value=1))
    features = annotator.annotate(xml_file)

    assert [(f.seqid, f.name, f.strand, len(f.regions)) for f in features] == [
        ("contig1", "protA", "+", 2),
        ("contig1", "gi|999", "-", 1),
    ]
    assert all(f.source == "BLASTX" and f.type == "match" for f in features)


def test_annotate_in_worker_processes(tabular_file):
    serial = HitAnnotator(Config()).annotate(tabular_file)
    parallel = HitAnnotator(Config(threads=2)).annotate(tabular_file)

    assert [f.to_gff() for f in parallel] == [f.to_gff() for f in serial]


def test_run_writes_gff(tabular_file, tmp_path):
    output = tmp_path / "out.gff3"
    written = HitAnnotator(Config(id_prefix="est_")).run(tabular_file, output)

    assert written == 3
    lines = output.read_text().splitlines()
    assert lines[0] == "##gff-version 3"
    assert lines[1] == "s1\tBLASTN\tnucleotide_match\t301\t400\t180\t-\t.\tID=est_1;Name=q1;EValue=1.00e-40;Target=q1 101 200"
    assert len(lines) == 5

    features = list(read_features(output))
    assert [f.id for f in features] == ["est_1", "est_2", "est_3"]


def test_annotate_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        HitAnnotator().annotate(tmp_path / "missing.tab")


def test_normalize_gff(gff_file, tmp_path):
    output = tmp_path / "normalized.gff3"

    assert normalize_gff(gff_file, output) == 5

    features = list(read_features(output))
    assert [f.id for f in features] == ["gene1", "gene2"]
    assert len(features[0].derivatives[0].regions) == 2


def test_reader_and_annotator_agree(tabular_file):
    clusters = list(AlignmentReader(tabular_file, max_e_value=1e-5).each_cluster(Axis.SUBJECT))
    features = HitAnnotator().annotate(tabular_file)

    assert len(clusters) == len(features)
