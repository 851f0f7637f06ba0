import pytest
from pathlib import Path

from hitgff.core.evalue import EValue
from hitgff.core.models import HitRecord


@pytest.fixture
def make_hit():
    """Factory for hits with only coordinates and scores set."""
    def _make_hit(query_start, query_end, subject_start, subject_end,
                  query="q1", subject="s1", e_value="1e-20", bit_score=100.0):
        return HitRecord(
            query=query,
            subject=subject,
            query_start=query_start,
            query_end=query_end,
            subject_start=subject_start,
            subject_end=subject_end,
            e_value=EValue(e_value),
            bit_score=bit_score,
        )
    return _make_hit


@pytest.fixture
def tabular_file(tmp_path):
    """Creates a BLAST tabular (-outfmt 7) file with three queries."""
    p = tmp_path / "hits.tab"
    content = """# BLASTN 2.12.0+
# Query: q1
# Fields: query id, subject id, % identity, alignment length, mismatches, gap opens, q. start, q. end, s. start, s. end, evalue, bit score
q1\ts1\t98.5\t100\t1\t0\t1\t100\t500\t401\t1e-50\t200
q1\ts1\t97.0\t100\t2\t0\t101\t200\t400\t301\t1e-40\t180
q1\ts2\t90.0\t50\t5\t0\t1\t50\t1000\t1049\t1e-10\t60

q2\ts1\t99.0\t200\t0\t0\t1\t200\t5000\t5199\t0.0\t400
q3\ts3\t80.0\t30\t6\t0\t1\t30\t10\t39\t0.5\t20
"""
    with open(p, "w") as f:
        f.write(content)
    return p


@pytest.fixture
def xml_file(tmp_path):
    """Creates a BLASTX XML (-outfmt 5) file with one iteration and two hits."""
    p = tmp_path / "hits.xml"
    content = """<?xml version="1.0"?>
<BlastOutput>
  <BlastOutput_program>blastx</BlastOutput_program>
  <BlastOutput_iterations>
    <Iteration>
      <Iteration_iter-num>1</Iteration_iter-num>
      <Iteration_query-ID>Query_1</Iteration_query-ID>
      <Iteration_query-def>contig1 assembled contig</Iteration_query-def>
      <Iteration_query-len>5000</Iteration_query-len>
      <Iteration_hits>
        <Hit>
          <Hit_num>1</Hit_num>
          <Hit_id>sp|P00001</Hit_id>
          <Hit_def>protA some protein</Hit_def>
          <Hit_hsps>
            <Hsp>
              <Hsp_num>1</Hsp_num>
              <Hsp_bit-score>150.2</Hsp_bit-score>
              <Hsp_score>379</Hsp_score>
              <Hsp_evalue>1.5e-40</Hsp_evalue>
              <Hsp_query-from>100</Hsp_query-from>
              <Hsp_query-to>399</Hsp_query-to>
              <Hsp_hit-from>1</Hsp_hit-from>
              <Hsp_hit-to>100</Hsp_hit-to>
              <Hsp_query-frame>1</Hsp_query-frame>
              <Hsp_hit-frame>0</Hsp_hit-frame>
              <Hsp_identity>90</Hsp_identity>
              <Hsp_positive>95</Hsp_positive>
              <Hsp_gaps>0</Hsp_gaps>
              <Hsp_align-len>100</Hsp_align-len>
              <Hsp_qseq>MKVLAT</Hsp_qseq>
              <Hsp_hseq>MKILAT</Hsp_hseq>
              <Hsp_midline>MK+LAT</Hsp_midline>
            </Hsp>
            <Hsp>
              <Hsp_num>2</Hsp_num>
              <Hsp_bit-score>140</Hsp_bit-score>
              <Hsp_score>350</Hsp_score>
              <Hsp_evalue>2e-35</Hsp_evalue>
              <Hsp_query-from>2400</Hsp_query-from>
              <Hsp_query-to>2699</Hsp_query-to>
              <Hsp_hit-from>101</Hsp_hit-from>
              <Hsp_hit-to>200</Hsp_hit-to>
              <Hsp_query-frame>1</Hsp_query-frame>
              <Hsp_hit-frame>0</Hsp_hit-frame>
              <Hsp_identity>80</Hsp_identity>
              <Hsp_positive>90</Hsp_positive>
              <Hsp_gaps>1</Hsp_gaps>
              <Hsp_align-len>100</Hsp_align-len>
              <Hsp_qseq>GWT</Hsp_qseq>
              <Hsp_hseq>GWS</Hsp_hseq>
              <Hsp_midline>GW </Hsp_midline>
            </Hsp>
          </Hit_hsps>
        </Hit>
        <Hit>
          <Hit_num>2</Hit_num>
          <Hit_id>gi|999</Hit_id>
          <Hit_def>No definition line</Hit_def>
          <Hit_hsps>
            <Hsp>
              <Hsp_num>1</Hsp_num>
              <Hsp_bit-score>50</Hsp_bit-score>
              <Hsp_evalue>0.001</Hsp_evalue>
              <Hsp_query-from>4000</Hsp_query-from>
              <Hsp_query-to>3701</Hsp_query-to>
              <Hsp_hit-from>5</Hsp_hit-from>
              <Hsp_hit-to>104</Hsp_hit-to>
              <Hsp_query-frame>-2</Hsp_query-frame>
              <Hsp_hit-frame>0</Hsp_hit-frame>
            </Hsp>
          </Hit_hsps>
        </Hit>
      </Iteration_hits>
    </Iteration>
  </BlastOutput_iterations>
</BlastOutput>
"""
    with open(p, "w") as f:
        f.write(content)
    return p


@pytest.fixture
def gff_file(tmp_path):
    """Creates a GFF3 file with a gene tree followed by a second gene."""
    p = tmp_path / "features.gff3"
    content = """##gff-version 3
chr1\ttest\tgene\t100\t900\t.\t+\t.\tID=gene1;Name=G1
chr1\ttest\texon\t100\t300\t.\t+\t.\tID=exon1;Parent=gene1
chr1\ttest\texon\t500\t900\t.\t+\t.\tID=exon2;Parent=gene1
chr1\ttest\tCDS\t150\t300\t.\t+\t0\tID=cds1;Derives_from=gene1
chr1\ttest\tCDS\t500\t600\t.\t+\t2\tID=cds1;Derives_from=gene1
chr2\ttest\tgene\t10\t50\t12.5\t-\t.\tID=gene2;Note=second%2C reversed
##FASTA
>chr1
ACGT
"""
    with open(p, "w") as f:
        f.write(content)
    return p
