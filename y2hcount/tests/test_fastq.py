# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.

import gzip

import pytest

from y2hcount.core.errors import MalformedInputError
from y2hcount.utils.fastq import Read, format_fastq, iter_paired_reads, iter_reads
from y2hcount.utils.helpers import chunked, revcomp, roundrobin

FASTQ = (
    '@r1 extra comment\nacgtAGTccc\n+\nIIIIIIIIII\n'
    '@r2\nCCCAGTGGG\n+\nIIIIIIIII\n'
)


def _write(path, text, gz=False):
    opener = gzip.open if gz else open
    with opener(path, 'wt') as fh:
        fh.write(text)
    return str(path)


class TestIterReads:
    def test_plain(self, tmp_path):
        reads = list(iter_reads(_write(tmp_path / 'a.fq', FASTQ)))
        assert reads == [
            Read('r1', 'ACGTAGTCCC', 'IIIIIIIIII'),
            Read('r2', 'CCCAGTGGG', 'IIIIIIIII'),
        ]

    def test_gzip(self, tmp_path):
        reads = list(iter_reads(_write(tmp_path / 'a.fq.gz', FASTQ, gz=True)))
        assert [r.name for r in reads] == ['r1', 'r2']

    def test_fasta(self, tmp_path):
        reads = list(iter_reads(_write(tmp_path / 'a.fa', '>r1\nCCCAGT\nGGG\n')))
        assert reads == [Read('r1', 'CCCAGTGGG', None)]

    def test_quality_length_mismatch(self, tmp_path):
        path = _write(tmp_path / 'bad.fq', FASTQ + '@r3\nCCCAGTGGG\n+\nIII\n')
        it = iter_reads(path)
        assert next(it).name == 'r1'
        assert next(it).name == 'r2'
        with pytest.raises(MalformedInputError) as excinfo:
            next(it)
        assert excinfo.value.record == 3
        assert excinfo.value.path == path


class TestPairedReads:
    def test_interleaved(self, tmp_path):
        r1 = _write(tmp_path / 'r1.fq', '@a1\nAAAA\n+\nIIII\n@a2\nAAAA\n+\nIIII\n')
        r2 = _write(tmp_path / 'r2.fq', '@b1\nCCCC\n+\nIIII\n@b2\nCCCC\n+\nIIII\n')
        assert [r.name for r in iter_paired_reads([r1, r2])] == ['a1', 'b1', 'a2', 'b2']


class TestHelpers:
    def test_format_fastq(self):
        assert format_fastq('x', 'ACG') == '@x\nACG\n+\n~~~\n'
        assert format_fastq('x', 'ACG', 'III') == '@x\nACG\n+\nIII\n'

    def test_revcomp(self):
        assert revcomp('AACGTN') == 'NACGTT'

    def test_chunked(self):
        assert list(chunked(range(5), 2)) == [[0, 1], [2, 3], [4]]
        assert list(chunked([], 3)) == []

    def test_roundrobin_uneven(self):
        assert list(roundrobin('ABC', 'x')) == ['A', 'x', 'B', 'C']
