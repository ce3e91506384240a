# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Tests for the sharded pair table and concurrent counting.

The count table must come out the same whatever the worker count, the
executor type, the chunk size or the order of the input reads.
"""
import random
import threading

import pytest

from y2hcount.core.config import ScanConfig
from y2hcount.core.counter import PairTable, ScanDetail, ScanStats, count_pairs, scan_chunk
from y2hcount.core.scanner import LinkerScanner, Outcome, TagPair
from y2hcount.utils.fastq import Read

LINKER = 'GTTGGATAAGATATCGC'
CONFIG = ScanConfig(linker=LINKER, flank=6)


def _random_tag(rng, n):
    return ''.join(rng.choice('ACGT') for _ in range(n))


@pytest.fixture(scope='module')
def synthetic_reads():
    """Reads built from a small pool of tags, plus reads without a pair."""
    rng = random.Random(7)
    baits = [_random_tag(rng, 6) for _ in range(8)]
    preys = [_random_tag(rng, 6) for _ in range(8)]
    reads = []
    for i in range(600):
        kind = i % 10
        if kind == 8:
            seq = 'AC' + _random_tag(rng, 40)                      # no linker
        elif kind == 9:
            seq = 'AC' + 'NNNNNN' + LINKER + rng.choice(preys)     # N in bait
        else:
            seq = 'AC' + rng.choice(baits) + LINKER + rng.choice(preys) + 'GA'
        reads.append(Read(f'read{i}', seq, 'I' * len(seq)))
    return reads


def _counts(table):
    return {k: r.count for k, r in table.items()}


# =========================================================================
# PairTable
# =========================================================================

class TestPairTable:
    def test_merge_increments(self):
        t = PairTable(nshards=4)
        key = TagPair('CCC', 'GGG')
        t.merge({key: 1}, {key: Read('r1', 'CCCAGTGGG', None)})
        t.merge({key: 1}, {key: Read('r2', 'CCCAGTGGG', None)})
        frozen = t.freeze()
        assert len(frozen) == 1
        assert frozen[key].count == 2

    def test_first_representative_kept(self):
        t = PairTable(nshards=4)
        key = TagPair('CCC', 'GGG')
        t.merge({key: 1}, {key: Read('first', 'CCCAGTGGG', None)})
        t.merge({key: 3}, {key: Read('second', 'CCCAGTGGG', None)})
        rec = t.freeze()[key]
        assert rec.count == 4
        assert rec.representative.name == 'first'

    def test_merge(self):
        t = PairTable(nshards=2)
        a, b = TagPair('AAA', 'CCC'), TagPair('GGG', 'TTT')
        reads = {a: Read('a', '', None), b: Read('b', '', None)}
        t.merge({a: 2, b: 1}, reads)
        t.merge({a: 5}, reads)
        assert _counts(t.freeze()) == {a: 7, b: 1}

    def test_freeze_is_read_only(self):
        t = PairTable()
        key = TagPair('A', 'C')
        t.merge({key: 1}, {key: None})
        frozen = t.freeze()
        assert t.freeze() is frozen
        with pytest.raises(TypeError):
            frozen[TagPair('G', 'T')] = None
        with pytest.raises(RuntimeError):
            t.merge({key: 1}, {key: None})
        with pytest.raises(RuntimeError):
            t.merge({}, {})

    def test_invalid_shards(self):
        with pytest.raises(ValueError):
            PairTable(nshards=0)

    def test_concurrent_merges(self):
        t = PairTable(nshards=3)
        keys = [TagPair('AAA', 'CCC'), TagPair('GGG', 'TTT'), TagPair('ACG', 'TGC')]
        reps = {k: None for k in keys}

        def work():
            for _ in range(2000):
                t.merge({k: 1 for k in keys}, reps)

        threads = [threading.Thread(target=work) for _ in range(8)]
        for th in threads:
            th.start()
        for th in threads:
            th.join()
        assert _counts(t.freeze()) == {k: 16000 for k in keys}


# =========================================================================
# ScanStats / scan_chunk
# =========================================================================

class TestScanChunk:
    def test_outcomes(self):
        scanner = LinkerScanner(ScanConfig(linker='AGT', flank=3))
        reads = [
            Read('r1', 'CCCAGTGGG', None),
            Read('r2', 'CCCAGTGGG', None),
            Read('r3', 'CCCCCCCCC', None),
            Read('r4', 'CCAGTGGG', None),
        ]
        res = scan_chunk(scanner, reads)
        assert res.counts == {TagPair('CCC', 'GGG'): 2}
        assert res.representatives[TagPair('CCC', 'GGG')].name == 'r1'
        assert res.stats.paired == 2
        assert res.stats.counts[Outcome.NO_LINKER] == 1
        assert res.stats.counts[Outcome.LEFT_TOO_SHORT] == 1
        assert res.stats.total == 4

    def test_detail_rows(self):
        scanner = LinkerScanner(ScanConfig(linker='AGT', flank=3))
        reads = [
            Read('r1', 'CCCAGTGGG', None),
            Read('r2', 'CCCCCCCCC', None),
            Read('r3', 'CCAGTGGG', None),
        ]
        assert scan_chunk(scanner, reads).details == []
        res = scan_chunk(scanner, reads, detail=True)
        assert res.details == [
            ScanDetail('r1', Outcome.PAIRED, '+', 3, 0),
            ScanDetail('r2', Outcome.NO_LINKER, None, None, None),
            ScanDetail('r3', Outcome.LEFT_TOO_SHORT, '+', 2, 0),
        ]

    def test_stats_rows(self):
        stats = ScanStats({Outcome.PAIRED: 3, Outcome.NO_LINKER: 1})
        rows = stats.as_rows()
        assert [r[0] for r in rows] == [o.value for o in Outcome]
        assert rows[0] == ('paired', 3, '75.00%')
        assert 'total reads: 4' in str(stats)


# =========================================================================
# count_pairs
# =========================================================================

class TestCountPairs:
    def test_identical_reads_count_twice(self):
        reads = [Read('r1', 'CCCAGTGGG', None), Read('r2', 'CCCAGTGGG', None)]
        table, stats = count_pairs(reads, ScanConfig(linker='AGT', flank=3))
        assert len(table) == 1
        rec = table[TagPair('CCC', 'GGG')]
        assert rec.count == 2
        assert (rec.bait, rec.prey) == ('CCC', 'GGG')
        assert stats.paired == 2

    def test_empty_input(self):
        table, stats = count_pairs([], CONFIG)
        assert len(table) == 0
        assert stats.total == 0

    def test_outcome_totals(self, synthetic_reads):
        table, stats = count_pairs(synthetic_reads, CONFIG)
        assert stats.total == len(synthetic_reads)
        assert stats.paired == 480
        assert stats.counts[Outcome.AMBIGUOUS_BASE] == 60
        assert sum(r.count for r in table.values()) == stats.paired

    @pytest.mark.parametrize('ncpu,executor,chunk_size', [
        (1, 'thread', 1),
        (4, 'thread', 7),
        (3, 'thread', 100),
        (2, 'process', 50),
    ])
    def test_worker_invariance(self, synthetic_reads, ncpu, executor, chunk_size):
        expected, expected_stats = count_pairs(synthetic_reads, CONFIG)
        table, stats = count_pairs(synthetic_reads, CONFIG, ncpu=ncpu, executor=executor,
                                   chunk_size=chunk_size)
        assert _counts(table) == _counts(expected)
        assert stats.counts == expected_stats.counts

    def test_order_invariance(self, synthetic_reads):
        expected, _ = count_pairs(synthetic_reads, CONFIG)
        shuffled = list(synthetic_reads)
        random.Random(11).shuffle(shuffled)
        table, _ = count_pairs(shuffled, CONFIG, ncpu=4, chunk_size=13)
        assert _counts(table) == _counts(expected)

    def test_representative_carries_key(self, synthetic_reads):
        table, _ = count_pairs(synthetic_reads, CONFIG, ncpu=4, chunk_size=9)
        scanner = LinkerScanner(CONFIG)
        for key, rec in table.items():
            assert scanner.process(rec.representative.sequence) == (Outcome.PAIRED, key)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            count_pairs([], CONFIG, ncpu=0)
        with pytest.raises(ValueError):
            count_pairs([], CONFIG, ncpu=2, executor='fiber')

    @pytest.mark.parametrize('ncpu,executor,chunk_size', [
        (3, 'thread', 7),
        (2, 'process', 50),
    ])
    def test_details_in_input_order(self, synthetic_reads, ncpu, executor, chunk_size):
        expected = []
        count_pairs(synthetic_reads, CONFIG, details=expected)
        details = []
        count_pairs(synthetic_reads, CONFIG, ncpu=ncpu, executor=executor, chunk_size=chunk_size,
                    details=details)
        assert [d.read for d in expected] == [r.name for r in synthetic_reads]
        assert details == expected
        assert sum(d.outcome is Outcome.PAIRED for d in details) == 480
