# -*- coding: utf-8 -*-

# This file is part of Y2HCount.
#
# Licensed under MIT License.

import os

import pandas as pd
import pytest

from y2hcount.core.counter import CountRecord
from y2hcount.core.emitter import atomic_output, atomic_outputs, emit, sorted_records
from y2hcount.core.scanner import TagPair
from y2hcount.core.tagid import pair_id
from y2hcount.utils.fastq import Read


def _fastq_records(path):
    with open(path) as fh:
        lines = fh.read().splitlines()
    return [(lines[i][1:], lines[i + 1], lines[i + 3]) for i in range(0, len(lines), 4)]


@pytest.fixture
def table():
    def rec(bait, prey, count):
        seq = 'AA' + bait + 'AGT' + prey + 'TT'
        return TagPair(bait, prey), CountRecord(bait, prey, count, Read('r', seq, 'I' * len(seq)))
    return dict([
        rec('CCC', 'GGG', 1),
        rec('AAA', 'TTT', 5),
        rec('ACG', 'TTT', 1),
        rec('ACG', 'GGG', 1),
        rec('TTT', 'AAA', 5),
    ])


# =========================================================================
# Output files
# =========================================================================

class TestEmit:
    def test_ordering(self, table):
        order = [(r.bait, r.prey) for r in sorted_records(table)]
        assert order == [
            ('AAA', 'TTT'), ('TTT', 'AAA'),
            ('ACG', 'GGG'), ('ACG', 'TTT'), ('CCC', 'GGG'),
        ]

    def test_outputs(self, table, tmp_path):
        counts = str(tmp_path / 'pair_counts.tsv')
        reps = str(tmp_path / 'representatives.fq')
        tags = str(tmp_path / 'tags.fq')
        assert emit(table, counts, reps, tags) == 5

        df = pd.read_csv(counts, sep='\t', keep_default_na=False)
        assert list(df.columns) == ['bait_tag', 'prey_tag', 'count']
        assert df['count'].tolist() == [5, 5, 1, 1, 1]

        # one representative per count row, same order, named by pair id
        rep_records = _fastq_records(reps)
        assert [name for name, _, _ in rep_records] == [
            pair_id(b, p) for b, p in zip(df['bait_tag'], df['prey_tag'])
        ]
        assert len({name for name, _, _ in rep_records}) == len(df)
        for (name, seq, qual), bait, prey in zip(rep_records, df['bait_tag'], df['prey_tag']):
            assert seq == table[TagPair(bait, prey)].representative.sequence
            assert qual == 'I' * len(seq)

        tag_records = _fastq_records(tags)
        assert len(tag_records) == 2 * len(df)
        first_pid = pair_id('AAA', 'TTT')
        assert tag_records[0] == (f'{first_pid}:B', 'AAA', '~~~')
        assert tag_records[1] == (f'{first_pid}:P', 'TTT', '~~~')

    def test_empty_table(self, tmp_path):
        counts = str(tmp_path / 'c.tsv')
        assert emit({}, counts, str(tmp_path / 'r.fq'), str(tmp_path / 't.fq')) == 0
        assert open(counts).read().strip() == 'bait_tag\tprey_tag\tcount'

    def test_failed_write_leaves_no_outputs(self, table, tmp_path):
        broken = dict(table)
        broken[TagPair('GGG', 'CCC')] = CountRecord('GGG', 'CCC', 2, None)
        paths = [str(tmp_path / n) for n in ('pair_counts.tsv', 'representatives.fq', 'tags.fq')]
        with pytest.raises(AttributeError):
            emit(broken, *paths)
        assert os.listdir(tmp_path) == []


class TestAtomicOutput:
    def test_replaces_on_success(self, tmp_path):
        path = str(tmp_path / 'out.tsv')
        with open(path, 'w') as fh:
            fh.write('old\n')
        with atomic_output(path) as outh:
            outh.write('new\n')
        assert open(path).read() == 'new\n'
        assert os.listdir(tmp_path) == ['out.tsv']

    def test_nothing_left_on_error(self, tmp_path):
        path = str(tmp_path / 'out.tsv')
        with pytest.raises(RuntimeError):
            with atomic_output(path) as outh:
                outh.write('partial')
                raise RuntimeError('boom')
        assert not os.path.exists(path)
        assert os.listdir(tmp_path) == []

    def test_group_replaced_together(self, tmp_path):
        paths = [str(tmp_path / 'a.tsv'), str(tmp_path / 'b.tsv')]
        for p in paths:
            with open(p, 'w') as fh:
                fh.write('old\n')
        with pytest.raises(RuntimeError):
            with atomic_outputs(paths) as (a, b):
                a.write('new\n')
                raise RuntimeError('boom')
        assert [open(p).read() for p in paths] == ['old\n', 'old\n']
        assert sorted(os.listdir(tmp_path)) == ['a.tsv', 'b.tsv']

        with atomic_outputs(paths) as (a, b):
            a.write('new a\n')
            b.write('new b\n')
        assert [open(p).read() for p in paths] == ['new a\n', 'new b\n']
