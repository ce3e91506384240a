# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Writing the frozen pair table.

Three synchronized outputs are produced from one ordering of the table:

- the pair count table (TSV),
- one representative read per pair, named by its pair id,
- the bait and prey tags of every pair as separate reads for the aligner.

Every file is written to a temporary sibling; the three are renamed into
place together once all of them are complete.
"""

import logging as lg
import os
import tempfile
from contextlib import contextmanager

import pandas as pd

from ..utils.fastq import format_fastq
from .tagid import BAIT, PREY, pair_id, tag_read_id

COUNT_COLUMNS = ['bait_tag', 'prey_tag', 'count']


@contextmanager
def atomic_outputs(paths, mode='w'):
    """Open temporary files that replace `paths` together, only on clean exit.

    Yields:
        List of open handles, in the order of `paths`.
    """
    temps = []
    try:
        for path in paths:
            dirname = os.path.dirname(os.path.abspath(path))
            fd, tmp = tempfile.mkstemp(prefix='.' + os.path.basename(path) + '.', suffix='.part', dir=dirname)
            temps.append((os.fdopen(fd, mode), tmp))
        yield [fh for fh, _ in temps]
        for fh, _ in temps:
            fh.close()
        for (_, tmp), path in zip(temps, paths):
            os.replace(tmp, path)
    except BaseException:
        for fh, tmp in temps:
            fh.close()
            if os.path.exists(tmp):
                os.unlink(tmp)
        raise


@contextmanager
def atomic_output(path, mode='w'):
    """Open a temporary file that replaces `path` only on clean exit."""
    with atomic_outputs([path], mode) as (outh,):
        yield outh


def sorted_records(table):
    """Count records by descending count, ties by (bait, prey)."""
    return sorted(table.values(), key=lambda r: (-r.count, r.bait, r.prey))


def write_counts(records, outh):
    _counts = pd.DataFrame(
        [(r.bait, r.prey, r.count) for r in records],
        columns=COUNT_COLUMNS,
    )
    _counts.to_csv(outh, sep='\t', index=False)
    return len(_counts)


def write_representatives(records, outh):
    for r in records:
        rep = r.representative
        outh.write(format_fastq(pair_id(r.bait, r.prey), rep.sequence, rep.quality))


def write_tag_reads(records, outh):
    for r in records:
        pid = pair_id(r.bait, r.prey)
        outh.write(format_fastq(tag_read_id(pid, BAIT), r.bait))
        outh.write(format_fastq(tag_read_id(pid, PREY), r.prey))


def emit(table, counts_filename, reps_filename, tags_filename):
    """Write all three outputs for the frozen `table`.

    None of the files is put in place unless all three were written.

    Returns:
        Number of distinct pairs written.
    """
    records = sorted_records(table)
    with atomic_outputs([counts_filename, reps_filename, tags_filename]) as (counts_fh, reps_fh, tags_fh):
        lg.info(f'Write pair counts to tsv file: {counts_filename}')
        n = write_counts(records, counts_fh)
        lg.info(f'Write representative reads to fastq file: {reps_filename}')
        write_representatives(records, reps_fh)
        lg.info(f'Write tag reads to fastq file: {tags_filename}')
        write_tag_reads(records, tags_fh)
    return n
