# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Streaming FASTQ/FASTA input and FASTQ output."""

import logging as lg
from collections import namedtuple

import pysam

from ..core.errors import MalformedInputError
from .helpers import roundrobin

Read = namedtuple('Read', ['name', 'sequence', 'quality'])

# Quality used when a record carries none (FASTA input, synthetic tags).
FILL_QUAL = '~'


def _print_progress(nreads, infolev=1000000):
    msg = f'...read {nreads / 1e6:.1f}M records'
    if nreads % infolev == 0:
        lg.info(msg)
    else:
        lg.debug(msg)


def iter_reads(path):
    """Yield :class:`Read` objects from one FASTQ/FASTA file (plain or gzip).

    Raises:
        MalformedInputError: A record is truncated or its sequence and
            quality lengths differ. The run must not continue past it.
    """
    nrec = 0
    with pysam.FastxFile(path) as fh:
        records = iter(fh)
        while True:
            try:
                rec = next(records)
            except StopIteration:
                break
            except ValueError as exc:
                raise MalformedInputError(path, nrec + 1, str(exc)) from exc
            nrec += 1
            seq = rec.sequence
            if seq is None:
                raise MalformedInputError(path, nrec, 'missing sequence')
            qual = rec.quality
            if qual is not None and len(qual) != len(seq):
                raise MalformedInputError(
                    path, nrec,
                    f'sequence length {len(seq)} != quality length {len(qual)}'
                )
            if nrec % 100000 == 0:
                _print_progress(nrec)
            yield Read(rec.name, seq.upper(), qual)
    lg.info(f'Read {nrec} records from {path}')


def iter_paired_reads(paths):
    """Merge several read files index-wise (record i of each file in turn)."""
    if len(paths) == 1:
        return iter_reads(paths[0])
    return roundrobin(*(iter_reads(p) for p in paths))


def format_fastq(name, sequence, quality=None):
    if quality is None:
        quality = FILL_QUAL * len(sequence)
    return f'@{name}\n{sequence}\n+\n{quality}\n'
