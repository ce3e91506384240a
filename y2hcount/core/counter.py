# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Concurrent tag pair counting.

Reads are streamed in chunks to a pool of workers. Each worker scans its
chunk into a local tally and merges it into a :class:`PairTable`, a dict
split into independently locked shards. Increments commute, so the final
table does not depend on worker scheduling or chunking; the representative
read of a key is whichever worker writes the key first.
"""

import logging as lg
import threading
from collections import Counter, namedtuple
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass
from types import MappingProxyType

from ..utils.helpers import chunked, percent
from .scanner import LinkerScanner, Outcome

DEFAULT_CHUNK_SIZE = 10000


@dataclass(frozen=True)
class CountRecord:
    bait: str
    prey: str
    count: int
    representative: object  # Read


class ScanDetail(namedtuple('ScanDetail', ['read', 'outcome', 'strand', 'offset', 'mismatches'])):
    """Scan result of one read; linker fields are None without a hit."""
    __slots__ = ()

    @classmethod
    def of(cls, read, outcome, match):
        if match is None:
            return cls(read.name, outcome, None, None, None)
        return cls(read.name, outcome, match.strand, match.offset, match.mismatches)


class ScanStats:
    """Tally of per-read outcomes."""

    def __init__(self, counts=None):
        self.counts = Counter(counts or {})

    def count(self, outcome, n=1):
        self.counts[outcome] += n

    def update(self, other):
        self.counts.update(other.counts)

    @property
    def total(self):
        return sum(self.counts.values())

    @property
    def paired(self):
        return self.counts[Outcome.PAIRED]

    def as_rows(self):
        """[(outcome name, count, percent)] in :class:`Outcome` order."""
        total = self.total
        return [(o.value, self.counts[o], percent(self.counts[o], total)) for o in Outcome]

    def __str__(self):
        lines = ['Scan result:']
        for name, n, pct in self.as_rows():
            lines.append(f'    {name:<16}\t{n}\t{pct}')
        lines.append(f'total reads: {self.total}')
        return '\n'.join(lines)


class ChunkResult:
    """Local tally of one chunk of reads."""

    __slots__ = ('counts', 'representatives', 'stats', 'details')

    def __init__(self):
        self.counts = Counter()
        self.representatives = {}
        self.stats = ScanStats()
        self.details = []         # [ScanDetail], only filled on request


def scan_chunk(scanner, reads, detail=False):
    res = ChunkResult()
    for read in reads:
        outcome, pair, match = scanner.inspect(read.sequence)
        res.stats.count(outcome)
        if detail:
            res.details.append(ScanDetail.of(read, outcome, match))
        if pair is None:
            continue
        res.counts[pair] += 1
        if pair not in res.representatives:
            res.representatives[pair] = read
    return res


class PairTable:
    """Sharded count table with one lock per shard.

    Args:
        nshards: Number of independently locked shards.
    """

    def __init__(self, nshards=64):
        if nshards < 1:
            raise ValueError('nshards must be >= 1')
        self._nshards = nshards
        self._shards = [{} for _ in range(nshards)]
        self._locks = [threading.Lock() for _ in range(nshards)]
        self._frozen = None

    def _shard_of(self, key):
        return hash(key) % self._nshards

    def merge(self, counts, representatives):
        """Merge a local tally, taking each shard lock once.

        A key already in the table keeps its representative.
        """
        self._check_open()
        by_shard = [[] for _ in range(self._nshards)]
        for key, n in counts.items():
            by_shard[self._shard_of(key)].append((key, n))
        for i, items in enumerate(by_shard):
            if not items:
                continue
            shard = self._shards[i]
            with self._locks[i]:
                for key, n in items:
                    rec = shard.get(key)
                    if rec is None:
                        shard[key] = [n, representatives[key]]
                    else:
                        rec[0] += n

    def __len__(self):
        return sum(len(s) for s in self._shards)

    def _check_open(self):
        if self._frozen is not None:
            raise RuntimeError('PairTable is frozen')

    def freeze(self):
        """Close the table for writing and return a read-only view.

        Returns:
            Mapping {TagPair: CountRecord}.
        """
        if self._frozen is None:
            table = {}
            for i, shard in enumerate(self._shards):
                with self._locks[i]:
                    for key, (n, read) in shard.items():
                        table[key] = CountRecord(key.bait, key.prey, n, read)
            self._frozen = MappingProxyType(table)
        return self._frozen


# Per-process scanner for the process pool
_worker_scanner = None
_worker_detail = False


def _init_worker(config, detail=False):
    global _worker_scanner, _worker_detail
    _worker_scanner = LinkerScanner(config)
    _worker_detail = detail


def _scan_in_worker(reads):
    return scan_chunk(_worker_scanner, reads, _worker_detail)


def _scan_and_merge(table, scanner, reads, detail=False):
    res = scan_chunk(scanner, reads, detail)
    table.merge(res.counts, res.representatives)
    return res


def count_pairs(reads, config, ncpu=1, executor='thread', chunk_size=DEFAULT_CHUNK_SIZE, nshards=None,
                details=None):
    """Count tag pairs over a stream of reads.

    Args:
        reads: Iterable of Read. Consumed lazily.
        config: ScanConfig.
        ncpu: Number of workers. 1 scans inline.
        executor: ``'thread'`` (workers merge into the shared table) or
            ``'process'`` (workers return tallies, the caller merges).
        chunk_size: Reads per work unit.
        nshards: Table shards; defaults to ``8 * ncpu`` (at least 16).
        details: Optional list; receives one :class:`ScanDetail` per read,
            in input order.

    Returns:
        (frozen table {TagPair: CountRecord}, ScanStats)
    """
    if ncpu < 1:
        raise ValueError(f'ncpu must be >= 1, got {ncpu}')
    if executor not in ('thread', 'process'):
        raise ValueError(f'Unknown executor "{executor}"')

    table = PairTable(nshards or max(16, 8 * ncpu))
    stats = ScanStats()
    detail = details is not None

    if ncpu == 1:
        scanner = LinkerScanner(config)
        for chunk in chunked(reads, chunk_size):
            res = _scan_and_merge(table, scanner, chunk, detail)
            stats.update(res.stats)
            if detail:
                details.extend(res.details)
        return table.freeze(), stats

    if executor == 'thread':
        scanner = LinkerScanner(config)
        pool = ThreadPoolExecutor(max_workers=ncpu)
        submit = lambda chunk: pool.submit(_scan_and_merge, table, scanner, chunk, detail)  # noqa: E731
        merged = True
    else:
        pool = ProcessPoolExecutor(max_workers=ncpu, initializer=_init_worker, initargs=(config, detail))
        submit = lambda chunk: pool.submit(_scan_in_worker, chunk)  # noqa: E731
        merged = False

    # chunk index -> detail rows, so rows come out in input order
    chunk_details = {}

    def collect(fut, idx):
        res = fut.result()
        if not merged:
            table.merge(res.counts, res.representatives)
        stats.update(res.stats)
        if detail:
            chunk_details[idx] = res.details

    lg.debug(f'Counting with {ncpu} {executor} workers, chunks of {chunk_size} reads')
    max_pending = 2 * ncpu
    with pool:
        pending = {}
        for idx, chunk in enumerate(chunked(reads, chunk_size)):
            pending[submit(chunk)] = idx
            if len(pending) >= max_pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for fut in done:
                    collect(fut, pending.pop(fut))
        for fut in wait(pending).done:
            collect(fut, pending[fut])

    if detail:
        for idx in sorted(chunk_details):
            details.extend(chunk_details[idx])
    return table.freeze(), stats
