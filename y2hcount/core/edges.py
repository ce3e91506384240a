# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Joining pair counts with tag resolutions into bait-prey edges."""

import logging as lg
import re
from collections import Counter, namedtuple
from dataclasses import dataclass, field

import pandas as pd

from ..utils.helpers import percent
from .alignments import BAIT_ROLE, NOT_ALIGNED, PREY_ROLE, Status
from .emitter import COUNT_COLUMNS
from .errors import Y2HCountError
from .tagid import BAIT, PREY, decode_pair_id, pair_id

PairCount = namedtuple('PairCount', ['bait', 'prey', 'count'])
Detail = namedtuple('Detail', ['bait_tag', 'prey_tag', 'count', 'bait_resolution', 'prey_resolution', 'category'])

EDGE = 'edge'
UNRESOLVED = 'unresolved'
AMBIGUOUS = 'ambiguous'
ROLE_MISMATCH = 'role_mismatch'
CATEGORIES = (EDGE, UNRESOLVED, AMBIGUOUS, ROLE_MISMATCH)

_TAG_RE = re.compile(r'^[ACGT]+$')

# Worst status first: a record is filed under the first one either side has
_PRECEDENCE = (
    (Status.UNRESOLVED, UNRESOLVED),
    (Status.AMBIGUOUS, AMBIGUOUS),
    (Status.ROLE_MISMATCH, ROLE_MISMATCH),
)


def read_counts(filename):
    """Read a pair count table written by ``paircount``.

    Yields:
        PairCount
    """
    try:
        df = pd.read_csv(filename, sep='\t', dtype={'bait_tag': str, 'prey_tag': str}, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return
    missing = [c for c in COUNT_COLUMNS if c not in df.columns]
    if missing:
        raise Y2HCountError(f'{filename}: missing column(s) {", ".join(missing)}')
    for i, (bait, prey, cnt) in enumerate(df[COUNT_COLUMNS].itertuples(index=False), 1):
        if not (_TAG_RE.match(bait) and _TAG_RE.match(prey)):
            raise Y2HCountError(f'{filename}: row {i}: tags must be A/C/G/T sequences')
        yield PairCount(bait, prey, int(cnt))


@dataclass
class EdgeDiagnostics:
    """Records and reads tallied per category, plus per-side statuses."""
    records: Counter = field(default_factory=Counter)
    reads: Counter = field(default_factory=Counter)
    bait_side: Counter = field(default_factory=Counter)
    prey_side: Counter = field(default_factory=Counter)
    orphan_tag_reads: int = 0    # aligned tag reads of pairs not in the count table

    @property
    def total_records(self):
        return sum(self.records.values())

    @property
    def total_reads(self):
        return sum(self.reads.values())

    def as_rows(self):
        """[(category, records, reads, percent of reads)]"""
        total = self.total_reads
        return [(c, self.records[c], self.reads[c], percent(self.reads[c], total)) for c in CATEGORIES]

    def __str__(self):
        lines = ['Edge result:']
        for cat, nrec, nreads, pct in self.as_rows():
            lines.append(f'    {cat:<14}\t{nrec}\t{nreads}\t{pct}')
        lines.append(f'total pairs: {self.total_records}')
        lines.append(f'total reads: {self.total_reads}')
        if self.orphan_tag_reads:
            lines.append(f'orphan tag reads: {self.orphan_tag_reads}')
        return '\n'.join(lines)


@dataclass(frozen=True)
class EdgeResult:
    edges: dict            # {(bait_gene, prey_gene): count}
    diagnostics: EdgeDiagnostics
    details: list          # [Detail], empty unless requested


class EdgeAggregator:
    """Accumulates pair counts into (bait gene, prey gene) edges.

    Args:
        resolutions: {(pair_id, side): Resolution} from the alignment loader.
        allow_swapped: Accept pairs whose bait tag hits a prey gene and whose
            prey tag hits a bait gene as the edge (bait gene, prey gene).
    """

    def __init__(self, resolutions, allow_swapped=False):
        self.resolutions = resolutions
        self.allow_swapped = allow_swapped

    def lookup(self, pid, side):
        return self.resolutions.get((pid, side), NOT_ALIGNED)

    def classify(self, bait_res, prey_res):
        """Category of a pair given both resolutions, and its edge if any.

        Returns:
            (category, (bait_gene, prey_gene) or None)
        """
        if bait_res.status is Status.RESOLVED and prey_res.status is Status.RESOLVED:
            return EDGE, (bait_res.gene, prey_res.gene)
        if (
            self.allow_swapped
            and bait_res.status is Status.ROLE_MISMATCH
            and prey_res.status is Status.ROLE_MISMATCH
            and bait_res.role == PREY_ROLE
            and prey_res.role == BAIT_ROLE
        ):
            return EDGE, (prey_res.gene, bait_res.gene)
        for status, category in _PRECEDENCE:
            if status in (bait_res.status, prey_res.status):
                return category, None
        raise AssertionError('unreachable')

    def aggregate(self, records, with_details=False):
        """Single pass over count records.

        Args:
            records: Iterable with ``bait``, ``prey`` and ``count`` attributes.
            with_details: Keep one :class:`Detail` row per record.

        Returns:
            EdgeResult
        """
        edges = Counter()
        diag = EdgeDiagnostics()
        details = []
        seen = set()
        for rec in records:
            pid = pair_id(rec.bait, rec.prey)
            seen.add(pid)
            bait_res = self.lookup(pid, BAIT)
            prey_res = self.lookup(pid, PREY)
            category, edge = self.classify(bait_res, prey_res)
            if edge is not None:
                edges[edge] += rec.count
            diag.records[category] += 1
            diag.reads[category] += rec.count
            diag.bait_side[bait_res.status.value] += 1
            diag.prey_side[prey_res.status.value] += 1
            if with_details:
                details.append(Detail(rec.bait, rec.prey, rec.count, str(bait_res), str(prey_res), category))
        self._check_orphans(seen, diag)
        lg.info(f'{len(edges)} edges from {diag.records[EDGE]} of {diag.total_records} pairs')
        return EdgeResult(dict(edges), diag, details)

    def _check_orphans(self, seen, diag):
        """Count tag reads whose pair id is not in the count table."""
        orphans = sorted(key for key in self.resolutions if key[0] not in seen)
        diag.orphan_tag_reads = len(orphans)
        if orphans:
            pid = orphans[0][0]
            bait, prey = decode_pair_id(pid, len(pid))
            lg.warning(
                f'{len(orphans)} aligned tag read(s) belong to pairs missing from the count table, '
                f'e.g. {pid} (bait {bait}, prey {prey})'
            )
