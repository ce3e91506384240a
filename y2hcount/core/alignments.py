# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Loading external tag alignments and resolving each tag to a gene.

The aligner output is keyed by synthetic tag read names (see ``tagid``).
All records of a name are collected first, so the file does not need to be
collated. Each name then resolves to exactly one :class:`Resolution`.
"""

import gzip
import logging as lg
from collections import Counter, defaultdict, namedtuple
from dataclasses import dataclass
from enum import Enum

import pysam

from .errors import AlignmentParseError
from .tagid import BAIT, parse_tag_read_id

BAIT_ROLE = 'bait'
PREY_ROLE = 'prey'

Hit = namedtuple('Hit', ['reference', 'position', 'strand', 'mapq', 'score', 'suboptimal', 'nm', 'n_alt',
                         'is_secondary'])


class Status(Enum):
    RESOLVED = 'resolved'
    UNRESOLVED = 'unresolved'
    AMBIGUOUS = 'ambiguous'
    ROLE_MISMATCH = 'role_mismatch'


@dataclass(frozen=True)
class Resolution:
    status: Status
    gene: str | None = None
    role: str | None = None
    reason: str = ''

    def __str__(self):
        if self.status is Status.RESOLVED:
            return f'{self.role.capitalize()}:{self.gene}'
        if self.gene is not None:
            return f'{self.status.value}:{self.gene}'
        return f'{self.status.value}:{self.reason}'


NOT_ALIGNED = Resolution(Status.UNRESOLVED, reason='not_aligned')


def role_of(gene, bait_prefix='bait_', prey_prefix='prey_'):
    """Role encoded in a reference name prefix, or None."""
    if gene.startswith(bait_prefix):
        return BAIT_ROLE
    if gene.startswith(prey_prefix):
        return PREY_ROLE
    return None


def expected_role(side):
    return BAIT_ROLE if side == BAIT else PREY_ROLE


def _n_alternatives(seg):
    """Number of alternative hits listed in a bwa ``XA`` tag."""
    if not seg.has_tag('XA'):
        return 0
    return len([x for x in seg.get_tag('XA').split(';') if x])


def _opt_tag(seg, tag):
    return seg.get_tag(tag) if seg.has_tag(tag) else None


def hit_from_segment(seg):
    """Reduce an AlignedSegment to the fields used for resolution.

    Returns:
        Hit, or None for unmapped and supplementary records.
    """
    if seg.is_unmapped or seg.is_supplementary:
        return None
    return Hit(
        reference=seg.reference_name,
        position=seg.reference_start,
        strand='-' if seg.is_reverse else '+',
        mapq=seg.mapping_quality,
        score=_opt_tag(seg, 'AS'),
        suboptimal=_opt_tag(seg, 'XS'),
        nm=_opt_tag(seg, 'NM'),
        n_alt=_n_alternatives(seg),
        is_secondary=seg.is_secondary,
    )


def _is_gzip(path):
    with open(path, 'rb') as fh:
        return fh.read(2) == b'\x1f\x8b'


def _is_bam(path):
    if not _is_gzip(path):
        return False
    with gzip.open(path, 'rb') as fh:
        return fh.read(4) == b'BAM\x01'


def _header_from_lines(lines):
    if lines:
        return pysam.AlignmentHeader.from_text('\n'.join(lines) + '\n')
    return pysam.AlignmentHeader.from_dict({'HD': {'VN': '1.6', 'SO': 'unsorted'}})


class AlignmentLoader:
    """Parses aligner output and resolves every tag read.

    Args:
        bait_prefix: Reference name prefix of bait-eligible genes.
        prey_prefix: Reference name prefix of prey-eligible genes.
        min_mapq: Best hits below this MAPQ are ambiguous.
        max_nm: Best hits with more edit distance (``NM``) are unresolved.
            None disables the check.
        max_hits: More equally good hits than this are ambiguous.
    """

    def __init__(self, bait_prefix='bait_', prey_prefix='prey_', min_mapq=0, max_nm=None, max_hits=1):
        self.bait_prefix = bait_prefix
        self.prey_prefix = prey_prefix
        self.min_mapq = min_mapq
        self.max_nm = max_nm
        self.max_hits = max_hits
        self.run_info = Counter()

    # -- Parsing -------------------------------------------------------------

    def _segments_sam(self, path):
        opener = gzip.open if _is_gzip(path) else open
        header_lines = []
        header = None
        with opener(path, 'rt') as fh:
            for lineno, line in enumerate(fh, 1):
                line = line.rstrip('\r\n')
                if not line:
                    continue
                if header is None:
                    if line.startswith('@'):
                        header_lines.append(line)
                        continue
                    header = _header_from_lines(header_lines)
                try:
                    if len(line.split('\t')) < 11:
                        raise AlignmentParseError('expected at least 11 tab-separated fields')
                    try:
                        seg = pysam.AlignedSegment.fromstring(line, header)
                    except ValueError as exc:
                        raise AlignmentParseError(str(exc)) from exc
                except AlignmentParseError as exc:
                    self._skip(f'{path}:{lineno}', exc)
                    continue
                yield f'{path}:{lineno}', seg

    def _segments_bam(self, path):
        with pysam.AlignmentFile(path, 'rb', check_sq=False) as af:
            for i, seg in enumerate(af.fetch(until_eof=True), 1):
                yield f'{path}:record {i}', seg

    def _skip(self, where, exc):
        self.run_info['skipped_records'] += 1
        lg.warning(f'Skipping alignment record at {where}: {exc}')

    def collect(self, path):
        """Group the hits of every tag read.

        Returns:
            dict {(pair_id, side): [Hit, ...]}; a read whose records are all
            unmapped maps to an empty list.
        """
        segments = self._segments_bam(path) if _is_bam(path) else self._segments_sam(path)
        hits = defaultdict(list)
        for where, seg in segments:
            try:
                key = parse_tag_read_id(seg.query_name)
            except AlignmentParseError as exc:
                self._skip(where, exc)
                continue
            self.run_info['records'] += 1
            hit = hit_from_segment(seg)
            if hit is None:
                hits.setdefault(key, [])
            else:
                hits[key].append(hit)
        return hits

    # -- Resolution ----------------------------------------------------------

    def resolve(self, hits, side):
        """Resolve the hits of one tag read to a gene.

        Args:
            hits: Mapped, non-supplementary hits of the read.
            side: ``'B'`` or ``'P'``; determines the expected gene role.
        """
        if not hits:
            return Resolution(Status.UNRESOLVED, reason='not_found')

        if all(h.score is not None for h in hits):
            _best_score = max(h.score for h in hits)
            best = [h for h in hits if h.score == _best_score]
        else:
            best = list(hits)
        primary = [h for h in best if not h.is_secondary]
        top = primary[0] if primary else best[0]

        n_hits = len({(h.reference, h.position, h.strand) for h in best}) + top.n_alt
        if top.score is not None and top.suboptimal is not None and top.suboptimal >= top.score:
            n_hits = max(n_hits, 2)
        if n_hits > self.max_hits:
            return Resolution(Status.AMBIGUOUS, reason='multi_mapped')
        if self.max_nm is not None and top.nm is not None and top.nm > self.max_nm:
            return Resolution(Status.UNRESOLVED, reason='too_many_mismatches')
        if top.mapq < self.min_mapq:
            return Resolution(Status.AMBIGUOUS, reason='low_mapq')

        role = role_of(top.reference, self.bait_prefix, self.prey_prefix)
        if role is None:
            return Resolution(Status.ROLE_MISMATCH, gene=top.reference, reason='no_role_prefix')
        if role != expected_role(side):
            return Resolution(Status.ROLE_MISMATCH, gene=top.reference, role=role, reason='wrong_role')
        return Resolution(Status.RESOLVED, gene=top.reference, role=role)

    def load(self, path):
        """Load `path` (SAM, gzipped SAM or BAM).

        Returns:
            dict {(pair_id, side): Resolution}
        """
        resolutions = {}
        for key, hits in self.collect(path).items():
            res = self.resolve(hits, key[1])
            resolutions[key] = res
            self.run_info[res.status.value] += 1
        self.run_info['tag_reads'] = len(resolutions)
        lg.info(
            'Loaded {} records for {} tag reads ({} skipped)'.format(
                self.run_info['records'], len(resolutions), self.run_info['skipped_records'])
        )
        return resolutions


def load_alignments(path, bait_prefix='bait_', prey_prefix='prey_', min_mapq=0, max_nm=None, max_hits=1):
    """Convenience wrapper around :class:`AlignmentLoader`."""
    return AlignmentLoader(bait_prefix, prey_prefix, min_mapq, max_nm, max_hits).load(path)
