# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Linker scanning and flanking tag extraction.

A read from the screen looks like::

    ....[bait tag][linker][prey tag]....

The linker is located by a Hamming-distance sliding window, or, with
``indels`` set, by an infix edit-distance alignment. The ``flank`` bases on
either side of the best hit are the bait and prey tags.
"""

from collections import namedtuple
from dataclasses import dataclass
from enum import Enum

import edlib
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ..utils.helpers import revcomp

TagPair = namedtuple('TagPair', ['bait', 'prey'])

# A/C/G/T -> 0..3, everything else (N, IUPAC, gaps) -> 4
_NT4_TABLE = np.full(256, 4, dtype=np.uint8)
for _i, _c in enumerate(b'ACGT'):
    _NT4_TABLE[_c] = _i
    _NT4_TABLE[_c + 32] = _i  # lower case


class Outcome(Enum):
    """Per-read result of scanning and extraction."""
    PAIRED = 'paired'
    NO_LINKER = 'no_linker'
    NO_MARKER = 'no_marker'
    LEFT_TOO_SHORT = 'left_too_short'
    RIGHT_TOO_SHORT = 'right_too_short'
    AMBIGUOUS_BASE = 'ambiguous_base'


@dataclass(frozen=True)
class Match:
    offset: int
    mismatches: int
    length: int
    strand: str = '+'

    @property
    def end(self):
        return self.offset + self.length


def encode(seq):
    """2-bit nucleotide codes of `seq` as a uint8 array (4 for non-ACGT)."""
    return _NT4_TABLE[np.frombuffer(seq.encode('ascii'), dtype=np.uint8)]


def _best_offset(codes, pattern_codes, max_mismatches):
    m = len(pattern_codes)
    if len(codes) < m:
        return None
    mism = (sliding_window_view(codes, m) != pattern_codes).sum(axis=1)
    # argmin returns the first minimum, i.e. the leftmost offset
    off = int(mism.argmin())
    if mism[off] > max_mismatches:
        return None
    return off, int(mism[off])


def _best_edit_hit(sequence, linker, max_edits):
    """Leftmost lowest-edit-distance infix alignment of `linker` in `sequence`.

    Returns:
        (offset, edits, aligned span length) or None
    """
    if not sequence:
        return None
    r = edlib.align(linker, sequence, mode='HW', task='locations', k=max_edits)
    if r['editDistance'] == -1 or r['editDistance'] > max_edits:
        return None
    start, end = min(r['locations'])
    return start, r['editDistance'], end - start + 1


def scan(sequence, linker, max_mismatches):
    """Find the best linker hit in `sequence`.

    Every offset where the linker fits entirely inside the read is compared
    base by base. The offset with the fewest mismatches wins, ties going to
    the leftmost one.

    Returns:
        :class:`Match`, or None if the read is shorter than the linker or the
        best offset has more than `max_mismatches` mismatches.
    """
    hit = _best_offset(encode(sequence), encode(linker), max_mismatches)
    if hit is None:
        return None
    return Match(hit[0], hit[1], len(linker))


def extract(sequence, match, flank):
    """Cut the bait and prey tags around a linker match.

    Any base other than A/C/G/T inside either tag rejects the whole pair.

    Returns:
        (Outcome, TagPair or None)
    """
    if match.offset < flank:
        return Outcome.LEFT_TOO_SHORT, None
    if match.end + flank > len(sequence):
        return Outcome.RIGHT_TOO_SHORT, None
    pair = TagPair(sequence[match.offset - flank:match.offset], sequence[match.end:match.end + flank])
    if (encode(pair.bait) == 4).any() or (encode(pair.prey) == 4).any():
        return Outcome.AMBIGUOUS_BASE, None
    return Outcome.PAIRED, pair


class LinkerScanner:
    """Scan + marker check + extraction for one :class:`ScanConfig`."""

    def __init__(self, config):
        self.config = config
        self._linker = encode(config.linker)
        self._marker = encode(config.marker) if config.marker else None

    def find(self, sequence):
        """Locate the linker, trying the reverse complement if configured.

        Returns:
            (Match or None, oriented sequence). For a reverse-strand hit the
            returned sequence is the reverse complement of the read.
        """
        match = self._locate(sequence, '+')
        if match is not None:
            return match, sequence
        if self.config.both_strands:
            rc = revcomp(sequence)
            match = self._locate(rc, '-')
            if match is not None:
                return match, rc
        return None, sequence

    def _locate(self, sequence, strand):
        cfg = self.config
        if cfg.indels:
            hit = _best_edit_hit(sequence.upper(), cfg.linker, cfg.max_mismatches)
            if hit is None:
                return None
            return Match(hit[0], hit[1], hit[2], strand)
        hit = _best_offset(encode(sequence), self._linker, cfg.max_mismatches)
        if hit is None:
            return None
        return Match(hit[0], hit[1], len(cfg.linker), strand)

    def has_marker(self, sequence, match):
        """True if the marker sits within `marker_distance` of the linker span."""
        cfg = self.config
        if self._marker is None:
            return True
        reach = cfg.marker_distance + len(self._marker)
        upstream = sequence[max(0, match.offset - reach):match.offset]
        downstream = sequence[match.end:match.end + reach]
        for region in (upstream, downstream):
            if _best_offset(encode(region), self._marker, cfg.marker_mismatches) is not None:
                return True
        return False

    def inspect(self, sequence):
        """Like :meth:`process`, also returning the linker hit if one was found.

        Returns:
            (Outcome, TagPair or None, Match or None)
        """
        match, oriented = self.find(sequence)
        if match is None:
            return Outcome.NO_LINKER, None, None
        if not self.has_marker(oriented, match):
            return Outcome.NO_MARKER, None, match
        outcome, tags = extract(oriented, match, self.config.flank)
        return outcome, tags, match

    def process(self, sequence):
        """Full per-read pipeline.

        Returns:
            (Outcome, TagPair or None)
        """
        outcome, tags, _ = self.inspect(sequence)
        return outcome, tags
